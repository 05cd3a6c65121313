"""Sequencing of the seven assessment stages.

Dependency graph::

    normalize
      -> score_financial + score_sustainability   (concurrent)
      -> decide
      -> plan_uplift + simulate_scenarios          (concurrent)
      -> summarize_for_review

Every run is tagged with a generation number taken from ``PipelineState``.
A stage result is written into the state only if its run is still the
current generation; once a newer run has started, the older run stops
issuing oracle calls and leaves phase, error and artifacts alone.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from greencredit.errors import OracleError, StageFailure
from greencredit.models import BorrowerInput
from greencredit.pipeline.state import STAGE_FIELDS, Phase, PipelineState, RunMode, StageError
from greencredit.services import stages as stage_names
from greencredit.services.stages import AssessmentStages

logger = logging.getLogger(__name__)

Listener = Callable[[PipelineState], None]


class RunSuperseded(Exception):
    """A newer run took over the state while this one was in flight."""


class PipelineOrchestrator:
    def __init__(self, stages: AssessmentStages, state: Optional[PipelineState] = None):
        self.stages = stages
        self.state = state or PipelineState()
        self._listeners: List[Listener] = []

    @property
    def generation(self) -> int:
        return self.state.generation

    def snapshot(self) -> PipelineState:
        return self.state.model_copy(deep=True)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the state after every change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def run_interactive(self, borrower: BorrowerInput) -> PipelineState:
        return await self.run(borrower, RunMode.INTERACTIVE)

    async def run_background(self, borrower: BorrowerInput) -> PipelineState:
        return await self.run(borrower, RunMode.BACKGROUND)

    async def run(self, borrower: BorrowerInput, mode: RunMode = RunMode.INTERACTIVE) -> PipelineState:
        """Run the whole graph once.

        Interactive runs raise ``StageFailure`` on the first failing stage.
        Background runs log the failure and return the state unchanged apart
        from phase and error.
        """
        snapshot = borrower.model_copy(deep=True)
        generation = self.state.generation + 1
        self._update(generation=generation, phase=Phase.RUNNING, mode=mode, error=None)
        logger.info(f"Run {generation} started ({mode.value})")

        try:
            await self._execute(generation, snapshot)
        except RunSuperseded:
            logger.info(f"Run {generation} superseded by run {self.state.generation}; results discarded")
            return self.snapshot()
        except StageFailure as failure:
            if generation != self.state.generation:
                logger.info(f"Ignoring failure of superseded run {generation}: {failure}")
                return self.snapshot()
            self._update(phase=Phase.FAILED, error=StageError.from_failure(failure))
            if mode is RunMode.INTERACTIVE:
                logger.error(f"Run {generation} failed: {failure}")
                raise
            logger.warning(f"Background run {generation} failed, keeping previous results: {failure}")
            return self.snapshot()
        except asyncio.CancelledError:
            if generation == self.state.generation:
                self._update(phase=Phase.IDLE)
            logger.info(f"Run {generation} cancelled")
            raise
        except Exception as e:
            if generation == self.state.generation:
                self._update(phase=Phase.FAILED)
            logger.exception(f"Run {generation} crashed: {e}")
            raise

        self._update(phase=Phase.SUCCEEDED)
        logger.info(f"Run {generation} succeeded")
        return self.snapshot()

    async def _execute(self, generation: int, borrower: BorrowerInput) -> None:
        normalized = await self._run_stage(
            generation, stage_names.NORMALIZE, self.stages.normalize(borrower))

        financial, sustainability = await self._run_concurrently(
            generation,
            (stage_names.SCORE_FINANCIAL, self.stages.score_financial(normalized)),
            (stage_names.SCORE_SUSTAINABILITY, self.stages.score_sustainability(normalized)),
        )

        decision = await self._run_stage(
            generation, stage_names.DECIDE, self.stages.decide(financial, sustainability))

        uplift, scenarios = await self._run_concurrently(
            generation,
            (stage_names.PLAN_UPLIFT, self.stages.plan_uplift(sustainability)),
            (stage_names.SIMULATE_SCENARIOS, self.stages.simulate_scenarios(financial, sustainability)),
        )

        await self._run_stage(
            generation,
            stage_names.SUMMARIZE_FOR_REVIEW,
            self.stages.summarize_for_review(normalized, financial, sustainability, decision, uplift, scenarios),
        )

    async def _run_stage(self, generation: int, stage: str, call: Awaitable[Any]) -> Any:
        try:
            result = await call
        except OracleError as e:
            raise StageFailure(stage, e) from e

        if generation != self.state.generation:
            logger.debug(f"Discarding '{stage}' result from run {generation}")
            raise RunSuperseded(stage)

        self._update(**{STAGE_FIELDS[stage]: result})
        logger.info(f"Run {generation}: stage '{stage}' published")
        return result

    async def _run_concurrently(self, generation: int, *calls: Tuple[str, Awaitable[Any]]) -> List[Any]:
        # Both calls are issued before either is awaited; a sibling that
        # succeeds is still published when its partner fails.
        results = await asyncio.gather(
            *(self._run_stage(generation, stage, call) for stage, call in calls),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, StageFailure):
                raise result
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return results

    def _update(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self.state, name, value)
        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception:
                logger.exception("Pipeline state listener failed")
