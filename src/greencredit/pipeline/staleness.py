import asyncio
import logging
from typing import Callable, FrozenSet, Iterable, Optional, Set

from greencredit.config.settings import settings
from greencredit.models import BorrowerInput
from greencredit.pipeline.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)

# Numeric risk drivers; edits to these re-score in the background
WATCHED_FIELDS: FrozenSet[str] = frozenset({
    "revenue",
    "debt_to_income_ratio",
    "carbon_intensity",
    "labor_compliance",
    "cash_flow_stability",
})


class StalenessController:
    """Debounces edits to the watched fields into at most one background run.

    There is never more than one pending timer: each qualifying edit cancels
    the previous timer and starts a new one, so the run fires ``delay``
    seconds after the last edit and reads the input as it is at that moment.
    """

    def __init__(self, orchestrator: PipelineOrchestrator, read_input: Callable[[], BorrowerInput],
                 delay: Optional[float] = None, watched: Iterable[str] = WATCHED_FIELDS):
        self.orchestrator = orchestrator
        self.delay = settings.DEBOUNCE_SECONDS if delay is None else delay
        self.watched = frozenset(watched)
        self._read_input = read_input
        self._timer: Optional[asyncio.TimerHandle] = None
        self._runs: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def on_input_changed(self, fields: Iterable[str]) -> bool:
        """Schedule a background re-run if a watched field changed. Returns True if scheduled."""
        if self._closed:
            return False
        changed = self.watched.intersection(fields)
        if not changed:
            return False
        if self.orchestrator.state.normalized is None:
            # nothing to refresh until an interactive run has produced results
            return False

        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)
        logger.debug(f"Re-score scheduled in {self.delay}s after edit to {sorted(changed)}")
        return True

    def close(self) -> None:
        """Cancel the pending timer and any background run still in flight."""
        self._closed = True
        self._cancel_timer()
        for task in list(self._runs):
            if not task.done():
                task.cancel()

    async def wait_for_runs(self) -> None:
        while self._runs:
            await asyncio.wait(set(self._runs))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        if self._closed:
            return
        borrower = self._read_input()
        logger.info("Input settled; starting background re-score")
        task = asyncio.get_running_loop().create_task(self.orchestrator.run_background(borrower))
        self._runs.add(task)
        task.add_done_callback(self._on_run_done)

    def _on_run_done(self, task: asyncio.Task) -> None:
        self._runs.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background re-score crashed", exc_info=error)
