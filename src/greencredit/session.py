import enum
from typing import Any, Dict, List, Optional

from greencredit.models import BorrowerInput
from greencredit.pipeline import Phase, PipelineOrchestrator, PipelineState, StalenessController


class AppStep(int, enum.Enum):
    INPUT = 1
    NORMALIZATION = 2
    FINANCIAL_RISK = 3
    SUSTAINABILITY_RISK = 4
    DECISION = 5
    UPLIFT = 6
    SIMULATION = 7
    REVIEW = 8


class AssessmentSession:
    """Wizard state: the borrower being edited, the current step and the pipeline behind it."""

    def __init__(self, orchestrator: PipelineOrchestrator, borrower: Optional[BorrowerInput] = None,
                 debounce_seconds: Optional[float] = None):
        self.borrower = borrower or BorrowerInput()
        self.orchestrator = orchestrator
        self.staleness = StalenessController(orchestrator, lambda: self.borrower, delay=debounce_seconds)
        self.step = AppStep.INPUT

    @property
    def state(self) -> PipelineState:
        return self.orchestrator.state

    def update_input(self, changes: Dict[str, Any]) -> List[str]:
        """Apply field edits in place and return the names that actually changed.

        All edits are validated together first, so an invalid value leaves
        the borrower untouched.
        """
        unknown = set(changes) - set(BorrowerInput.model_fields)
        if unknown:
            raise ValueError(f"Unknown borrower fields: {sorted(unknown)}")
        validated = BorrowerInput.model_validate({**self.borrower.model_dump(), **changes})
        changed = []
        for name in changes:
            value = getattr(validated, name)
            if getattr(self.borrower, name) != value:
                setattr(self.borrower, name, value)
                changed.append(name)
        if changed:
            self.staleness.on_input_changed(changed)
        return changed

    async def run_analysis(self) -> PipelineState:
        """Interactive run. The step only advances if every stage succeeded."""
        state = await self.orchestrator.run_interactive(self.borrower)
        if state.phase is Phase.SUCCEEDED:
            self.step = AppStep.NORMALIZATION
        return state

    def next_step(self) -> AppStep:
        self.step = AppStep(min(self.step + 1, AppStep.REVIEW))
        return self.step

    def previous_step(self) -> AppStep:
        self.step = AppStep(max(self.step - 1, AppStep.INPUT))
        return self.step

    def close(self) -> None:
        self.staleness.close()
