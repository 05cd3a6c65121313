import enum
from typing import List, Optional

from pydantic import computed_field

from greencredit.errors import StageFailure
from greencredit.models import (
    CamelModel,
    ClimateScenario,
    DecisionResponse,
    FinancialRiskResponse,
    NormalizedData,
    ReviewSummary,
    SustainabilityRiskResponse,
    UpliftPlan,
)
from greencredit.services import stages


class Phase(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunMode(str, enum.Enum):
    INTERACTIVE = "interactive"
    BACKGROUND = "background"


# stage name -> PipelineState attribute it publishes into
STAGE_FIELDS = {
    stages.NORMALIZE: "normalized",
    stages.SCORE_FINANCIAL: "financial",
    stages.SCORE_SUSTAINABILITY: "sustainability",
    stages.DECIDE: "decision",
    stages.PLAN_UPLIFT: "uplift",
    stages.SIMULATE_SCENARIOS: "scenarios",
    stages.SUMMARIZE_FOR_REVIEW: "review",
}


class StageError(CamelModel):
    stage: str
    kind: str
    message: str

    @classmethod
    def from_failure(cls, failure: StageFailure) -> "StageError":
        return cls(stage=failure.stage, kind=failure.kind, message=str(failure.cause))


class PipelineState(CamelModel):
    """Lifecycle phase, run generation and the latest value of every artifact."""
    phase: Phase = Phase.IDLE
    generation: int = 0
    mode: Optional[RunMode] = None
    error: Optional[StageError] = None

    normalized: Optional[NormalizedData] = None
    financial: Optional[FinancialRiskResponse] = None
    sustainability: Optional[SustainabilityRiskResponse] = None
    decision: Optional[DecisionResponse] = None
    uplift: Optional[UpliftPlan] = None
    scenarios: Optional[List[ClimateScenario]] = None
    review: Optional[ReviewSummary] = None

    @computed_field(alias="isSyncing")
    @property
    def is_syncing(self) -> bool:
        return self.phase is Phase.RUNNING and self.mode is RunMode.BACKGROUND
