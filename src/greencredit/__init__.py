from .errors import (
    OracleError,
    OracleTimeoutError,
    OracleTransportError,
    OracleValidationError,
    StageFailure,
)
from .models import (
    BorrowerInput,
    ClimateScenario,
    DecisionResponse,
    FinancialRiskResponse,
    NormalizedData,
    ReviewSummary,
    SustainabilityRiskResponse,
    UpliftPlan,
)
