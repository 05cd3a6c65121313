from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Artifact(CamelModel):
    """Base for oracle-produced records; immutable once built."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class BorrowerInput(CamelModel):
    """Input: raw business, financial and sustainability attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    business_type: str = "SME"
    industry: str = "Manufacturing"
    revenue: float = Field(5_000_000, ge=0)
    cash_flow_stability: float = Field(75, ge=0, le=100)
    debt_to_income_ratio: float = Field(35, ge=0, le=100)
    credit_history: str = "7 years clean"
    energy_source: str = "Grid Mix (Coal heavy)"
    carbon_intensity: float = Field(80, ge=0, le=100)
    labor_compliance: float = Field(90, ge=0, le=100)
    regulatory_issues: str = "None"


class BorrowerInputUpdate(CamelModel):
    """Partial edit of a BorrowerInput; unset fields are left alone."""
    business_type: Optional[str] = None
    industry: Optional[str] = None
    revenue: Optional[float] = Field(None, ge=0)
    cash_flow_stability: Optional[float] = Field(None, ge=0, le=100)
    debt_to_income_ratio: Optional[float] = Field(None, ge=0, le=100)
    credit_history: Optional[str] = None
    energy_source: Optional[str] = None
    carbon_intensity: Optional[float] = Field(None, ge=0, le=100)
    labor_compliance: Optional[float] = Field(None, ge=0, le=100)
    regulatory_issues: Optional[str] = None


class FinancialFeatures(Artifact):
    revenue_score: float
    cash_flow_stability: float
    debt_ratio: float
    credit_score: float


class SustainabilityFeatures(Artifact):
    energy_cleanliness: float
    carbon_efficiency: float
    labor_ethics: float
    regulatory_risk: float


class NormalizedData(Artifact):
    """Output of normalize: two groups of 0-100 features."""
    financial: FinancialFeatures
    sustainability: SustainabilityFeatures


class BreakdownItem(Artifact):
    name: str
    value: float


class FinancialRiskResponse(Artifact):
    """Output of the financial risk scorer."""
    score: float
    band: Literal["Low", "Medium", "High"]
    breakdown: List[BreakdownItem]
    summary: str


class SdgScore(Artifact):
    subject: str
    score: float = Field(alias="A")
    full_mark: float


class SustainabilityRiskResponse(Artifact):
    """Output of the sustainability scorer, with SDG contributions."""
    score: float
    sdgs: List[SdgScore]
    impact_description: str


class DecisionResponse(Artifact):
    """Lending decision with composite score and rate adjustment."""
    green_credit_score: float
    status: Literal["Green Approved", "Conditional", "Rejected"]
    justification: str
    apr_adjustment: str


class Recommendation(Artifact):
    title: str
    action: str
    impact: str


class UpliftPlan(Artifact):
    current_score: float
    projected_score: float
    recommendations: List[Recommendation]


class ClimateScenario(Artifact):
    scenario: str
    financial_impact: float
    sustainability_impact: float
    total_score: float


class RiskHighlight(Artifact):
    type: Literal["Warning", "Info", "Success"]
    message: str


class ReviewSummary(Artifact):
    """Loan-officer review built from every prior artifact."""
    key_drivers: List[str]
    ethical_considerations: str
    suggested_next_steps: str
    risk_highlights: List[RiskHighlight]
