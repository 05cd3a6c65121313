import logging
from typing import Any, List, Protocol

from pydantic import TypeAdapter, ValidationError

from greencredit.errors import OracleValidationError
from greencredit.models import (
    BorrowerInput,
    ClimateScenario,
    DecisionResponse,
    FinancialRiskResponse,
    NormalizedData,
    ReviewSummary,
    SustainabilityRiskResponse,
    UpliftPlan,
)
from greencredit.services.oracle import PromptSpec
from greencredit.utils.text import clean_text, to_prompt_json

logger = logging.getLogger(__name__)

NORMALIZE = "normalize"
SCORE_FINANCIAL = "score_financial"
SCORE_SUSTAINABILITY = "score_sustainability"
DECIDE = "decide"
PLAN_UPLIFT = "plan_uplift"
SIMULATE_SCENARIOS = "simulate_scenarios"
SUMMARIZE_FOR_REVIEW = "summarize_for_review"

CLIMATE_SCENARIOS = ("Net Zero 2050", "Stalled Transition", "Hot House World", "Policy Shift")


class Oracle(Protocol):
    async def infer(self, spec: PromptSpec) -> Any: ...


class AssessmentStages:
    """One oracle call per stage, validated against the stage's output shape."""

    def __init__(self, oracle: Oracle):
        self.oracle = oracle

    async def normalize(self, borrower: BorrowerInput) -> NormalizedData:
        prompt = (
            "Normalize the following borrower input into a numerical feature set (0-100 scale). "
            f"Input features like revenue ({borrower.revenue:,.0f}), "
            f"debt ratio ({borrower.debt_to_income_ratio:g}%), "
            f"carbon intensity ({borrower.carbon_intensity:g}/100), "
            f"and labor compliance ({borrower.labor_compliance:g}/100) "
            f"should be mapped to standard risk weights. Full Input: {to_prompt_json(borrower)}"
        )
        return await self._call(NORMALIZE, prompt, NormalizedData)

    async def score_financial(self, normalized: NormalizedData) -> FinancialRiskResponse:
        prompt = f"Assess financial risk for the following features: {to_prompt_json(normalized.financial)}"
        return await self._call(SCORE_FINANCIAL, prompt, FinancialRiskResponse)

    async def score_sustainability(self, normalized: NormalizedData) -> SustainabilityRiskResponse:
        prompt = (
            "Assess sustainability risk and SDG contribution (1-17) for the following: "
            f"{to_prompt_json(normalized.sustainability)}"
        )
        return await self._call(SCORE_SUSTAINABILITY, prompt, SustainabilityRiskResponse)

    async def decide(self, financial: FinancialRiskResponse,
                     sustainability: SustainabilityRiskResponse) -> DecisionResponse:
        prompt = (
            "Make a GreenCredit loan decision. "
            f"Financial Score: {financial.score:g}, Sustainability Score: {sustainability.score:g}"
        )
        return await self._call(DECIDE, prompt, DecisionResponse)

    async def plan_uplift(self, sustainability: SustainabilityRiskResponse) -> UpliftPlan:
        prompt = f"Suggest sustainability improvements. Current Score: {sustainability.score:g}"
        return await self._call(PLAN_UPLIFT, prompt, UpliftPlan)

    async def simulate_scenarios(self, financial: FinancialRiskResponse,
                                 sustainability: SustainabilityRiskResponse) -> List[ClimateScenario]:
        prompt = (
            f"Simulate {len(CLIMATE_SCENARIOS)} climate scenarios ({', '.join(CLIMATE_SCENARIOS)}) "
            f"for this borrower. Base scores: Fin={financial.score:g}, Sust={sustainability.score:g}"
        )
        return await self._call(SIMULATE_SCENARIOS, prompt, List[ClimateScenario])

    async def summarize_for_review(self, normalized: NormalizedData, financial: FinancialRiskResponse,
                                   sustainability: SustainabilityRiskResponse, decision: DecisionResponse,
                                   uplift: UpliftPlan, scenarios: List[ClimateScenario]) -> ReviewSummary:
        history = {
            "norm": normalized,
            "fin": financial,
            "sust": sustainability,
            "dec": decision,
            "up": uplift,
            "sim": scenarios,
        }
        prompt = (
            "Provide a human review summary for a loan officer based on the full credit report "
            f"history: {to_prompt_json(history)}"
        )
        return await self._call(SUMMARIZE_FOR_REVIEW, prompt, ReviewSummary)

    async def _call(self, name: str, prompt: str, shape: Any) -> Any:
        adapter = TypeAdapter(shape)
        spec = PromptSpec(name=name, prompt=clean_text(prompt), output_schema=adapter.json_schema())
        payload = await self.oracle.infer(spec)
        try:
            # oracle output is taken as-is: declared camelCase keys, no type coercion
            return adapter.validate_python(payload, strict=True, by_alias=True, by_name=False)
        except ValidationError as e:
            logger.warning(f"Stage '{name}' returned a malformed payload: {e.error_count()} error(s)")
            raise OracleValidationError(f"{name}: {e}") from e
