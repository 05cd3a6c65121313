import pytest

from greencredit.errors import OracleTransportError, OracleValidationError
from greencredit.models import ClimateScenario, NormalizedData
from greencredit.services import AssessmentStages


@pytest.fixture
def stages(fake_oracle):
    return AssessmentStages(fake_oracle)


@pytest.mark.asyncio
async def test_normalize_prompt_reflects_input(stages, fake_oracle, borrower):
    normalized = await stages.normalize(borrower)

    assert isinstance(normalized, NormalizedData)
    assert normalized.financial.revenue_score == 72
    spec = fake_oracle.called("normalize")[0]
    assert "revenue (5,000,000)" in spec.prompt
    assert "carbon intensity (80/100)" in spec.prompt
    assert '"carbonIntensity": 80.0' in spec.prompt
    assert spec.output_schema["required"] == ["financial", "sustainability"]


@pytest.mark.asyncio
async def test_each_stage_makes_exactly_one_call(stages, fake_oracle, borrower):
    normalized = await stages.normalize(borrower)
    financial = await stages.score_financial(normalized)
    sustainability = await stages.score_sustainability(normalized)
    decision = await stages.decide(financial, sustainability)
    uplift = await stages.plan_uplift(sustainability)
    scenarios = await stages.simulate_scenarios(financial, sustainability)
    review = await stages.summarize_for_review(
        normalized, financial, sustainability, decision, uplift, scenarios
    )

    assert [spec.name for spec in fake_oracle.calls] == [
        "normalize",
        "score_financial",
        "score_sustainability",
        "decide",
        "plan_uplift",
        "simulate_scenarios",
        "summarize_for_review",
    ]
    assert financial.band == "Low"
    assert decision.status == "Conditional"
    assert all(isinstance(s, ClimateScenario) for s in scenarios)
    assert review.risk_highlights[0].type == "Warning"


@pytest.mark.asyncio
async def test_prompts_carry_upstream_scores(stages, fake_oracle, borrower):
    normalized = await stages.normalize(borrower)
    financial = await stages.score_financial(normalized)
    sustainability = await stages.score_sustainability(normalized)
    await stages.decide(financial, sustainability)
    await stages.simulate_scenarios(financial, sustainability)

    assert '"revenueScore": 72.0' in fake_oracle.called("score_financial")[0].prompt
    assert '"carbonEfficiency": 20.0' in fake_oracle.called("score_sustainability")[0].prompt
    assert "Financial Score: 74, Sustainability Score: 48" in fake_oracle.called("decide")[0].prompt
    scenario_prompt = fake_oracle.called("simulate_scenarios")[0].prompt
    assert "Hot House World" in scenario_prompt
    assert "Fin=74, Sust=48" in scenario_prompt


@pytest.mark.asyncio
async def test_scenarios_schema_is_an_array(stages, fake_oracle, borrower):
    normalized = await stages.normalize(borrower)
    financial = await stages.score_financial(normalized)
    sustainability = await stages.score_sustainability(normalized)
    await stages.simulate_scenarios(financial, sustainability)

    assert fake_oracle.called("simulate_scenarios")[0].output_schema["type"] == "array"


@pytest.mark.asyncio
async def test_missing_field_fails_closed(stages, fake_oracle):
    fake_oracle.responses["decide"] = {
        "greenCreditScore": 61,
        "justification": "missing status",
        "aprAdjustment": "+1%",
    }
    normalized = NormalizedData.model_validate(fake_oracle.responses["normalize"])
    financial = await stages.score_financial(normalized)
    sustainability = await stages.score_sustainability(normalized)

    with pytest.raises(OracleValidationError):
        await stages.decide(financial, sustainability)


@pytest.mark.asyncio
async def test_malformed_number_fails_closed(stages, fake_oracle):
    fake_oracle.responses["score_financial"] = {
        "score": "very high", "band": "Low", "breakdown": [], "summary": "x",
    }
    normalized = NormalizedData.model_validate(fake_oracle.responses["normalize"])
    with pytest.raises(OracleValidationError):
        await stages.score_financial(normalized)


@pytest.mark.asyncio
async def test_numbers_as_strings_or_booleans_fail_closed(stages, fake_oracle):
    normalized = NormalizedData.model_validate(fake_oracle.responses["normalize"])

    fake_oracle.responses["score_financial"] = {
        "score": "74", "band": "Low", "breakdown": [], "summary": "x",
    }
    with pytest.raises(OracleValidationError):
        await stages.score_financial(normalized)

    fake_oracle.responses["score_financial"] = {
        "score": 74, "band": "Low", "breakdown": [{"name": "Debt", "value": True}], "summary": "x",
    }
    with pytest.raises(OracleValidationError):
        await stages.score_financial(normalized)


@pytest.mark.asyncio
async def test_snake_case_keys_fail_closed(stages, fake_oracle):
    fake_oracle.responses["decide"] = {
        "green_credit_score": 61,
        "status": "Conditional",
        "justification": "j",
        "apr_adjustment": "+1%",
    }
    normalized = NormalizedData.model_validate(fake_oracle.responses["normalize"])
    financial = await stages.score_financial(normalized)
    sustainability = await stages.score_sustainability(normalized)

    with pytest.raises(OracleValidationError):
        await stages.decide(financial, sustainability)


@pytest.mark.asyncio
async def test_integer_scores_are_accepted_as_numbers(stages, fake_oracle):
    normalized = NormalizedData.model_validate(fake_oracle.responses["normalize"])
    financial = await stages.score_financial(normalized)

    assert financial.score == 74
    assert financial.breakdown[1].value == 65


@pytest.mark.asyncio
async def test_oracle_errors_pass_through(stages, fake_oracle, borrower):
    fake_oracle.responses["normalize"] = OracleTransportError("connection refused")
    with pytest.raises(OracleTransportError):
        await stages.normalize(borrower)
