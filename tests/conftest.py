import os

os.environ.setdefault("GREENCREDIT_ORACLE_BASE_URL", "http://oracle.test/v1")
os.environ["GREENCREDIT_LOG_FILE"] = ""

import asyncio
import copy
from collections import defaultdict, deque

import pytest
import respx
from fastapi.testclient import TestClient
from openai import AsyncOpenAI

from greencredit.config.settings import settings
from greencredit.models import BorrowerInput
from greencredit.pipeline import PipelineOrchestrator
from greencredit.services import AssessmentStages, OpenAIOracle
from greencredit.session import AssessmentSession

SAMPLE_RESPONSES = {
    "normalize": {
        "financial": {"revenueScore": 72, "cashFlowStability": 75, "debtRatio": 65, "creditScore": 80},
        "sustainability": {"energyCleanliness": 25, "carbonEfficiency": 20, "laborEthics": 90, "regulatoryRisk": 85},
    },
    "score_financial": {
        "score": 74,
        "band": "Low",
        "breakdown": [{"name": "Revenue", "value": 72}, {"name": "Debt", "value": 65}],
        "summary": "Stable revenue with moderate leverage.",
    },
    "score_sustainability": {
        "score": 48,
        "sdgs": [{"subject": "SDG 7: Affordable and Clean Energy", "A": 25, "fullMark": 100}],
        "impactDescription": "Coal-heavy grid mix drags the environmental profile.",
    },
    "decide": {
        "greenCreditScore": 63,
        "status": "Conditional",
        "justification": "Financially sound, carbon exposure needs a transition plan.",
        "aprAdjustment": "+0.75%",
    },
    "plan_uplift": {
        "currentScore": 48,
        "projectedScore": 71,
        "recommendations": [
            {"title": "Rooftop solar", "action": "Install 500kW PV", "impact": "+12 sustainability"},
        ],
    },
    "simulate_scenarios": [
        {"scenario": "Net Zero 2050", "financialImpact": -4, "sustainabilityImpact": 15, "totalScore": 68},
        {"scenario": "Hot House World", "financialImpact": -18, "sustainabilityImpact": -10, "totalScore": 41},
    ],
    "summarize_for_review": {
        "keyDrivers": ["Strong cash flow", "High carbon intensity"],
        "ethicalConsiderations": "Labor practices are above sector average.",
        "suggestedNextSteps": "Approve with a 24-month decarbonisation covenant.",
        "riskHighlights": [
            {"type": "Warning", "message": "Carbon intensity in the top quartile"},
            {"type": "Success", "message": "Clean credit history"},
        ],
    },
}


class FakeOracle:
    """In-memory oracle keyed by stage name.

    ``responses[name]`` is returned (deep-copied) or raised if it is an
    exception. ``hold(name)`` makes the next call for that stage wait on an
    event, which lets tests interleave runs.
    """

    def __init__(self, responses=None):
        self.responses = copy.deepcopy(SAMPLE_RESPONSES)
        self.responses.update(responses or {})
        self.calls = []
        self.events = []
        self._gates = defaultdict(deque)

    def hold(self, name):
        gate = asyncio.Event()
        self._gates[name].append(gate)
        return gate

    def called(self, name):
        return [spec for spec in self.calls if spec.name == name]

    async def wait_started(self, name, count=1):
        while len(self.called(name)) < count:
            await asyncio.sleep(0)

    async def infer(self, spec):
        self.calls.append(spec)
        self.events.append(("start", spec.name))
        response = self.responses[spec.name]
        if self._gates[spec.name]:
            await self._gates[spec.name].popleft().wait()
        else:
            await asyncio.sleep(0)
        self.events.append(("end", spec.name))
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)


@pytest.fixture
def borrower():
    return BorrowerInput(
        revenue=5_000_000,
        debt_to_income_ratio=35,
        carbon_intensity=80,
        labor_compliance=90,
        cash_flow_stability=75,
    )


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def orchestrator(fake_oracle):
    return PipelineOrchestrator(AssessmentStages(fake_oracle))


@pytest.fixture
def session(orchestrator, borrower):
    sess = AssessmentSession(orchestrator, borrower=borrower, debounce_seconds=0.05)
    yield sess
    sess.close()


@pytest.fixture
def client(session):
    from greencredit.main import app
    from greencredit.routes.assessment import get_session

    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_llm_router():
    """Mock all calls to the oracle endpoint"""
    with respx.mock(base_url=settings.ORACLE_BASE_URL, assert_all_mocked=True) as router:
        yield router


@pytest.fixture
def openai_oracle():
    client = AsyncOpenAI(api_key="test", base_url=settings.ORACLE_BASE_URL, max_retries=0)
    return OpenAIOracle(client, model="gpt-oss")
