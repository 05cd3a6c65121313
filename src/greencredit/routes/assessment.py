from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from greencredit.errors import StageFailure
from greencredit.models import BorrowerInput, BorrowerInputUpdate, CamelModel
from greencredit.pipeline import PipelineState
from greencredit.session import AppStep, AssessmentSession

router = APIRouter(prefix="/assessment", tags=["Assessment"])


class AssessmentView(CamelModel):
    step: AppStep
    input: BorrowerInput
    state: PipelineState


class StepView(CamelModel):
    step: AppStep


def get_session(request: Request) -> AssessmentSession:
    return request.app.state.session


def _view(session: AssessmentSession) -> AssessmentView:
    return AssessmentView(step=session.step, input=session.borrower, state=session.orchestrator.snapshot())


@router.get("", response_model=AssessmentView)
async def get_assessment(session: AssessmentSession = Depends(get_session)):
    return _view(session)


@router.patch("/input", response_model=BorrowerInput)
async def update_input(update: BorrowerInputUpdate, session: AssessmentSession = Depends(get_session)):
    """Edit borrower fields. Watched risk drivers trigger a debounced background re-score."""
    try:
        session.update_input(update.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return session.borrower


@router.post("/run", response_model=AssessmentView)
async def run_assessment(session: AssessmentSession = Depends(get_session)):
    try:
        await session.run_analysis()
    except StageFailure as failure:
        raise HTTPException(
            status_code=502,
            detail={"stage": failure.stage, "kind": failure.kind, "message": str(failure.cause)},
        )
    return _view(session)


@router.post("/steps/next", response_model=StepView)
async def next_step(session: AssessmentSession = Depends(get_session)):
    return StepView(step=session.next_step())


@router.post("/steps/previous", response_model=StepView)
async def previous_step(session: AssessmentSession = Depends(get_session)):
    return StepView(step=session.previous_step())
