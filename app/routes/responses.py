"""Survey response endpoints."""

from fastapi import APIRouter, Depends

from app.domain.errors import NotFoundError
from app.repositories.base import SurveyRepository, SurveyResponseRepository
from app.routes.dependencies import (
    get_response_repository,
    get_submission_service,
    get_survey_repository,
    raise_for_failure,
)
from app.schemas.responses import (
    SubmitResponseIn,
    SubmitResponseOut,
    SurveyResponseListOut,
    SurveyResponseOut,
)
from app.services.response_submission import (
    AnswerSubmission,
    DynamicQuestionSubmission,
    ResponseSubmissionService,
    SubmitResponseRequest,
)

router = APIRouter(prefix="/api/surveys")


@router.post("/{survey_id}/responses", status_code=201, response_model=SubmitResponseOut)
async def submit_response(
    survey_id: str,
    body: SubmitResponseIn,
    service: ResponseSubmissionService = Depends(get_submission_service),
) -> SubmitResponseOut:
    """Submit a respondent's answers.

    Client-generated dynamic questions in ``dynamic_questions`` are merged
    into the survey before the answers are matched.
    """
    request = SubmitResponseRequest(
        survey_id=survey_id,
        responses=[AnswerSubmission(**a.model_dump()) for a in body.responses],
        respondent_id=body.respondent_id,
        respondent_email=body.respondent_email,
        metadata=body.metadata,
        dynamic_questions=[DynamicQuestionSubmission(**q.model_dump()) for q in body.dynamic_questions],
    )
    result = await service.submit(request)
    if not result.success:
        raise_for_failure(result.error_code, result.message)
    return SubmitResponseOut(
        success=True,
        response_id=result.response_id,
        message=result.message,
    )


@router.get("/{survey_id}/responses", response_model=SurveyResponseListOut)
async def list_responses(
    survey_id: str,
    surveys: SurveyRepository = Depends(get_survey_repository),
    responses: SurveyResponseRepository = Depends(get_response_repository),
) -> SurveyResponseListOut:
    if not surveys.exists(survey_id):
        raise NotFoundError.for_entity("Survey", survey_id)
    stored = responses.find_by_survey_id(survey_id)
    return SurveyResponseListOut(
        survey_id=survey_id,
        total=len(stored),
        responses=[SurveyResponseOut.model_validate(r) for r in stored],
    )
