"""Survey management endpoints.

Creation goes through SurveyCreationService; reads and deletes talk to the
survey repository directly.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.domain.errors import NotFoundError
from app.logging_config import get_logger
from app.repositories.base import SurveyFilters, SurveyRepository
from app.routes.dependencies import get_creation_service, get_survey_repository
from app.schemas.survey import (
    SurveyCreateRequest,
    SurveyCreatedOut,
    SurveyListOut,
    SurveyOut,
    SurveyStatisticsOut,
    SurveySummaryOut,
)
from app.services.survey_creation import (
    AIGenerationRequest,
    CreateSurveyRequest,
    QuestionDraft,
    SurveyCreationError,
    SurveyCreationService,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/surveys")


def to_create_request(body: SurveyCreateRequest) -> CreateSurveyRequest:
    """Convert the API payload into the use case request."""
    ai_generation = None
    if body.ai_generation is not None:
        ai_generation = AIGenerationRequest(**body.ai_generation.model_dump())

    return CreateSurveyRequest(
        title=body.title,
        description=body.description,
        owner_id=body.owner_id,
        goal=body.goal,
        max_questions=body.max_questions,
        target_language=body.target_language,
        auto_translate=body.auto_translate,
        questions=[QuestionDraft(**q.model_dump()) for q in body.questions],
        ai_generation=ai_generation,
    )


@router.post("", status_code=201, response_model=SurveyCreatedOut)
async def create_survey(
    body: SurveyCreateRequest,
    service: SurveyCreationService = Depends(get_creation_service),
) -> SurveyCreatedOut:
    """Create a survey from manual questions and/or generated ones.

    Domain errors are mapped to HTTP status codes by the application's
    exception handler (400 for validation, 409 for business rules).
    """
    try:
        result = await service.create(to_create_request(body))
    except SurveyCreationError as e:
        raise HTTPException(
            status_code=500,
            detail={"error": str(e), "code": "INTERNAL_ERROR"},
        )
    return SurveyCreatedOut.model_validate(result)


@router.get("", response_model=SurveyListOut)
async def list_surveys(
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    owner_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    title_contains: Optional[str] = None,
    repository: SurveyRepository = Depends(get_survey_repository),
) -> SurveyListOut:
    filters = SurveyFilters(
        owner_id=owner_id,
        is_active=is_active,
        title_contains=title_contains,
    )
    page = repository.find_with_pagination(offset, limit, filters)
    return SurveyListOut(
        surveys=[SurveySummaryOut.from_domain(s) for s in page.surveys],
        total=page.total,
        offset=offset,
        limit=limit,
        has_more=page.has_more,
    )


@router.get("/statistics", response_model=SurveyStatisticsOut)
async def survey_statistics(
    owner_id: Optional[str] = None,
    repository: SurveyRepository = Depends(get_survey_repository),
) -> SurveyStatisticsOut:
    return SurveyStatisticsOut.model_validate(repository.get_statistics(owner_id))


@router.get("/{survey_id}", response_model=SurveyOut)
async def get_survey(
    survey_id: str,
    repository: SurveyRepository = Depends(get_survey_repository),
) -> SurveyOut:
    survey = repository.find_by_id_string(survey_id)
    if survey is None:
        raise NotFoundError.for_entity("Survey", survey_id)
    return SurveyOut.from_domain(survey)


@router.delete("/{survey_id}", status_code=204)
async def delete_survey(
    survey_id: str,
    repository: SurveyRepository = Depends(get_survey_repository),
) -> Response:
    if not repository.exists(survey_id):
        raise NotFoundError.for_entity("Survey", survey_id)
    repository.delete(survey_id)
    logger.info("Survey deleted via API", extra={"survey_id": survey_id})
    return Response(status_code=204)
