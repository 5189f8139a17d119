"""FastAPI dependencies wiring repositories and services per request.

Repositories are bound to the request's database session. Collaborators
with process-wide state (generator, event bus, translation client, survey
locks) are shared singletons.
"""

from typing import Optional

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.database import get_db
from app.repositories.base import SurveyRepository, SurveyResponseRepository
from app.repositories.database import (
    SqlAlchemySurveyRepository,
    SqlAlchemySurveyResponseRepository,
)
from app.services.dynamic_questions import DynamicQuestionOrchestrator, get_survey_locks
from app.services.event_bus import EventBus, get_event_bus
from app.services.question_generator import QuestionGenerator, get_question_generator
from app.services.response_submission import ResponseSubmissionService
from app.services.survey_creation import SurveyCreationService
from app.services.translation import TranslationService, get_translation_service

ERROR_STATUS_CODES = {
    "VALIDATION_ERROR": 400,
    "ENTITY_NOT_FOUND": 404,
    "BUSINESS_RULE_VIOLATION": 409,
    "CONCURRENT_MODIFICATION": 409,
    "SERVICE_UNAVAILABLE": 503,
}


def status_for(error_code: Optional[str]) -> int:
    """Map a domain error code to an HTTP status code (500 if unknown)."""
    return ERROR_STATUS_CODES.get(error_code or "", 500)


def raise_for_failure(error_code: Optional[str], message: Optional[str]) -> None:
    """Raise an HTTPException for an unsuccessful use case result."""
    raise HTTPException(
        status_code=status_for(error_code),
        detail={"error": message or "Request failed", "code": error_code or "INTERNAL_ERROR"},
    )


def get_survey_repository(db: Session = Depends(get_db)) -> SurveyRepository:
    return SqlAlchemySurveyRepository(db)


def get_response_repository(db: Session = Depends(get_db)) -> SurveyResponseRepository:
    return SqlAlchemySurveyResponseRepository(db)


def get_generator() -> QuestionGenerator:
    return get_question_generator()


def get_bus() -> EventBus:
    return get_event_bus()


def get_translation() -> TranslationService:
    return get_translation_service()


def get_creation_service(
    repository: SurveyRepository = Depends(get_survey_repository),
    generator: QuestionGenerator = Depends(get_generator),
    event_bus: EventBus = Depends(get_bus),
) -> SurveyCreationService:
    return SurveyCreationService(repository, generator, event_bus, get_settings())


def get_orchestrator(
    repository: SurveyRepository = Depends(get_survey_repository),
    generator: QuestionGenerator = Depends(get_generator),
    event_bus: EventBus = Depends(get_bus),
) -> DynamicQuestionOrchestrator:
    return DynamicQuestionOrchestrator(repository, generator, event_bus, get_survey_locks())


def get_submission_service(
    survey_repository: SurveyRepository = Depends(get_survey_repository),
    response_repository: SurveyResponseRepository = Depends(get_response_repository),
    event_bus: EventBus = Depends(get_bus),
    translation: TranslationService = Depends(get_translation),
) -> ResponseSubmissionService:
    return ResponseSubmissionService(
        survey_repository,
        response_repository,
        event_bus,
        translation,
        get_survey_locks(),
    )
