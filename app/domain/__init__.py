"""Domain model for adaptive surveys.

This package contains the Survey aggregate, its Question entities, survey
responses, domain events and the domain error taxonomy.
"""

from app.domain.errors import (
    DomainError,
    ValidationError,
    BusinessRuleViolation,
    ConcurrencyConflictError,
    NotFoundError,
    ServiceUnavailableError,
)
from app.domain.events import DomainEvent
from app.domain.question import Question, QuestionType
from app.domain.survey import Survey
from app.domain.survey_response import Answer, SurveyResponse

__all__ = [
    "DomainError",
    "ValidationError",
    "BusinessRuleViolation",
    "ConcurrencyConflictError",
    "NotFoundError",
    "ServiceUnavailableError",
    "DomainEvent",
    "Question",
    "QuestionType",
    "Survey",
    "Answer",
    "SurveyResponse",
]
