"""Repositories for the Survey aggregate and survey responses."""

from app.repositories.base import (
    SurveyFilters,
    SurveyPage,
    SurveyStatistics,
    SurveyRepository,
    SurveyResponseRepository,
)
from app.repositories.memory import (
    InMemorySurveyRepository,
    InMemorySurveyResponseRepository,
)
from app.repositories.database import (
    SqlAlchemySurveyRepository,
    SqlAlchemySurveyResponseRepository,
)

__all__ = [
    "SurveyFilters",
    "SurveyPage",
    "SurveyStatistics",
    "SurveyRepository",
    "SurveyResponseRepository",
    "InMemorySurveyRepository",
    "InMemorySurveyResponseRepository",
    "SqlAlchemySurveyRepository",
    "SqlAlchemySurveyResponseRepository",
]
