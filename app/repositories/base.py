"""Repository contracts for surveys and survey responses.

Use cases depend only on these abstract classes. Two implementations ship
with the service: an in-memory store (``app.repositories.memory``) and a
SQLAlchemy-backed store (``app.repositories.database``).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from app.domain.survey import Survey
from app.domain.survey_response import SurveyResponse


@dataclass
class SurveyFilters:
    """Optional filters for paginated survey listing."""

    owner_id: Optional[str] = None
    is_active: Optional[bool] = None
    title_contains: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    has_ai_questions: Optional[bool] = None


@dataclass
class SurveyPage:
    """One page of surveys plus the size of the filtered set."""

    surveys: List[Survey] = field(default_factory=list)
    total: int = 0
    has_more: bool = False


@dataclass
class SurveyStatistics:
    """Aggregate counts over stored surveys (static questions only)."""

    total_surveys: int = 0
    active_surveys: int = 0
    total_questions: int = 0
    ai_generated_questions: int = 0
    average_questions_per_survey: float = 0.0


class SurveyRepository(ABC):
    """Persistence contract for the Survey aggregate.

    ``save`` performs an optimistic compare-and-swap on ``Survey.version``:
    it raises ConcurrencyConflictError when the stored version differs from
    the version the caller loaded, otherwise writes the survey, bumps the
    version and records it on the aggregate via ``mark_persisted``.
    """

    @abstractmethod
    def save(self, survey: Survey) -> Survey:
        ...

    @abstractmethod
    def find_by_id(self, survey_id: str) -> Optional[Survey]:
        ...

    def find_by_id_string(self, raw_id: Optional[str]) -> Optional[Survey]:
        """Look a survey up from an untrusted string id (e.g. a URL segment)."""
        if not isinstance(raw_id, str) or not raw_id.strip():
            return None
        return self.find_by_id(raw_id.strip())

    @abstractmethod
    def find_by_user_id(self, user_id: str) -> List[Survey]:
        ...

    @abstractmethod
    def find_with_pagination(
        self,
        offset: int,
        limit: int,
        filters: Optional[SurveyFilters] = None,
    ) -> SurveyPage:
        ...

    @abstractmethod
    def delete(self, survey_id: str) -> None:
        ...

    @abstractmethod
    def exists(self, survey_id: str) -> bool:
        ...

    @abstractmethod
    def find_by_title(self, title: str, owner_id: Optional[str] = None) -> List[Survey]:
        """Case-insensitive substring search on survey titles."""
        ...

    @abstractmethod
    def get_statistics(self, owner_id: Optional[str] = None) -> SurveyStatistics:
        ...


class SurveyResponseRepository(ABC):
    """Persistence contract for survey responses."""

    @abstractmethod
    def save(self, response: SurveyResponse) -> SurveyResponse:
        ...

    @abstractmethod
    def find_by_id(self, response_id: str) -> Optional[SurveyResponse]:
        ...

    @abstractmethod
    def find_by_survey_id(self, survey_id: str) -> List[SurveyResponse]:
        ...

    @abstractmethod
    def find_by_respondent_id(self, respondent_id: str) -> List[SurveyResponse]:
        ...


def build_statistics(surveys: List[Survey]) -> SurveyStatistics:
    """Compute statistics over already-loaded surveys."""
    total_questions = sum(survey.question_count for survey in surveys)
    ai_generated = sum(
        1 for survey in surveys for question in survey.questions if question.is_ai_generated
    )
    return SurveyStatistics(
        total_surveys=len(surveys),
        active_surveys=sum(1 for survey in surveys if survey.is_active),
        total_questions=total_questions,
        ai_generated_questions=ai_generated,
        average_questions_per_survey=(total_questions / len(surveys)) if surveys else 0.0,
    )
