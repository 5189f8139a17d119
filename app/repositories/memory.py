"""In-memory repositories.

Aggregates are stored as snapshot dicts, so callers never share mutable
state with the store and every load returns a fresh object.
"""

import copy
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.domain.errors import ConcurrencyConflictError
from app.domain.survey import Survey
from app.domain.survey_response import SurveyResponse
from app.logging_config import get_logger
from app.repositories.base import (
    SurveyFilters,
    SurveyPage,
    SurveyRepository,
    SurveyResponseRepository,
    SurveyStatistics,
    build_statistics,
)

logger = get_logger(__name__)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class InMemorySurveyRepository(SurveyRepository):
    """Survey store backed by a dict of snapshots."""

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def save(self, survey: Survey) -> Survey:
        with self._lock:
            stored = self._rows.get(survey.id)
            stored_version = stored["version"] if stored else 0
            if stored_version != survey.version:
                logger.warning(
                    f"Version conflict saving survey {survey.id}: "
                    f"stored={stored_version}, loaded={survey.version}",
                    extra={"survey_id": survey.id},
                )
                raise ConcurrencyConflictError(
                    f"Survey {survey.id} was modified concurrently"
                )

            snapshot = copy.deepcopy(survey.to_dict())
            snapshot["version"] = survey.version + 1
            self._rows[survey.id] = snapshot

        survey.mark_persisted(snapshot["version"])
        logger.debug(f"Saved survey {survey.id} at version {survey.version}")
        return survey

    def find_by_id(self, survey_id: str) -> Optional[Survey]:
        with self._lock:
            stored = self._rows.get(survey_id)
            if stored is None:
                return None
            return Survey.from_persistence(copy.deepcopy(stored))

    def _all(self) -> List[Survey]:
        with self._lock:
            rows = [copy.deepcopy(row) for row in self._rows.values()]
        surveys = [Survey.from_persistence(row) for row in rows]
        surveys.sort(key=lambda s: _aware(s.created_at), reverse=True)
        return surveys

    def find_by_user_id(self, user_id: str) -> List[Survey]:
        return [survey for survey in self._all() if survey.owner_id == user_id]

    def find_with_pagination(
        self,
        offset: int,
        limit: int,
        filters: Optional[SurveyFilters] = None,
    ) -> SurveyPage:
        matching = [s for s in self._all() if self._matches(s, filters)]
        page = matching[offset:offset + limit]
        return SurveyPage(
            surveys=page,
            total=len(matching),
            has_more=offset + limit < len(matching),
        )

    @staticmethod
    def _matches(survey: Survey, filters: Optional[SurveyFilters]) -> bool:
        if filters is None:
            return True
        if filters.owner_id is not None and survey.owner_id != filters.owner_id:
            return False
        if filters.is_active is not None and survey.is_active != filters.is_active:
            return False
        if filters.title_contains and filters.title_contains.lower() not in survey.title.lower():
            return False
        if filters.created_after and _aware(survey.created_at) < _aware(filters.created_after):
            return False
        if filters.created_before and _aware(survey.created_at) > _aware(filters.created_before):
            return False
        if filters.has_ai_questions is not None:
            has_ai = any(q.is_ai_generated for q in survey.all_questions)
            if has_ai != filters.has_ai_questions:
                return False
        return True

    def delete(self, survey_id: str) -> None:
        with self._lock:
            self._rows.pop(survey_id, None)
        logger.info(f"Deleted survey {survey_id}", extra={"survey_id": survey_id})

    def exists(self, survey_id: str) -> bool:
        with self._lock:
            return survey_id in self._rows

    def find_by_title(self, title: str, owner_id: Optional[str] = None) -> List[Survey]:
        return [
            s for s in self._all()
            if self._matches(s, SurveyFilters(owner_id=owner_id, title_contains=title))
        ]

    def get_statistics(self, owner_id: Optional[str] = None) -> SurveyStatistics:
        surveys = self._all()
        if owner_id is not None:
            surveys = [s for s in surveys if s.owner_id == owner_id]
        return build_statistics(surveys)


class InMemorySurveyResponseRepository(SurveyResponseRepository):
    """Response store backed by a dict of snapshots."""

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def save(self, response: SurveyResponse) -> SurveyResponse:
        with self._lock:
            self._rows[response.id] = copy.deepcopy(response.to_dict())
        return response

    def find_by_id(self, response_id: str) -> Optional[SurveyResponse]:
        with self._lock:
            stored = self._rows.get(response_id)
            if stored is None:
                return None
            return SurveyResponse.from_persistence(copy.deepcopy(stored))

    def _where(self, key: str, value: str) -> List[SurveyResponse]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._rows.values() if r.get(key) == value]
        responses = [SurveyResponse.from_persistence(row) for row in rows]
        responses.sort(key=lambda r: _aware(r.started_at))
        return responses

    def find_by_survey_id(self, survey_id: str) -> List[SurveyResponse]:
        return self._where("survey_id", survey_id)

    def find_by_respondent_id(self, respondent_id: str) -> List[SurveyResponse]:
        return self._where("respondent_id", respondent_id)
