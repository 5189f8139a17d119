"""SQLAlchemy-backed repositories.

Each repository wraps a request-scoped Session and commits inside ``save``
and ``delete``. Survey saves lock the row (``SELECT ... FOR UPDATE``) and
compare versions before writing.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.domain.errors import ConcurrencyConflictError
from app.domain.question import Question
from app.domain.survey import Survey
from app.domain.survey_response import SurveyResponse
from app.logging_config import get_logger
from app.models.response import SurveyResponseRecord
from app.models.survey import QuestionRecord, SurveyRecord
from app.repositories.base import (
    SurveyFilters,
    SurveyPage,
    SurveyRepository,
    SurveyResponseRepository,
    SurveyStatistics,
)

logger = get_logger(__name__)


def _question_to_dict(record: QuestionRecord) -> dict:
    return {
        "id": record.id,
        "text": record.text,
        "type": record.question_type,
        "options": list(record.options or []),
        "is_required": record.is_required,
        "is_ai_generated": record.is_ai_generated,
        "order": record.order,
        "created_at": record.created_at,
    }


def _to_domain(record: SurveyRecord) -> Survey:
    static = [q for q in record.questions if not q.is_dynamic]
    dynamic = [q for q in record.questions if q.is_dynamic]
    return Survey.from_persistence({
        "id": record.id,
        "title": record.title,
        "description": record.description,
        "goal": record.goal,
        "questions": [_question_to_dict(q) for q in sorted(static, key=lambda q: q.position)],
        "dynamic_questions": [
            _question_to_dict(q) for q in sorted(dynamic, key=lambda q: q.position)
        ],
        "max_questions": record.max_questions,
        "target_language": record.target_language,
        "auto_translate": record.auto_translate,
        "is_active": record.is_active,
        "owner_id": record.owner_id,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "version": record.version,
    })


def _apply_question(record: QuestionRecord, question: Question, is_dynamic: bool, position: int) -> None:
    record.text = question.text
    record.question_type = question.type.value
    record.options = question.options
    record.is_required = question.is_required
    record.is_ai_generated = question.is_ai_generated
    record.is_dynamic = is_dynamic
    record.position = position
    record.order = question.order
    record.created_at = question.created_at


class SqlAlchemySurveyRepository(SurveyRepository):
    """Survey repository over the ``surveys`` and ``survey_questions`` tables."""

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return select(SurveyRecord).options(selectinload(SurveyRecord.questions))

    def save(self, survey: Survey) -> Survey:
        """Insert or update a survey with an optimistic version check.

        Raises:
            ConcurrencyConflictError: If the stored version differs from
                ``survey.version``
        """
        try:
            record = self.db.execute(
                self._base_query()
                .where(SurveyRecord.id == survey.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()

            stored_version = record.version if record is not None else 0
            if stored_version != survey.version:
                raise ConcurrencyConflictError(
                    f"Survey {survey.id} was modified concurrently"
                )

            if record is None:
                record = SurveyRecord(id=survey.id, created_at=survey.created_at)
                self.db.add(record)

            record.owner_id = survey.owner_id
            record.title = survey.title
            record.description = survey.description
            record.goal = survey.goal
            record.max_questions = survey.max_questions
            record.target_language = survey.target_language
            record.auto_translate = survey.auto_translate
            record.is_active = survey.is_active
            record.updated_at = survey.updated_at
            record.version = survey.version + 1

            # Reuse rows by question id; rows left out are deleted as orphans
            existing = {q.id: q for q in record.questions}
            synced: List[QuestionRecord] = []
            for is_dynamic, questions in ((False, survey.questions), (True, survey.dynamic_questions)):
                for position, question in enumerate(questions):
                    row = existing.pop(question.id, None) or QuestionRecord(id=question.id)
                    _apply_question(row, question, is_dynamic, position)
                    synced.append(row)
            record.questions = synced

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.warning(
                f"Failed to save survey {survey.id}",
                extra={"survey_id": survey.id},
            )
            raise

        survey.mark_persisted(record.version)
        logger.debug(
            f"Saved survey {survey.id} at version {survey.version}",
            extra={"survey_id": survey.id},
        )
        return survey

    def find_by_id(self, survey_id: str) -> Optional[Survey]:
        record = self.db.execute(
            self._base_query().where(SurveyRecord.id == survey_id)
        ).scalar_one_or_none()
        return _to_domain(record) if record is not None else None

    def find_by_user_id(self, user_id: str) -> List[Survey]:
        records = self.db.execute(
            self._base_query()
            .where(SurveyRecord.owner_id == user_id)
            .order_by(SurveyRecord.created_at.desc())
        ).scalars().all()
        return [_to_domain(r) for r in records]

    @staticmethod
    def _filter(query, filters: Optional[SurveyFilters]):
        if filters is None:
            return query
        if filters.owner_id is not None:
            query = query.where(SurveyRecord.owner_id == filters.owner_id)
        if filters.is_active is not None:
            query = query.where(SurveyRecord.is_active.is_(filters.is_active))
        if filters.title_contains:
            query = query.where(
                func.lower(SurveyRecord.title).contains(filters.title_contains.lower())
            )
        if filters.created_after is not None:
            query = query.where(SurveyRecord.created_at >= filters.created_after)
        if filters.created_before is not None:
            query = query.where(SurveyRecord.created_at <= filters.created_before)
        if filters.has_ai_questions is not None:
            has_ai = SurveyRecord.questions.any(QuestionRecord.is_ai_generated.is_(True))
            query = query.where(has_ai if filters.has_ai_questions else ~has_ai)
        return query

    def find_with_pagination(
        self,
        offset: int,
        limit: int,
        filters: Optional[SurveyFilters] = None,
    ) -> SurveyPage:
        total = self.db.execute(
            self._filter(select(func.count(SurveyRecord.id)), filters)
        ).scalar_one()
        records = self.db.execute(
            self._filter(self._base_query(), filters)
            .order_by(SurveyRecord.created_at.desc(), SurveyRecord.id)
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return SurveyPage(
            surveys=[_to_domain(r) for r in records],
            total=total,
            has_more=offset + limit < total,
        )

    def delete(self, survey_id: str) -> None:
        record = self.db.get(SurveyRecord, survey_id)
        if record is None:
            return
        try:
            self.db.delete(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Deleted survey {survey_id}", extra={"survey_id": survey_id})

    def exists(self, survey_id: str) -> bool:
        return self.db.execute(
            select(func.count(SurveyRecord.id)).where(SurveyRecord.id == survey_id)
        ).scalar_one() > 0

    def find_by_title(self, title: str, owner_id: Optional[str] = None) -> List[Survey]:
        query = self._filter(
            self._base_query(),
            SurveyFilters(owner_id=owner_id, title_contains=title),
        ).order_by(SurveyRecord.created_at.desc())
        return [_to_domain(r) for r in self.db.execute(query).scalars().all()]

    def get_statistics(self, owner_id: Optional[str] = None) -> SurveyStatistics:
        survey_query = select(
            func.count(SurveyRecord.id),
            func.count(SurveyRecord.id).filter(SurveyRecord.is_active.is_(True)),
        )
        question_query = (
            select(
                func.count(QuestionRecord.id),
                func.count(QuestionRecord.id).filter(QuestionRecord.is_ai_generated.is_(True)),
            )
            .join(SurveyRecord, QuestionRecord.survey_id == SurveyRecord.id)
            .where(QuestionRecord.is_dynamic.is_(False))
        )
        if owner_id is not None:
            survey_query = survey_query.where(SurveyRecord.owner_id == owner_id)
            question_query = question_query.where(SurveyRecord.owner_id == owner_id)

        total_surveys, active_surveys = self.db.execute(survey_query).one()
        total_questions, ai_questions = self.db.execute(question_query).one()
        return SurveyStatistics(
            total_surveys=total_surveys,
            active_surveys=active_surveys,
            total_questions=total_questions,
            ai_generated_questions=ai_questions,
            average_questions_per_survey=(
                total_questions / total_surveys if total_surveys else 0.0
            ),
        )


class SqlAlchemySurveyResponseRepository(SurveyResponseRepository):
    """Response repository over the ``survey_responses`` table."""

    def __init__(self, db: Session):
        self.db = db

    def save(self, response: SurveyResponse) -> SurveyResponse:
        data = response.to_dict()
        answers = [
            {**answer, "answered_at": answer["answered_at"].isoformat()}
            for answer in data["answers"]
        ]
        try:
            record = self.db.get(SurveyResponseRecord, response.id)
            if record is None:
                record = SurveyResponseRecord(id=response.id, survey_id=response.survey_id)
                self.db.add(record)
            record.respondent_id = response.respondent_id
            record.respondent_email = response.respondent_email
            record.answers = answers
            record.response_metadata = data["metadata"]
            record.started_at = response.started_at
            record.submitted_at = response.submitted_at
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.debug(
            f"Saved response {response.id}",
            extra={"response_id": response.id, "survey_id": response.survey_id},
        )
        return response

    @staticmethod
    def _to_domain(record: SurveyResponseRecord) -> SurveyResponse:
        return SurveyResponse.from_persistence({
            "id": record.id,
            "survey_id": record.survey_id,
            "respondent_id": record.respondent_id,
            "respondent_email": record.respondent_email,
            "answers": record.answers or [],
            "started_at": record.started_at,
            "submitted_at": record.submitted_at,
            "metadata": record.response_metadata or {},
        })

    def find_by_id(self, response_id: str) -> Optional[SurveyResponse]:
        record = self.db.get(SurveyResponseRecord, response_id)
        return self._to_domain(record) if record is not None else None

    def find_by_survey_id(self, survey_id: str) -> List[SurveyResponse]:
        records = self.db.execute(
            select(SurveyResponseRecord)
            .where(SurveyResponseRecord.survey_id == survey_id)
            .order_by(SurveyResponseRecord.started_at)
        ).scalars().all()
        return [self._to_domain(r) for r in records]

    def find_by_respondent_id(self, respondent_id: str) -> List[SurveyResponse]:
        records = self.db.execute(
            select(SurveyResponseRecord)
            .where(SurveyResponseRecord.respondent_id == respondent_id)
            .order_by(SurveyResponseRecord.started_at)
        ).scalars().all()
        return [self._to_domain(r) for r in records]
