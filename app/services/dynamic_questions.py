"""Dynamic question orchestration.

Coordinates a Survey with the question generator for the three in-session
flows: generate one question, generate a batch, and regenerate the dynamic
questions after the respondent changed earlier answers.

Input shape is validated eagerly and raises ValidationError before any I/O.
Every other failure (missing survey, ineligibility, generator or persistence
errors) is returned as an unsuccessful result object.

Mutations of one survey are serialized through a per-survey asyncio lock,
and the repository's version check rejects writes based on a stale read.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from app.domain.errors import BusinessRuleViolation, DomainError, NotFoundError, ValidationError
from app.domain.question import Question
from app.domain.survey import Survey
from app.logging_config import get_logger
from app.repositories.base import SurveyRepository
from app.services.event_bus import EventBus
from app.services.question_generator import (
    DynamicQuestionParams,
    PreviousAnswer,
    QuestionGenerator,
)

logger = get_logger(__name__)

MAX_BATCH_SIZE = 10


class SurveyLockRegistry:
    """One asyncio.Lock per survey id, held only while someone uses it.

    A lock is dropped as soon as its last holder or waiter leaves, so the
    registry only ever contains ids with work in flight.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def lock_for(self, survey_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(survey_id)
        if lock is None:
            lock = self._locks[survey_id] = asyncio.Lock()
            self._users[survey_id] = 0
        self._users[survey_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[survey_id] -= 1
            if self._users[survey_id] == 0:
                del self._users[survey_id]
                del self._locks[survey_id]

    def __len__(self) -> int:
        return len(self._locks)


_lock_registry: Optional[SurveyLockRegistry] = None


def get_survey_locks() -> SurveyLockRegistry:
    """Get the process-wide lock registry shared by all orchestrators."""
    global _lock_registry
    if _lock_registry is None:
        _lock_registry = SurveyLockRegistry()
    return _lock_registry


def _error_code(error: Exception) -> str:
    return error.code if isinstance(error, DomainError) else "INTERNAL_ERROR"


def _error_message(error: Exception) -> str:
    return str(error) if isinstance(error, DomainError) else f"Unexpected error: {error}"


@dataclass
class GenerateQuestionResult:
    success: bool
    survey_id: str
    question: Optional[Question] = None
    total_questions: int = 0
    can_generate_more: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class GenerateQuestionsResult:
    success: bool
    survey_id: str
    questions: List[Question] = field(default_factory=list)
    total_questions: int = 0
    requested_count: int = 0
    generated_count: int = 0
    can_generate_more: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class RegenerateQuestionsResult:
    success: bool
    survey_id: str
    questions: List[Question] = field(default_factory=list)
    previous_dynamic_count: int = 0
    new_dynamic_count: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None


def _check_survey_id(survey_id: Any) -> None:
    if not isinstance(survey_id, str) or not survey_id.strip():
        raise ValidationError("Survey id is required")


def _check_index(current_question_index: Any) -> None:
    if (
        isinstance(current_question_index, bool)
        or not isinstance(current_question_index, int)
        or current_question_index < 0
    ):
        raise ValidationError("Current question index must be a non-negative integer")


def _coerce_answers(answers: Any, name: str) -> List[PreviousAnswer]:
    if not isinstance(answers, list):
        raise ValidationError(f"{name} must be a list")

    coerced = []
    for item in answers:
        if isinstance(item, PreviousAnswer):
            coerced.append(item)
        elif isinstance(item, dict) and "question_id" in item and "answer" in item:
            coerced.append(
                PreviousAnswer(
                    question_id=str(item["question_id"]),
                    question_text=str(item.get("question_text", "")),
                    question_type=str(item.get("question_type", "text")),
                    answer=item["answer"],
                    answered_at=item.get("answered_at"),
                )
            )
        else:
            raise ValidationError(f"Invalid entry in {name}: {item!r}")
    return coerced


def _check_batch_size(question_count: Any) -> None:
    if (
        isinstance(question_count, bool)
        or not isinstance(question_count, int)
        or not 1 <= question_count <= MAX_BATCH_SIZE
    ):
        raise ValidationError(f"Question count must be between 1 and {MAX_BATCH_SIZE}")


class DynamicQuestionOrchestrator:
    """Generates and appends dynamic questions for a survey."""

    def __init__(
        self,
        repository: SurveyRepository,
        generator: QuestionGenerator,
        event_bus: Optional[EventBus] = None,
        locks: Optional[SurveyLockRegistry] = None,
    ):
        self.repository = repository
        self.generator = generator
        self.event_bus = event_bus
        self.locks = locks if locks is not None else get_survey_locks()

    # Shared steps

    def _load(self, survey_id: str) -> Survey:
        survey = self.repository.find_by_id_string(survey_id)
        if survey is None:
            raise NotFoundError.for_entity("Survey", survey_id)
        return survey

    @staticmethod
    def _ensure_eligible(survey: Survey) -> None:
        if not survey.goal.strip():
            raise BusinessRuleViolation(
                "Dynamic question generation is disabled: survey has no goal"
            )
        if survey.available_slots == 0:
            raise BusinessRuleViolation(
                f"Dynamic question limit reached "
                f"({survey.total_question_count}/{survey.max_questions})"
            )

    @staticmethod
    def _params(
        survey: Survey,
        answers: Sequence[PreviousAnswer],
        current_question_index: int,
        count: int,
    ) -> DynamicQuestionParams:
        return DynamicQuestionParams(
            survey_id=survey.id,
            goal=survey.goal,
            previous_answers=list(answers),
            current_question_index=current_question_index,
            max_questions=survey.max_questions,
            target_language=survey.target_language,
            question_count=count,
        )

    async def _persist(self, survey: Survey) -> None:
        self.repository.save(survey)
        pending = survey.pull_domain_events()
        if self.event_bus is not None:
            await self.event_bus.publish_all(pending)

    async def _append_batch(
        self,
        survey: Survey,
        answers: Sequence[PreviousAnswer],
        current_question_index: int,
        question_count: int,
    ) -> List[Question]:
        """Generate up to ``question_count`` questions and append what fits."""
        self._ensure_eligible(survey)
        to_request = min(question_count, survey.available_slots)

        generated = await self.generator.generate_dynamic_questions(
            self._params(survey, answers, current_question_index, to_request)
        )

        appended: List[Question] = []
        for question in generated:
            if len(appended) >= to_request or not survey.can_generate_dynamic_questions():
                break
            survey.add_dynamic_question(question)
            appended.append(question)

        if len(generated) != len(appended):
            logger.info(
                f"Generator returned {len(generated)} questions, appended {len(appended)}",
                extra={"survey_id": survey.id},
            )
        return appended

    # Operations

    async def generate_one(
        self,
        survey_id: str,
        previous_answers: List[Any],
        current_question_index: int,
    ) -> GenerateQuestionResult:
        """Generate and append a single dynamic question.

        Raises:
            ValidationError: If the input shape is invalid (before any I/O)
        """
        _check_survey_id(survey_id)
        answers = _coerce_answers(previous_answers, "Previous answers")
        _check_index(current_question_index)

        async with self.locks.lock_for(survey_id):
            try:
                survey = self._load(survey_id)
                self._ensure_eligible(survey)

                question = await self.generator.generate_dynamic_question(
                    self._params(survey, answers, current_question_index, 1)
                )
                survey.add_dynamic_question(question)
                await self._persist(survey)

                logger.info(
                    "Dynamic question generated",
                    extra={"survey_id": survey_id, "question_id": question.id},
                )
                return GenerateQuestionResult(
                    success=True,
                    survey_id=survey.id,
                    question=question,
                    total_questions=survey.total_question_count,
                    can_generate_more=survey.can_generate_dynamic_questions(),
                )
            except Exception as e:
                self._log_failure("generate dynamic question", survey_id, e)
                return GenerateQuestionResult(
                    success=False,
                    survey_id=survey_id,
                    error=_error_message(e),
                    error_code=_error_code(e),
                )

    async def generate_multiple(
        self,
        survey_id: str,
        previous_answers: List[Any],
        current_question_index: int,
        question_count: int,
    ) -> GenerateQuestionsResult:
        """Generate a batch, never exceeding the survey's remaining slots.

        Raises:
            ValidationError: If the input shape is invalid (before any I/O)
        """
        _check_survey_id(survey_id)
        answers = _coerce_answers(previous_answers, "Previous answers")
        _check_index(current_question_index)
        _check_batch_size(question_count)

        async with self.locks.lock_for(survey_id):
            try:
                survey = self._load(survey_id)
                appended = await self._append_batch(
                    survey, answers, current_question_index, question_count
                )
                if appended:
                    await self._persist(survey)

                logger.info(
                    f"Generated {len(appended)} of {question_count} requested dynamic questions",
                    extra={"survey_id": survey_id},
                )
                return GenerateQuestionsResult(
                    success=True,
                    survey_id=survey.id,
                    questions=appended,
                    total_questions=survey.total_question_count,
                    requested_count=question_count,
                    generated_count=len(appended),
                    can_generate_more=survey.can_generate_dynamic_questions(),
                )
            except Exception as e:
                self._log_failure("generate dynamic questions", survey_id, e)
                return GenerateQuestionsResult(
                    success=False,
                    survey_id=survey_id,
                    requested_count=question_count,
                    error=_error_message(e),
                    error_code=_error_code(e),
                )

    async def regenerate(
        self,
        survey_id: str,
        updated_answers: List[Any],
        current_question_index: int,
        desired_count: Optional[int] = None,
    ) -> RegenerateQuestionsResult:
        """Replace all dynamic questions with a freshly generated set.

        When ``desired_count`` is omitted, the previous dynamic question count
        is requested again (capped at the batch size); an explicit count above
        the batch size fails without touching the survey. The cleared survey is
        only persisted if the whole flow succeeds.

        Raises:
            ValidationError: If the input shape is invalid (before any I/O)
        """
        _check_survey_id(survey_id)
        answers = _coerce_answers(updated_answers, "Updated answers")
        _check_index(current_question_index)
        if desired_count is not None and (
            isinstance(desired_count, bool)
            or not isinstance(desired_count, int)
            or desired_count < 0
        ):
            raise ValidationError("Desired count must be a non-negative integer")

        async with self.locks.lock_for(survey_id):
            previous_count = 0
            try:
                survey = self._load(survey_id)
                previous_count = survey.dynamic_question_count

                if desired_count is None:
                    count = min(previous_count, MAX_BATCH_SIZE)
                elif desired_count > MAX_BATCH_SIZE:
                    raise ValidationError(
                        f"Cannot generate more than {MAX_BATCH_SIZE} questions at once"
                    )
                else:
                    count = desired_count

                survey.clear_dynamic_questions()

                questions: List[Question] = []
                if count > 0:
                    questions = await self._append_batch(
                        survey, answers, current_question_index, count
                    )
                await self._persist(survey)

                logger.info(
                    f"Regenerated dynamic questions: {previous_count} -> "
                    f"{survey.dynamic_question_count}",
                    extra={"survey_id": survey_id},
                )
                return RegenerateQuestionsResult(
                    success=True,
                    survey_id=survey.id,
                    questions=questions,
                    previous_dynamic_count=previous_count,
                    new_dynamic_count=survey.dynamic_question_count,
                )
            except Exception as e:
                self._log_failure("regenerate dynamic questions", survey_id, e)
                return RegenerateQuestionsResult(
                    success=False,
                    survey_id=survey_id,
                    previous_dynamic_count=previous_count,
                    error=_error_message(e),
                    error_code=_error_code(e),
                )

    @staticmethod
    def _log_failure(action: str, survey_id: str, error: Exception) -> None:
        if isinstance(error, DomainError):
            logger.warning(
                f"Could not {action}: {error}",
                extra={"survey_id": survey_id},
            )
        else:
            logger.error(
                f"Failed to {action}: {error}",
                exc_info=True,
                extra={"survey_id": survey_id},
            )
