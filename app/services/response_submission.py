"""Survey response submission use case.

Matches incoming answers against the survey's combined static and dynamic
question list, finalizes a SurveyResponse and persists it. Answers that
reference unknown question ids are skipped, so dynamic questions that have
not reached the stored survey yet never block a submission.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.domain.errors import DomainError, NotFoundError, ValidationError
from app.domain.question import Question, QuestionType
from app.domain.survey import Survey
from app.domain.survey_response import AnswerValue, SurveyResponse
from app.logging_config import get_logger
from app.repositories.base import SurveyRepository, SurveyResponseRepository
from app.services.dynamic_questions import SurveyLockRegistry, get_survey_locks
from app.services.event_bus import EventBus
from app.services.translation import TranslationService

logger = get_logger(__name__)


@dataclass
class AnswerSubmission:
    question_id: str
    question_text: str
    question_type: str
    answer: AnswerValue


@dataclass
class DynamicQuestionSubmission:
    """A dynamic question the client generated and showed during the session."""

    id: str
    text: str
    type: str
    options: List[str] = field(default_factory=list)


@dataclass
class SubmitResponseRequest:
    survey_id: str
    responses: List[AnswerSubmission]
    respondent_id: Optional[str] = None
    respondent_email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    dynamic_questions: List[DynamicQuestionSubmission] = field(default_factory=list)


@dataclass
class SubmissionResult:
    success: bool
    message: str
    response_id: Optional[str] = None
    error_code: Optional[str] = None


class ResponseSubmissionService:
    """Validates and stores a respondent's answers."""

    def __init__(
        self,
        survey_repository: SurveyRepository,
        response_repository: SurveyResponseRepository,
        event_bus: Optional[EventBus] = None,
        translation: Optional[TranslationService] = None,
        locks: Optional[SurveyLockRegistry] = None,
    ):
        self.survey_repository = survey_repository
        self.response_repository = response_repository
        self.event_bus = event_bus
        self.translation = translation
        self.locks = locks if locks is not None else get_survey_locks()

    async def submit(self, request: SubmitResponseRequest) -> SubmissionResult:
        """Submit a response. Never raises; failures come back in the result."""
        try:
            if not isinstance(request.responses, list):
                raise ValidationError("Responses must be a list")

            survey = self.survey_repository.find_by_id_string(request.survey_id)
            if survey is None:
                raise NotFoundError("Survey not found")

            if request.dynamic_questions:
                await self._merge_dynamic_questions(survey, request)

            response = SurveyResponse.create(
                survey.id,
                request.respondent_id,
                request.respondent_email,
                request.metadata,
            )

            for item in request.responses:
                if survey.find_question(item.question_id) is None:
                    logger.warning(
                        f"Skipping answer for unknown question {item.question_id}",
                        extra={"survey_id": survey.id, "question_id": item.question_id},
                    )
                    continue
                response.add_response(
                    item.question_id, item.question_text, item.question_type, item.answer
                )

            response.submit()
            self.response_repository.save(response)
            pending = response.pull_domain_events()
            if self.event_bus is not None:
                await self.event_bus.publish_all(pending)

            logger.info(
                f"Response submitted with {response.response_count} answers",
                extra={"survey_id": survey.id, "response_id": response.id},
            )
            return SubmissionResult(
                success=True,
                response_id=response.id,
                message="Survey response submitted successfully",
            )

        except DomainError as e:
            logger.warning(
                f"Response submission rejected: {e}",
                extra={"survey_id": request.survey_id},
            )
            return SubmissionResult(success=False, message=str(e), error_code=e.code)
        except Exception as e:
            logger.error(
                f"Error submitting survey response: {e}",
                exc_info=True,
                extra={"survey_id": request.survey_id},
            )
            return SubmissionResult(
                success=False,
                message=f"Failed to submit response: {e}",
                error_code="INTERNAL_ERROR",
            )

    def _needs_translation(self, survey: Survey, metadata: Dict[str, Any]) -> Optional[str]:
        """Return the respondent's language when merged questions should be translated."""
        if self.translation is None or not survey.auto_translate:
            return None
        if metadata.get("translation_applied"):
            return None
        user_language = metadata.get("user_language") or "en"
        if user_language == survey.target_language:
            return None
        return user_language

    async def _merge_dynamic_questions(self, survey: Survey, request: SubmitResponseRequest) -> None:
        """Append client-side dynamic questions to the survey and save it.

        Failures are logged and never block the submission.
        """
        source_language = self._needs_translation(survey, request.metadata)
        async with self.locks.lock_for(survey.id):
            merged = 0
            for submitted in request.dynamic_questions:
                if survey.find_question(submitted.id) is not None:
                    continue
                try:
                    text, options = submitted.text, list(submitted.options)
                    if source_language:
                        text = await self.translation.translate_text(
                            text, survey.target_language, source_language
                        )
                        if options:
                            options = await self.translation.translate_batch(
                                options, survey.target_language, source_language
                            )
                    question = Question.create_ai_generated(
                        text,
                        QuestionType.from_string(submitted.type),
                        options,
                        is_required=False,
                        question_id=submitted.id,
                    )
                    survey.add_dynamic_question(question)
                    merged += 1
                except Exception as e:
                    logger.warning(
                        f"Could not merge dynamic question {submitted.id}: {e}",
                        extra={"survey_id": survey.id, "question_id": submitted.id},
                    )

            if not merged:
                return
            try:
                self.survey_repository.save(survey)
                pending = survey.pull_domain_events()
                if self.event_bus is not None:
                    await self.event_bus.publish_all(pending)
                logger.info(
                    f"Merged {merged} dynamic questions into survey",
                    extra={"survey_id": survey.id},
                )
            except Exception as e:
                logger.warning(
                    f"Failed to save merged dynamic questions: {e}",
                    extra={"survey_id": survey.id},
                )
