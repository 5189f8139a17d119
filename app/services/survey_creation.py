"""Survey creation use case.

Builds a Survey from manually authored questions and/or questions produced
by the question generator, persists it, and publishes its domain events.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from app.config import Settings, get_settings
from app.domain.errors import BusinessRuleViolation, DomainError, ValidationError
from app.domain.question import Question, QuestionType
from app.domain.survey import MAX_STATIC_QUESTIONS, Survey
from app.logging_config import get_logger
from app.repositories.base import SurveyRepository
from app.services.event_bus import EventBus
from app.services.question_generator import QuestionGenerationParams, QuestionGenerator

logger = get_logger(__name__)

MAX_AI_QUESTIONS = 20


class SurveyCreationError(Exception):
    """Raised when survey creation fails for a non-domain reason."""
    pass


@dataclass
class QuestionDraft:
    """A manually authored question."""

    text: str
    type: str
    options: List[str] = field(default_factory=list)
    is_required: bool = True


@dataclass
class AIGenerationRequest:
    """Parameters for generating questions at creation time."""

    topic: str
    question_count: int
    question_types: List[str] = field(default_factory=list)
    target_audience: Optional[str] = None
    survey_goal: Optional[str] = None


@dataclass
class CreateSurveyRequest:
    title: str
    description: Optional[str] = None
    owner_id: Optional[str] = None
    goal: Optional[str] = None
    max_questions: Optional[int] = None
    target_language: Optional[str] = None
    auto_translate: Optional[bool] = None
    questions: List[QuestionDraft] = field(default_factory=list)
    ai_generation: Optional[AIGenerationRequest] = None


@dataclass
class CreateSurveyResult:
    """Public state of a freshly created survey."""

    id: str
    title: str
    description: str
    goal: str
    max_questions: int
    target_language: str
    auto_translate: bool
    question_count: int
    questions: List[Question]
    is_active: bool
    created_at: datetime
    can_be_published: bool
    can_generate_dynamic_questions: bool

    @classmethod
    def from_survey(cls, survey: Survey) -> "CreateSurveyResult":
        return cls(
            id=survey.id,
            title=survey.title,
            description=survey.description,
            goal=survey.goal,
            max_questions=survey.max_questions,
            target_language=survey.target_language,
            auto_translate=survey.auto_translate,
            question_count=survey.question_count,
            questions=survey.questions,
            is_active=survey.is_active,
            created_at=survey.created_at,
            can_be_published=survey.can_be_published(),
            can_generate_dynamic_questions=survey.can_generate_dynamic_questions(),
        )


class SurveyCreationService:
    """Creates surveys from manual and generated questions."""

    def __init__(
        self,
        repository: SurveyRepository,
        generator: QuestionGenerator,
        event_bus: EventBus,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.generator = generator
        self.event_bus = event_bus
        self.settings = settings or get_settings()

    async def create(self, request: CreateSurveyRequest) -> CreateSurveyResult:
        """Create, persist and announce a new survey.

        Args:
            request: Survey definition

        Returns:
            CreateSurveyResult mirroring the stored survey

        Raises:
            DomainError: Validation or business-rule failures, unchanged
            SurveyCreationError: Persistence or generator failures
        """
        try:
            self._validate(request)

            survey = Survey.create(request.title, request.description, request.owner_id)
            self._apply_configuration(survey, request)

            for draft in request.questions:
                survey.add_question(
                    Question.create(
                        draft.text,
                        QuestionType.from_string(draft.type),
                        draft.options,
                        draft.is_required,
                    )
                )

            if request.ai_generation is not None:
                for question in await self._generate(request.ai_generation, survey.question_count):
                    survey.add_question(question)

            self.repository.save(survey)
            await self.event_bus.publish_all(survey.pull_domain_events())

            logger.info(
                f"Created survey '{survey.title}' with {survey.question_count} questions",
                extra={"survey_id": survey.id},
            )
            return CreateSurveyResult.from_survey(survey)

        except DomainError:
            raise
        except Exception as e:
            logger.error(f"Survey creation failed: {e}", exc_info=True)
            raise SurveyCreationError(f"Failed to create survey: {e}") from e

    @staticmethod
    def _validate(request: CreateSurveyRequest) -> None:
        if not request.title or not request.title.strip():
            raise ValidationError("Survey title is required")
        params = request.ai_generation
        if params is not None:
            if not params.topic or not params.topic.strip():
                raise ValidationError("AI generation topic is required")
            if (
                isinstance(params.question_count, bool)
                or not isinstance(params.question_count, int)
                or not 1 <= params.question_count <= MAX_AI_QUESTIONS
            ):
                raise ValidationError(
                    f"AI question count must be between 1 and {MAX_AI_QUESTIONS}"
                )

    def _apply_configuration(self, survey: Survey, request: CreateSurveyRequest) -> None:
        if request.goal:
            survey.set_goal(request.goal)
        survey.set_max_questions(
            request.max_questions
            if request.max_questions is not None
            else self.settings.default_max_questions
        )
        survey.set_target_language(
            request.target_language or self.settings.default_target_language
        )
        if request.auto_translate is not None:
            survey.set_auto_translate(request.auto_translate)

    async def _generate(self, params: AIGenerationRequest, existing_count: int) -> List[Question]:
        total = existing_count + params.question_count
        if total > MAX_STATIC_QUESTIONS:
            raise BusinessRuleViolation(
                f"Survey would exceed maximum questions limit ({total}/{MAX_STATIC_QUESTIONS})"
            )

        questions = await self.generator.generate_questions(
            QuestionGenerationParams(
                topic=params.topic.strip(),
                question_count=params.question_count,
                question_types=list(params.question_types),
                target_audience=params.target_audience,
                survey_goal=params.survey_goal,
            )
        )
        return questions[:params.question_count]
