"""Question generator contract and the deterministic template generator.

Use cases depend only on :class:`QuestionGenerator`. The template generator
builds questions from the YAML question bank and is used in development, in
tests, and as the fallback source for the Gemini generator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.config import get_settings
from app.domain.question import Question
from app.domain.survey_response import AnswerValue
from app.logging_config import get_logger
from app.schemas.question_bank import QuestionBank, QuestionTemplate
from app.services.prompt_renderer import PromptRenderer, get_prompt_renderer
from app.services.question_bank import QuestionBankLoader, get_question_bank_loader

logger = get_logger(__name__)


@dataclass
class PreviousAnswer:
    """An answer the respondent already gave, used as generation context."""

    question_id: str
    question_text: str
    question_type: str
    answer: AnswerValue
    answered_at: Optional[datetime] = None

    @property
    def answer_text(self) -> str:
        if isinstance(self.answer, list):
            return ", ".join(str(item) for item in self.answer)
        return str(self.answer)

    def to_context(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "answer_text": self.answer_text,
        }


@dataclass
class QuestionGenerationParams:
    """Authoring-time generation request."""

    topic: str
    question_count: int
    question_types: List[str] = field(default_factory=list)
    target_audience: Optional[str] = None
    survey_goal: Optional[str] = None


@dataclass
class DynamicQuestionParams:
    """In-session generation request built from a survey and prior answers."""

    survey_id: str
    goal: str
    previous_answers: List[PreviousAnswer]
    current_question_index: int
    max_questions: int
    target_language: str
    question_count: int = 1

    def to_context(self) -> Dict[str, Any]:
        return {
            "goal": self.goal,
            "previous_answers": [answer.to_context() for answer in self.previous_answers],
            "current_question_index": self.current_question_index,
            "max_questions": self.max_questions,
            "target_language": self.target_language,
            "count": self.question_count,
        }


class QuestionGenerator(ABC):
    """Contract for anything that produces survey questions."""

    @abstractmethod
    async def generate_questions(self, params: QuestionGenerationParams) -> List[Question]:
        """Generate authoring-time questions for a topic."""

    @abstractmethod
    async def generate_dynamic_question(self, params: DynamicQuestionParams) -> Question:
        """Generate exactly one follow-up question."""

    @abstractmethod
    async def generate_dynamic_questions(self, params: DynamicQuestionParams) -> List[Question]:
        """Generate follow-up questions; may return more or fewer than requested."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Report whether the generator can currently serve requests."""


def build_question(template: QuestionTemplate, text: str) -> Question:
    return Question.create_ai_generated(text, template.type, template.options)


class TemplateQuestionGenerator(QuestionGenerator):
    """Deterministic generator backed by the YAML question bank."""

    def __init__(
        self,
        loader: Optional[QuestionBankLoader] = None,
        renderer: Optional[PromptRenderer] = None,
    ):
        self.loader = loader or get_question_bank_loader()
        self.renderer = renderer or get_prompt_renderer()

    @property
    def bank(self) -> QuestionBank:
        return self.loader.load()

    def _render(self, templates: List[QuestionTemplate], context: Dict[str, Any]) -> List[Question]:
        return [
            build_question(template, self.renderer.render(template.text, context).strip())
            for template in templates
        ]

    async def generate_questions(self, params: QuestionGenerationParams) -> List[Question]:
        topic_set = self.bank.topic_for(params.topic)
        templates = topic_set.questions if topic_set else self.bank.default

        if params.question_types:
            wanted = set(params.question_types)
            filtered = [t for t in templates if t.type.value in wanted]
            templates = filtered or templates

        questions = self._render(
            templates[:params.question_count], {"topic": params.topic}
        )
        logger.info(
            f"Template generator produced {len(questions)} questions for topic "
            f"'{params.topic}' ({topic_set.name if topic_set else 'default'})"
        )
        return questions

    async def generate_dynamic_questions(self, params: DynamicQuestionParams) -> List[Question]:
        candidates = [
            t for t in self.bank.follow_up
            if params.previous_answers or not t.requires_answer
        ]
        if not candidates:
            return []

        # Rotate by position so consecutive calls in a session differ
        start = params.current_question_index % len(candidates)
        rotated = candidates[start:] + candidates[:start]

        last = params.previous_answers[-1] if params.previous_answers else None
        context = {
            "goal": params.goal,
            "last_question": last.question_text if last else "",
            "last_answer": last.answer_text if last else "",
            "answer_count": len(params.previous_answers),
        }
        questions = self._render(rotated[:params.question_count], context)
        logger.debug(
            f"Template generator produced {len(questions)} dynamic questions",
            extra={"survey_id": params.survey_id},
        )
        return questions

    async def generate_dynamic_question(self, params: DynamicQuestionParams) -> Question:
        single = DynamicQuestionParams(
            survey_id=params.survey_id,
            goal=params.goal,
            previous_answers=params.previous_answers,
            current_question_index=params.current_question_index,
            max_questions=params.max_questions,
            target_language=params.target_language,
            question_count=1,
        )
        questions = await self.generate_dynamic_questions(single)
        if questions:
            return questions[0]
        return self.fallback_questions(1)[0]

    def fallback_questions(self, count: Optional[int] = None) -> List[Question]:
        """Build fresh copies of the fixed fallback questions."""
        templates = self.bank.fallback if count is None else self.bank.fallback[:count]
        return [build_question(t, t.text) for t in templates]

    async def is_available(self) -> bool:
        return True


# Global singleton instance
_generator_instance: Optional[QuestionGenerator] = None


def get_question_generator() -> QuestionGenerator:
    """Get the global question generator selected by ``generator_provider``.

    Returns:
        GeminiQuestionGenerator when the provider is ``gemini``, otherwise
        TemplateQuestionGenerator
    """
    global _generator_instance
    if _generator_instance is None:
        settings = get_settings()
        if settings.generator_provider == "gemini":
            from app.services.gemini_generator import GeminiQuestionGenerator

            _generator_instance = GeminiQuestionGenerator.from_settings(settings)
        else:
            _generator_instance = TemplateQuestionGenerator()
        logger.info(f"Question generator: {type(_generator_instance).__name__}")
    return _generator_instance
