"""Gemini-backed question generator (google-genai).

Prompts are rendered with Jinja2, the model's JSON answer is parsed into
domain Questions, and every model call goes through a ResilientCaller. When
the model stays unreachable or returns nothing usable, the fixed fallback
questions from the question bank are returned so a respondent's session
always moves forward.
"""

import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types
from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.config import Settings
from app.domain.errors import DomainError, ServiceUnavailableError
from app.domain.question import Question, QuestionType
from app.logging_config import get_logger
from app.services.prompt_renderer import PromptRenderer, get_prompt_renderer
from app.services.question_generator import (
    DynamicQuestionParams,
    QuestionGenerationParams,
    QuestionGenerator,
    TemplateQuestionGenerator,
)
from app.services.resilience import ResilientCaller

logger = get_logger(__name__)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

_TYPE_ALIASES = {
    "rating": QuestionType.SCALE,
    "boolean": QuestionType.YES_NO,
}
_DEFAULT_SCALE_LABELS = ["Poor", "Excellent"]
_DEFAULT_YES_NO = ["Yes", "No"]


class GeneratedQuestionPayload(BaseModel):
    """One question as returned by the model."""

    text: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    options: Optional[List[Any]] = None


_PAYLOAD_LIST = TypeAdapter(List[Dict[str, Any]])


def extract_response_text(response: Any) -> str:
    """Normalize a google-genai response to plain text."""
    text = getattr(response, "text", None)
    if isinstance(text, str) and text:
        return text

    collected: List[str] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if isinstance(part_text, str) and part_text:
                collected.append(part_text)
    return "".join(collected)


def map_question_type(raw_type: str) -> QuestionType:
    """Map a model-provided type name onto a QuestionType (unknown → text)."""
    normalized = raw_type.strip().lower()
    if normalized in _TYPE_ALIASES:
        return _TYPE_ALIASES[normalized]
    try:
        return QuestionType(normalized)
    except ValueError:
        return QuestionType.TEXT


def _options_for(question_type: QuestionType, options: List[str]) -> List[str]:
    if question_type.is_scale:
        return [options[0], options[-1]] if len(options) >= 2 else list(_DEFAULT_SCALE_LABELS)
    if question_type is QuestionType.YES_NO:
        return options or list(_DEFAULT_YES_NO)
    if question_type.requires_options:
        return options
    return []


def parse_questions(raw_text: str) -> List[Question]:
    """Parse the model's JSON array into Questions, skipping invalid items.

    Returns:
        Parsed questions; empty when no JSON array could be found
    """
    cleaned = raw_text.strip()
    match = _CODE_BLOCK.search(cleaned)
    if match:
        json_text = match.group(1)
    else:
        array_match = _JSON_ARRAY.search(cleaned)
        if not array_match:
            logger.warning(f"No JSON array in model response: {cleaned[:200]!r}")
            return []
        json_text = array_match.group(0)

    json_text = _TRAILING_COMMA.sub(r"\1", json_text)
    try:
        items = _PAYLOAD_LIST.validate_json(json_text)
    except PydanticValidationError as e:
        logger.warning(f"Model response is not a JSON list of objects: {e}")
        return []

    questions: List[Question] = []
    for index, item in enumerate(items):
        try:
            payload = GeneratedQuestionPayload.model_validate(item)
            question_type = map_question_type(payload.type)
            options = [str(o).strip() for o in (payload.options or []) if str(o).strip()]
            questions.append(
                Question.create_ai_generated(
                    payload.text, question_type, _options_for(question_type, options)
                )
            )
        except (PydanticValidationError, DomainError) as e:
            logger.warning(f"Skipping generated question {index + 1}: {e}")
    return questions


class GeminiQuestionGenerator(QuestionGenerator):
    """Question generator calling a Gemini model through google-genai."""

    def __init__(
        self,
        client: genai.Client,
        model: str,
        caller: ResilientCaller,
        fallback: Optional[TemplateQuestionGenerator] = None,
        renderer: Optional[PromptRenderer] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 2000,
    ):
        self.client = client
        self.model = model
        self.caller = caller
        self.fallback = fallback or TemplateQuestionGenerator()
        self.renderer = renderer or get_prompt_renderer()
        self.config = types.GenerateContentConfig(
            temperature=temperature,
            top_p=0.9,
            max_output_tokens=max_output_tokens,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiQuestionGenerator":
        """Build a generator using an API key, or Vertex AI when no key is set."""
        if settings.gemini_api_key:
            client = genai.Client(api_key=settings.gemini_api_key)
        else:
            if not settings.google_cloud_project:
                raise ValueError(
                    "Gemini generation requires GEMINI_API_KEY or GOOGLE_CLOUD_PROJECT"
                )
            client = genai.Client(
                vertexai=True,
                project=settings.google_cloud_project,
                location=settings.google_cloud_location,
            )
        return cls(
            client=client,
            model=settings.gemini_model,
            caller=ResilientCaller.for_generator(settings, name="gemini"),
        )

    async def _generate_text(self, prompt: str) -> str:
        async def attempt() -> str:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self.config,
            )
            text = extract_response_text(response)
            if not text:
                raise ValueError("Empty response from model")
            return text

        return await self.caller.call(attempt)

    async def _generate(self, prompt: str, count: int, purpose: str) -> List[Question]:
        try:
            raw_text = await self._generate_text(prompt)
        except ServiceUnavailableError:
            logger.warning(f"Falling back to fixed questions for {purpose}")
            return self.fallback.fallback_questions(count)

        questions = parse_questions(raw_text)
        if not questions:
            logger.warning(f"No usable questions in model response for {purpose}")
            return self.fallback.fallback_questions(count)
        logger.info(f"Gemini produced {len(questions)} questions for {purpose}")
        return questions

    async def generate_questions(self, params: QuestionGenerationParams) -> List[Question]:
        prompt = self.renderer.render_generation_prompt({
            "count": params.question_count,
            "topic": params.topic,
            "target_audience": params.target_audience,
            "question_types": params.question_types,
            "goal": params.survey_goal,
        })
        questions = await self._generate(prompt, params.question_count, f"topic '{params.topic}'")
        return questions[:params.question_count]

    async def generate_dynamic_questions(self, params: DynamicQuestionParams) -> List[Question]:
        prompt = self.renderer.render_dynamic_prompt(params.to_context())
        return await self._generate(
            prompt, params.question_count, f"survey {params.survey_id}"
        )

    async def generate_dynamic_question(self, params: DynamicQuestionParams) -> Question:
        context = params.to_context()
        context["count"] = 1
        questions = await self._generate(
            self.renderer.render_dynamic_prompt(context), 1, f"survey {params.survey_id}"
        )
        return questions[0]

    async def is_available(self) -> bool:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents='Respond with "Available" to confirm service status.',
                config=types.GenerateContentConfig(max_output_tokens=10),
            )
        except Exception as e:
            logger.warning(f"Gemini availability check failed: {e}")
            return False
        return "available" in extract_response_text(response).lower()
