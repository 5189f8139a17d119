"""Unit tests for the Gemini question generator.

The google-genai client is replaced with a mock whose
``aio.models.generate_content`` is an AsyncMock.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.question import QuestionType
from app.services.gemini_generator import (
    GeminiQuestionGenerator,
    extract_response_text,
    map_question_type,
    parse_questions,
)
from app.services.question_bank import QuestionBankLoader
from app.services.question_generator import (
    DynamicQuestionParams,
    PreviousAnswer,
    QuestionGenerationParams,
    TemplateQuestionGenerator,
)
from app.services.resilience import ResilientCaller

MODEL_JSON = """```json
[
  {"text": "Which step took longest?", "type": "multiple_choice", "options": ["Setup", "Docs", "Access"]},
  {"text": "Rate the onboarding", "type": "rating", "options": ["Bad", "Okay", "Great"]},
  {"text": "Did you get a buddy?", "type": "boolean", "options": null},
]
```"""


def mock_client(*, text=None, side_effect=None):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text=text, candidates=None),
        side_effect=side_effect,
    )
    return client


def make_generator(client) -> GeminiQuestionGenerator:
    return GeminiQuestionGenerator(
        client=client,
        model="gemini-2.5-flash",
        caller=ResilientCaller(
            "gemini",
            max_attempts=2,
            backoff_base_seconds=0,
            backoff_max_seconds=0,
            timeout_seconds=1.0,
        ),
        fallback=TemplateQuestionGenerator(loader=QuestionBankLoader()),
    )


def dynamic_params(count: int = 1) -> DynamicQuestionParams:
    return DynamicQuestionParams(
        survey_id="survey_1",
        goal="improve onboarding",
        previous_answers=[PreviousAnswer("q1", "How was day one?", "text", "Slow")],
        current_question_index=1,
        max_questions=10,
        target_language="en",
        question_count=count,
    )


class TestParsing:
    """Tests for model response parsing helpers."""

    def test_parse_code_block_with_trailing_comma(self):
        """Test parsing a fenced JSON array with a trailing comma."""
        questions = parse_questions(MODEL_JSON)

        assert [q.type for q in questions] == [
            QuestionType.MULTIPLE_CHOICE, QuestionType.SCALE, QuestionType.YES_NO
        ]
        assert questions[1].options == ["Bad", "Great"]
        assert questions[2].options == ["Yes", "No"]
        assert all(q.is_ai_generated for q in questions)

    def test_parse_bare_array_in_prose(self):
        """Test that an array embedded in prose is found."""
        raw = 'Here you go: [{"text": "Why?", "type": "text", "options": null}] Hope it helps!'
        questions = parse_questions(raw)

        assert len(questions) == 1
        assert questions[0].options == []

    def test_invalid_items_skipped(self):
        """Test that items breaking question rules are dropped."""
        raw = """[
            {"text": "Pick one", "type": "multiple_choice", "options": ["Only"]},
            {"text": "", "type": "text"},
            {"text": "Valid one", "type": "text"}
        ]"""
        questions = parse_questions(raw)

        assert [q.text for q in questions] == ["Valid one"]

    def test_no_json(self):
        """Test that a response without JSON yields nothing."""
        assert parse_questions("Sorry, I cannot help with that.") == []

    @pytest.mark.parametrize("raw,expected", [
        ("rating", QuestionType.SCALE),
        ("Boolean", QuestionType.YES_NO),
        ("single_choice", QuestionType.SINGLE_CHOICE),
        ("slider", QuestionType.TEXT),
    ])
    def test_map_question_type(self, raw, expected):
        """Test mapping of model type names."""
        assert map_question_type(raw) is expected

    def test_extract_text_from_candidates(self):
        """Test joining candidate parts when .text is empty."""
        part = SimpleNamespace(text="[]")
        response = SimpleNamespace(
            text=None,
            candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))],
        )
        assert extract_response_text(response) == "[]"


class TestGeminiQuestionGenerator:
    """Tests for GeminiQuestionGenerator."""

    @pytest.mark.asyncio
    async def test_generate_questions_trims_to_count(self):
        """Test that authoring-time generation returns at most the requested count."""
        client = mock_client(text=MODEL_JSON)
        generator = make_generator(client)

        questions = await generator.generate_questions(
            QuestionGenerationParams(topic="onboarding", question_count=2)
        )

        assert len(questions) == 2
        call = client.aio.models.generate_content.call_args
        assert call.kwargs["model"] == "gemini-2.5-flash"
        assert 'Generate exactly 2 high-quality survey questions about "onboarding"' in call.kwargs["contents"]

    @pytest.mark.asyncio
    async def test_dynamic_prompt_includes_answers(self):
        """Test that the dynamic prompt carries goal and previous answers."""
        client = mock_client(text=MODEL_JSON)
        generator = make_generator(client)

        question = await generator.generate_dynamic_question(dynamic_params())

        assert question.text == "Which step took longest?"
        prompt = client.aio.models.generate_content.call_args.kwargs["contents"]
        assert "Survey goal: improve onboarding" in prompt
        assert "A: Slow" in prompt
        assert "Generate exactly 1 follow-up question " in prompt

    @pytest.mark.asyncio
    async def test_unreachable_model_falls_back(self):
        """Test that exhausted retries return the fixed fallback questions."""
        client = mock_client(side_effect=ConnectionError("unreachable"))
        generator = make_generator(client)

        questions = await generator.generate_dynamic_questions(dynamic_params(count=2))

        assert [q.text for q in questions] == [
            "How would you rate your overall experience?",
            "What did you like most about our service?",
        ]
        assert client.aio.models.generate_content.await_count == 2

    @pytest.mark.asyncio
    async def test_unusable_response_falls_back(self):
        """Test that a response without questions returns the fallback set."""
        generator = make_generator(mock_client(text="no json here"))

        question = await generator.generate_dynamic_question(dynamic_params())

        assert question.text == "How would you rate your overall experience?"

    @pytest.mark.asyncio
    async def test_is_available(self):
        """Test the availability probe."""
        assert await make_generator(mock_client(text="Available")).is_available() is True
        assert await make_generator(mock_client(side_effect=RuntimeError("x"))).is_available() is False
