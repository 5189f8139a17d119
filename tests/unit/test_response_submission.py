"""Unit tests for the response submission use case."""

from typing import List, Optional

import pytest

from app.domain import events
from app.services.dynamic_questions import SurveyLockRegistry
from app.services.response_submission import (
    AnswerSubmission,
    DynamicQuestionSubmission,
    ResponseSubmissionService,
    SubmitResponseRequest,
)
from app.services.translation import DEFAULT_LANGUAGES, TranslationService


class PrefixTranslationService(TranslationService):
    """Marks translated text with the target language."""

    def __init__(self):
        self.calls = []

    async def translate_text(self, text: str, target_language: str, source_language: Optional[str] = None) -> str:
        self.calls.append((text, target_language, source_language))
        return f"[{target_language}] {text}"

    async def translate_batch(self, texts: List[str], target_language: str, source_language: Optional[str] = None) -> List[str]:
        return [await self.translate_text(t, target_language, source_language) for t in texts]

    async def detect_language(self, text: str) -> str:
        return "en"

    async def get_supported_languages(self):
        return list(DEFAULT_LANGUAGES)


@pytest.fixture
def translation():
    return PrefixTranslationService()


@pytest.fixture
def service(survey_repository, response_repository, event_bus, translation):
    return ResponseSubmissionService(
        survey_repository, response_repository, event_bus, translation, SurveyLockRegistry()
    )


def answer_for(question, answer="Fine") -> AnswerSubmission:
    return AnswerSubmission(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type.value,
        answer=answer,
    )


class TestSubmit:
    """Tests for ResponseSubmissionService.submit."""

    @pytest.mark.asyncio
    async def test_success(self, service, stored_survey, response_repository, event_bus):
        """Test submitting answers to known questions."""
        request = SubmitResponseRequest(
            survey_id=stored_survey.id,
            responses=[answer_for(q) for q in stored_survey.questions],
            respondent_id="respondent-1",
        )

        result = await service.submit(request)

        assert result.success is True
        assert result.message == "Survey response submitted successfully"
        stored = response_repository.find_by_id(result.response_id)
        assert stored.response_count == 3
        assert stored.is_submitted is True
        assert [e.event_type for e in event_bus.published_events] == [
            events.SURVEY_RESPONSE_SUBMITTED
        ]

    @pytest.mark.asyncio
    async def test_unknown_survey(self, service):
        """Test that a missing survey is reported."""
        result = await service.submit(SubmitResponseRequest(survey_id="survey_missing", responses=[]))

        assert result.success is False
        assert result.message == "Survey not found"
        assert result.error_code == "ENTITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_empty_submission(self, service, stored_survey, response_repository):
        """Test that zero answers cannot be submitted."""
        result = await service.submit(SubmitResponseRequest(survey_id=stored_survey.id, responses=[]))

        assert result.success is False
        assert result.message == "Cannot submit empty response"
        assert response_repository.find_by_survey_id(stored_survey.id) == []

    @pytest.mark.asyncio
    async def test_unknown_question_skipped(self, service, stored_survey, response_repository):
        """Test that answers to unknown questions are skipped."""
        request = SubmitResponseRequest(
            survey_id=stored_survey.id,
            responses=[
                answer_for(stored_survey.questions[0]),
                AnswerSubmission("question_unknown", "Ghost", "text", "Boo"),
            ],
        )

        result = await service.submit(request)

        assert result.success is True
        stored = response_repository.find_by_id(result.response_id)
        assert stored.response_count == 1
        assert stored.get_answer("question_unknown") is None

    @pytest.mark.asyncio
    async def test_only_unknown_questions(self, service, stored_survey):
        """Test that skipping every answer leaves an empty response."""
        request = SubmitResponseRequest(
            survey_id=stored_survey.id,
            responses=[AnswerSubmission("question_unknown", "Ghost", "text", "Boo")],
        )

        result = await service.submit(request)

        assert result.success is False
        assert result.message == "Cannot submit empty response"

    @pytest.mark.asyncio
    async def test_invalid_answer_shape(self, service, stored_survey):
        """Test that an invalid answer fails the whole submission."""
        request = SubmitResponseRequest(
            survey_id=stored_survey.id,
            responses=[answer_for(stored_survey.questions[0], answer={"nested": True})],
        )

        result = await service.submit(request)

        assert result.success is False
        assert result.error_code == "VALIDATION_ERROR"


class TestDynamicQuestionMerge:
    """Tests for merging client-side dynamic questions on submission."""

    @pytest.mark.asyncio
    async def test_answers_to_merged_questions_are_kept(
        self, service, stored_survey, survey_repository, response_repository
    ):
        """Test that a dynamic question sent with the submission is stored and answered."""
        dynamic = DynamicQuestionSubmission(
            id="question_dynamic_1", text="What slowed you down?", type="text"
        )
        request = SubmitResponseRequest(
            survey_id=stored_survey.id,
            responses=[
                answer_for(stored_survey.questions[0]),
                AnswerSubmission(dynamic.id, dynamic.text, "text", "Setup docs"),
            ],
            dynamic_questions=[dynamic],
        )

        result = await service.submit(request)

        assert result.success is True
        survey = survey_repository.find_by_id(stored_survey.id)
        assert [q.id for q in survey.dynamic_questions] == ["question_dynamic_1"]
        assert survey.dynamic_questions[0].is_ai_generated is True
        assert response_repository.find_by_id(result.response_id).response_count == 2

    @pytest.mark.asyncio
    async def test_invalid_dynamic_question_skipped(
        self, service, stored_survey, survey_repository, response_repository
    ):
        """Test that a choice question without options is not merged."""
        broken = DynamicQuestionSubmission(
            id="question_dynamic_bad", text="Pick one", type="single_choice", options=[]
        )
        valid = DynamicQuestionSubmission(
            id="question_dynamic_ok", text="Pick a plan", type="single_choice", options=["Free", "Pro"]
        )
        request = SubmitResponseRequest(
            survey_id=stored_survey.id,
            responses=[
                answer_for(stored_survey.questions[0]),
                AnswerSubmission(broken.id, broken.text, "single_choice", "Free"),
            ],
            dynamic_questions=[broken, valid],
        )

        result = await service.submit(request)

        assert result.success is True
        survey = survey_repository.find_by_id(stored_survey.id)
        assert [q.id for q in survey.dynamic_questions] == ["question_dynamic_ok"]
        assert survey.dynamic_questions[0].options == ["Free", "Pro"]
        assert response_repository.find_by_id(result.response_id).response_count == 1

    @pytest.mark.asyncio
    async def test_existing_dynamic_question_not_duplicated(
        self, service, stored_survey, survey_repository
    ):
        """Test that resubmitting a known question id does not add it twice."""
        dynamic = DynamicQuestionSubmission(id=stored_survey.questions[0].id, text="Dup", type="text")
        request = SubmitResponseRequest(
            survey_id=stored_survey.id,
            responses=[answer_for(stored_survey.questions[0])],
            dynamic_questions=[dynamic],
        )

        await service.submit(request)

        assert survey_repository.find_by_id(stored_survey.id).dynamic_question_count == 0

    @pytest.mark.asyncio
    async def test_translated_when_languages_differ(
        self, service, survey_repository, make_survey, translation
    ):
        """Test that merged questions are translated to the survey language."""
        survey = make_survey()
        survey.set_auto_translate(True)
        survey.set_target_language("en")
        survey_repository.save(survey)

        dynamic = DynamicQuestionSubmission(
            id="question_dynamic_1", text="¿Qué mejorarías?", type="single_choice",
            options=["Docs", "Onboarding"],
        )
        request = SubmitResponseRequest(
            survey_id=survey.id,
            responses=[answer_for(survey.questions[0])],
            metadata={"user_language": "es"},
            dynamic_questions=[dynamic],
        )

        await service.submit(request)

        merged = survey_repository.find_by_id(survey.id).dynamic_questions[0]
        assert merged.text == "[en] ¿Qué mejorarías?"
        assert merged.options == ["[en] Docs", "[en] Onboarding"]
        assert translation.calls[0][2] == "es"

    @pytest.mark.asyncio
    async def test_not_translated_when_already_applied(
        self, service, survey_repository, make_survey, translation
    ):
        """Test that translation_applied metadata skips translation."""
        survey = make_survey()
        survey.set_auto_translate(True)
        survey_repository.save(survey)

        request = SubmitResponseRequest(
            survey_id=survey.id,
            responses=[answer_for(survey.questions[0])],
            metadata={"user_language": "es", "translation_applied": True},
            dynamic_questions=[DynamicQuestionSubmission(id="question_d", text="Hola", type="text")],
        )

        await service.submit(request)

        assert translation.calls == []
        assert survey_repository.find_by_id(survey.id).dynamic_questions[0].text == "Hola"

    @pytest.mark.asyncio
    async def test_merge_respects_question_limit(
        self, service, survey_repository, make_survey
    ):
        """Test that merging stops when the survey is full but submission succeeds."""
        survey = make_survey(static_questions=5, max_questions=5)
        survey_repository.save(survey)

        request = SubmitResponseRequest(
            survey_id=survey.id,
            responses=[answer_for(survey.questions[0])],
            dynamic_questions=[DynamicQuestionSubmission(id="question_d", text="Extra", type="text")],
        )

        result = await service.submit(request)

        assert result.success is True
        assert survey_repository.find_by_id(survey.id).dynamic_question_count == 0
