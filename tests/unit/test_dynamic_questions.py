"""Unit tests for the dynamic question orchestrator.

Uses the in-memory repository and a deterministic stub generator, so every
test exercises the real load → check → generate → append → save flow.
"""

import asyncio

import pytest

from app.domain import events
from app.domain.errors import ServiceUnavailableError, ValidationError
from app.services.dynamic_questions import (
    DynamicQuestionOrchestrator,
    SurveyLockRegistry,
)
from app.services.question_generator import PreviousAnswer

ANSWERS = [
    {
        "question_id": "q1",
        "question_text": "How was your first day?",
        "question_type": "text",
        "answer": "Confusing",
    }
]


@pytest.fixture
def orchestrator(survey_repository, stub_generator, event_bus):
    return DynamicQuestionOrchestrator(
        survey_repository, stub_generator, event_bus, SurveyLockRegistry()
    )


def save(repository, survey):
    repository.save(survey)
    return survey.id


class TestInputValidation:
    """Input shape errors are raised before any I/O."""

    @pytest.mark.asyncio
    async def test_blank_survey_id(self, orchestrator, stub_generator):
        """Test that a blank survey id raises ValidationError."""
        with pytest.raises(ValidationError, match="Survey id is required"):
            await orchestrator.generate_one("  ", ANSWERS, 0)
        assert stub_generator.calls == []

    @pytest.mark.asyncio
    async def test_answers_must_be_list(self, orchestrator):
        """Test that previous answers must be a list."""
        with pytest.raises(ValidationError, match="must be a list"):
            await orchestrator.generate_one("survey_1", "not a list", 0)

    @pytest.mark.asyncio
    async def test_malformed_answer_entry(self, orchestrator):
        """Test that entries without question_id or answer are rejected."""
        with pytest.raises(ValidationError):
            await orchestrator.generate_one("survey_1", [{"answer": "x"}], 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index", [-1, 1.5, True])
    async def test_invalid_index(self, orchestrator, index):
        """Test that the question index must be a non-negative integer."""
        with pytest.raises(ValidationError, match="non-negative integer"):
            await orchestrator.generate_one("survey_1", ANSWERS, index)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 11])
    async def test_batch_size_range(self, orchestrator, count):
        """Test that batch size must be between 1 and 10."""
        with pytest.raises(ValidationError, match="between 1 and 10"):
            await orchestrator.generate_multiple("survey_1", ANSWERS, 0, count)

    @pytest.mark.asyncio
    async def test_negative_desired_count(self, orchestrator):
        """Test that regenerate rejects a negative desired count."""
        with pytest.raises(ValidationError):
            await orchestrator.regenerate("survey_1", ANSWERS, 0, -1)


class TestGenerateOne:
    """Tests for generating a single dynamic question."""

    @pytest.mark.asyncio
    async def test_success_persists_and_publishes(
        self, orchestrator, survey_repository, make_survey, event_bus, stub_generator
    ):
        """Test the happy path."""
        survey_id = save(survey_repository, make_survey(static_questions=3))

        result = await orchestrator.generate_one(survey_id, ANSWERS, 3)

        assert result.success is True
        assert result.question.is_ai_generated is True
        assert result.total_questions == 4
        assert result.can_generate_more is True

        stored = survey_repository.find_by_id(survey_id)
        assert stored.dynamic_question_count == 1
        assert stored.version == 2
        assert [e.event_type for e in event_bus.published_events] == [
            events.DYNAMIC_QUESTION_ADDED
        ]

        params = stub_generator.calls[0]
        assert params.goal == "improve onboarding"
        assert params.current_question_index == 3
        assert isinstance(params.previous_answers[0], PreviousAnswer)

    @pytest.mark.asyncio
    async def test_missing_survey(self, orchestrator):
        """Test that an unknown survey is reported as not found."""
        result = await orchestrator.generate_one("survey_missing", ANSWERS, 0)

        assert result.success is False
        assert result.error_code == "ENTITY_NOT_FOUND"
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_no_goal(self, orchestrator, survey_repository, make_survey, stub_generator):
        """Test that a survey without a goal never calls the generator."""
        survey_id = save(survey_repository, make_survey(goal=""))

        result = await orchestrator.generate_one(survey_id, ANSWERS, 0)

        assert result.success is False
        assert result.error_code == "BUSINESS_RULE_VIOLATION"
        assert "no goal" in result.error
        assert stub_generator.calls == []

    @pytest.mark.asyncio
    async def test_limit_reached(self, orchestrator, survey_repository, make_survey, stub_generator):
        """Test that a full survey fails with 'limit reached'."""
        survey_id = save(survey_repository, make_survey(static_questions=5, max_questions=5))

        result = await orchestrator.generate_one(survey_id, ANSWERS, 5)

        assert result.success is False
        assert "limit reached (5/5)" in result.error
        assert stub_generator.calls == []

    @pytest.mark.asyncio
    async def test_generator_failure_leaves_survey_unchanged(
        self, orchestrator, survey_repository, make_survey, stub_generator
    ):
        """Test that a generator error is returned and nothing is saved."""
        survey_id = save(survey_repository, make_survey())
        stub_generator.fail_with = RuntimeError("model overloaded")

        result = await orchestrator.generate_one(survey_id, ANSWERS, 0)

        assert result.success is False
        assert result.error_code == "INTERNAL_ERROR"
        assert result.error.startswith("Unexpected error")
        assert survey_repository.find_by_id(survey_id).dynamic_question_count == 0

    @pytest.mark.asyncio
    async def test_service_unavailable_code(
        self, orchestrator, survey_repository, make_survey, stub_generator
    ):
        """Test that a retries-exhausted generator keeps its error code."""
        survey_id = save(survey_repository, make_survey())
        stub_generator.fail_with = ServiceUnavailableError("Question generator unavailable")

        result = await orchestrator.generate_one(survey_id, ANSWERS, 0)

        assert result.error_code == "SERVICE_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_concurrent_calls_never_exceed_limit(
        self, orchestrator, survey_repository, make_survey
    ):
        """Test that two concurrent requests for the last slot append only one question."""
        survey_id = save(survey_repository, make_survey(static_questions=4, max_questions=5))

        results = await asyncio.gather(
            orchestrator.generate_one(survey_id, ANSWERS, 4),
            orchestrator.generate_one(survey_id, ANSWERS, 4),
        )

        assert sorted(r.success for r in results) == [False, True]
        stored = survey_repository.find_by_id(survey_id)
        assert stored.total_question_count == 5


class TestGenerateMultiple:
    """Tests for batch generation."""

    @pytest.mark.asyncio
    async def test_trimmed_to_available_slots(
        self, orchestrator, survey_repository, make_survey, stub_generator
    ):
        """Test that 5 requested with 2 slots left appends exactly 2."""
        survey_id = save(survey_repository, make_survey(static_questions=8, max_questions=10))

        result = await orchestrator.generate_multiple(survey_id, ANSWERS, 8, 5)

        assert result.success is True
        assert result.requested_count == 5
        assert result.generated_count == 2
        assert len(result.questions) == 2
        assert result.total_questions == 10
        assert result.can_generate_more is False
        assert stub_generator.calls[0].question_count == 2

    @pytest.mark.asyncio
    async def test_generator_returning_extra_questions(
        self, orchestrator, survey_repository, make_survey, stub_generator
    ):
        """Test that surplus generated questions are dropped."""
        survey_id = save(survey_repository, make_survey(static_questions=8, max_questions=10))
        stub_generator.dynamic_batch_size = 6

        result = await orchestrator.generate_multiple(survey_id, ANSWERS, 8, 5)

        assert result.generated_count == 2
        assert survey_repository.find_by_id(survey_id).total_question_count == 10

    @pytest.mark.asyncio
    async def test_generator_returning_fewer_questions(
        self, orchestrator, survey_repository, make_survey, stub_generator
    ):
        """Test that a short batch is reported as generated_count."""
        survey_id = save(survey_repository, make_survey(static_questions=2))
        stub_generator.dynamic_batch_size = 1

        result = await orchestrator.generate_multiple(survey_id, ANSWERS, 2, 3)

        assert result.success is True
        assert result.requested_count == 3
        assert result.generated_count == 1

    @pytest.mark.asyncio
    async def test_no_slots(self, orchestrator, survey_repository, make_survey, stub_generator):
        """Test that a full survey fails without calling the generator."""
        survey_id = save(survey_repository, make_survey(static_questions=10, max_questions=10))

        result = await orchestrator.generate_multiple(survey_id, ANSWERS, 10, 3)

        assert result.success is False
        assert result.requested_count == 3
        assert "limit reached" in result.error
        assert stub_generator.calls == []


class TestRegenerate:
    """Tests for replacing dynamic questions."""

    @pytest.mark.asyncio
    async def test_reuses_previous_count(self, orchestrator, survey_repository, make_survey):
        """Test that omitting desired_count regenerates the same number of questions."""
        survey_id = save(survey_repository, make_survey(static_questions=2))
        await orchestrator.generate_multiple(survey_id, ANSWERS, 2, 3)
        before = {q.id for q in survey_repository.find_by_id(survey_id).dynamic_questions}

        result = await orchestrator.regenerate(survey_id, ANSWERS, 2)

        assert result.success is True
        assert result.previous_dynamic_count == 3
        assert result.new_dynamic_count == 3
        after = {q.id for q in survey_repository.find_by_id(survey_id).dynamic_questions}
        assert before.isdisjoint(after)

    @pytest.mark.asyncio
    async def test_desired_count(self, orchestrator, survey_repository, make_survey):
        """Test regenerating a different number of questions."""
        survey_id = save(survey_repository, make_survey(static_questions=2))
        await orchestrator.generate_one(survey_id, ANSWERS, 2)

        result = await orchestrator.regenerate(survey_id, ANSWERS, 2, desired_count=4)

        assert result.previous_dynamic_count == 1
        assert result.new_dynamic_count == 4

    @pytest.mark.asyncio
    async def test_desired_zero_clears(self, orchestrator, survey_repository, make_survey):
        """Test that a desired count of zero just clears dynamic questions."""
        survey_id = save(survey_repository, make_survey(static_questions=2))
        await orchestrator.generate_multiple(survey_id, ANSWERS, 2, 2)

        result = await orchestrator.regenerate(survey_id, ANSWERS, 2, desired_count=0)

        assert result.success is True
        assert result.questions == []
        assert survey_repository.find_by_id(survey_id).dynamic_question_count == 0

    @pytest.mark.asyncio
    async def test_failure_keeps_stored_questions(
        self, orchestrator, survey_repository, make_survey, stub_generator
    ):
        """Test that a failed regeneration does not persist the cleared survey."""
        survey_id = save(survey_repository, make_survey(static_questions=2))
        await orchestrator.generate_multiple(survey_id, ANSWERS, 2, 2)
        stub_generator.fail_with = RuntimeError("timeout")

        result = await orchestrator.regenerate(survey_id, ANSWERS, 2)

        assert result.success is False
        assert result.previous_dynamic_count == 2
        assert survey_repository.find_by_id(survey_id).dynamic_question_count == 2

    @pytest.mark.asyncio
    async def test_desired_count_above_batch_size(
        self, orchestrator, survey_repository, make_survey, stub_generator
    ):
        """Test that asking for more than 10 questions fails without clearing."""
        survey = make_survey(static_questions=2, max_questions=30)
        survey_id = save(survey_repository, survey)
        await orchestrator.generate_multiple(survey_id, ANSWERS, 2, 2)
        calls_before = len(stub_generator.calls)

        result = await orchestrator.regenerate(survey_id, ANSWERS, 2, desired_count=15)

        assert result.success is False
        assert result.error_code == "VALIDATION_ERROR"
        assert result.error == "Cannot generate more than 10 questions at once"
        assert result.previous_dynamic_count == 2
        assert len(stub_generator.calls) == calls_before
        assert survey_repository.find_by_id(survey_id).dynamic_question_count == 2


class TestSurveyLockRegistry:
    """Tests for the per-survey lock registry."""

    @pytest.mark.asyncio
    async def test_locks_released_after_use(self, orchestrator):
        """Test that calls for unknown surveys leave no locks behind."""
        for index in range(50):
            result = await orchestrator.generate_one(f"survey_missing_{index}", ANSWERS, 0)
            assert result.error_code == "ENTITY_NOT_FOUND"

        assert len(orchestrator.locks) == 0

    @pytest.mark.asyncio
    async def test_waiters_share_one_lock(self):
        """Test that concurrent holders of one id are serialized on a single lock."""
        locks = SurveyLockRegistry()
        order = []

        async def hold(name):
            async with locks.lock_for("survey_1"):
                order.append(f"{name}-start")
                assert len(locks) == 1
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(hold("a"), hold("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]
        assert len(locks) == 0
