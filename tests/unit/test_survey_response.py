"""Unit tests for the SurveyResponse entity."""

import pytest

from app.domain import events
from app.domain.errors import BusinessRuleViolation, ValidationError
from app.domain.survey_response import SurveyResponse


@pytest.fixture
def response():
    return SurveyResponse.create("survey_1", "respondent-1", "r@example.com", {"source": "web"})


class TestSurveyResponse:
    """Tests for answering and submitting a response."""

    def test_create(self, response):
        """Test a fresh response."""
        assert response.id.startswith("response_")
        assert response.survey_id == "survey_1"
        assert response.response_count == 0
        assert response.is_submitted is False
        assert response.metadata == {"source": "web"}

    def test_blank_survey_id_rejected(self):
        """Test that a response needs a survey id."""
        with pytest.raises(ValidationError):
            SurveyResponse.create(" ")

    def test_last_write_wins(self, response):
        """Test that answering twice keeps only the latest answer."""
        response.add_response("q1", "Pick", "single_choice", "A")
        response.add_response("q1", "Pick", "single_choice", "B")

        assert response.response_count == 1
        assert response.get_answer("q1").answer == "B"

    @pytest.mark.parametrize("answer", ["text", 4, 3.5, ["a", "b"]])
    def test_accepted_answer_shapes(self, response, answer):
        """Test strings, numbers and lists of strings."""
        response.add_response("q1", "Question", "text", answer)
        assert response.get_answer("q1").answer == answer

    @pytest.mark.parametrize("answer", [None, True, {"a": 1}, ["a", 2]])
    def test_rejected_answer_shapes(self, response, answer):
        """Test that other shapes raise ValidationError."""
        with pytest.raises(ValidationError):
            response.add_response("q1", "Question", "text", answer)

    def test_cannot_submit_empty_response(self, response):
        """Test that a response without answers cannot be submitted."""
        with pytest.raises(BusinessRuleViolation, match="Cannot submit empty response"):
            response.submit()

    def test_submit_records_event(self, response):
        """Test that submission stamps the time and records an event."""
        response.add_response("q1", "Question", "text", "hello")
        response.submit()

        assert response.is_submitted is True
        assert response.submitted_at is not None
        pending = response.pull_domain_events()
        assert [e.event_type for e in pending] == [events.SURVEY_RESPONSE_SUBMITTED]
        assert pending[0].data["response_count"] == 1

    def test_no_changes_after_submit(self, response):
        """Test that a submitted response is frozen."""
        response.add_response("q1", "Question", "text", "hello")
        response.submit()

        with pytest.raises(BusinessRuleViolation, match="Cannot modify submitted response"):
            response.add_response("q2", "Other", "text", "again")
        with pytest.raises(BusinessRuleViolation, match="already been submitted"):
            response.submit()

    def test_is_complete(self, response):
        """Test required-question completeness."""
        response.add_response("q1", "Question", "text", "hello")
        assert response.is_complete(["q1"]) is True
        assert response.is_complete(["q1", "q2"]) is False

    def test_from_persistence_parses_timestamps(self, response):
        """Test rehydrating answers whose timestamps were stored as ISO strings."""
        response.add_response("q1", "Question", "text", "hello")
        data = response.to_dict()
        data["answers"] = [
            dict(a, answered_at=a["answered_at"].isoformat()) for a in data["answers"]
        ]

        restored = SurveyResponse.from_persistence(data)
        assert restored.get_answer("q1").answered_at == response.get_answer("q1").answered_at
