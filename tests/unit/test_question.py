"""Unit tests for the Question entity and QuestionType."""

import pytest

from app.domain.errors import ValidationError
from app.domain.question import MAX_OPTIONS, Question, QuestionType


class TestQuestionType:
    """Tests for QuestionType helpers."""

    def test_from_string_valid(self):
        """Test parsing a known question type."""
        assert QuestionType.from_string("multiple_choice") is QuestionType.MULTIPLE_CHOICE

    def test_from_string_invalid(self):
        """Test that unknown types raise ValidationError listing valid types."""
        with pytest.raises(ValidationError, match="Invalid question type: rating"):
            QuestionType.from_string("rating")

    def test_classification(self):
        """Test choice, scale and text-based groupings."""
        assert QuestionType.RANKING.is_choice
        assert QuestionType.SCALE.requires_options
        assert not QuestionType.YES_NO.requires_options
        assert QuestionType.EMAIL.is_text_based
        assert QuestionType.DATE.allows_validation
        assert not QuestionType.TEXT.allows_validation


class TestQuestionCreate:
    """Tests for Question.create validation."""

    def test_create_text_question(self):
        """Test creating a plain text question."""
        question = Question.create("What did you like?", QuestionType.TEXT)

        assert question.text == "What did you like?"
        assert question.type is QuestionType.TEXT
        assert question.options == []
        assert question.is_required is True
        assert question.is_ai_generated is False
        assert question.id

    def test_create_strips_text(self):
        """Test that surrounding whitespace is removed."""
        question = Question.create("  Why?  ", QuestionType.TEXT)
        assert question.text == "Why?"

    def test_blank_text_rejected(self):
        """Test that blank text raises ValidationError."""
        with pytest.raises(ValidationError):
            Question.create("   ", QuestionType.TEXT)

    def test_choice_question_needs_two_options(self):
        """Test that a choice question with one option is rejected."""
        with pytest.raises(ValidationError, match="at least 2 options"):
            Question.create("Pick one", QuestionType.MULTIPLE_CHOICE, ["A"])

    def test_add_option_limit(self):
        """Test that add_option stops at MAX_OPTIONS options."""
        options = [f"Option {i}" for i in range(MAX_OPTIONS)]
        question = Question.create("Pick one", QuestionType.SINGLE_CHOICE, options)
        with pytest.raises(ValidationError, match="more than"):
            question.add_option("One too many")

    def test_scale_needs_exactly_two_labels(self):
        """Test that scale questions take a min and max label."""
        question = Question.create("Rate us", QuestionType.SCALE, ["Poor", "Excellent"])
        assert question.options == ["Poor", "Excellent"]

        with pytest.raises(ValidationError, match="exactly 2 options"):
            Question.create("Rate us", QuestionType.SCALE, ["Poor", "Ok", "Excellent"])

    def test_blank_option_rejected(self):
        """Test that empty option labels are rejected."""
        with pytest.raises(ValidationError):
            Question.create("Pick one", QuestionType.SINGLE_CHOICE, ["A", "  "])

    def test_create_ai_generated(self):
        """Test that generated questions are flagged."""
        question = Question.create_ai_generated("Tell us more", QuestionType.TEXTAREA)
        assert question.is_ai_generated is True


class TestQuestionMutators:
    """Tests for Question mutators."""

    @pytest.fixture
    def choice_question(self):
        return Question.create("Pick one", QuestionType.SINGLE_CHOICE, ["A", "B"])

    def test_add_option(self, choice_question):
        """Test adding an option."""
        choice_question.add_option("C")
        assert choice_question.options == ["A", "B", "C"]

    def test_remove_option_below_minimum_restores(self, choice_question):
        """Test that removing below the minimum fails and keeps the options."""
        with pytest.raises(ValidationError):
            choice_question.remove_option(0)
        assert choice_question.options == ["A", "B"]

    def test_update_text(self, choice_question):
        """Test updating the text."""
        choice_question.update_text("Choose one")
        assert choice_question.text == "Choose one"

        with pytest.raises(ValidationError):
            choice_question.update_text("")

    def test_equality_by_id(self, choice_question):
        """Test that questions compare equal by identity."""
        copy = Question.from_persistence(choice_question.to_dict())
        assert copy == choice_question
        assert hash(copy) == hash(choice_question)
        assert copy != Question.create("Pick one", QuestionType.SINGLE_CHOICE, ["A", "B"])

    def test_set_order_rejects_negative(self, choice_question):
        """Test that a negative order is rejected and the old order kept."""
        choice_question.set_order(3)
        with pytest.raises(ValidationError, match="cannot be negative"):
            choice_question.set_order(-1)
        assert choice_question.order == 3

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_update_option_index_out_of_range(self, choice_question, index):
        """Test that update_option rejects indices outside the option list."""
        with pytest.raises(ValidationError, match="Invalid option index"):
            choice_question.update_option(index, "Z")
        assert choice_question.options == ["A", "B"]

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_remove_option_index_out_of_range(self, index):
        """Test that remove_option rejects indices outside the option list."""
        question = Question.create("Pick one", QuestionType.SINGLE_CHOICE, ["A", "B", "C"])
        with pytest.raises(ValidationError, match="Invalid option index"):
            question.remove_option(index)
        assert question.options == ["A", "B", "C"]

    def test_add_option_on_non_choice_question(self):
        """Test that only choice questions accept new options."""
        question = Question.create("Anything else?", QuestionType.TEXT)
        with pytest.raises(ValidationError, match="Can only add options to choice questions"):
            question.add_option("A")
        assert question.options == []

    def test_set_required(self, choice_question):
        """Test toggling whether an answer is required."""
        choice_question.set_required(False)
        assert choice_question.is_required is False

        choice_question.set_required(True)
        assert choice_question.is_required is True


class TestQuestionCreateWithId:
    """Tests for creating questions that keep a client-side id."""

    def test_keeps_given_id(self):
        """Test that a supplied id is used instead of a generated one."""
        question = Question.create_ai_generated(
            "What would help most?", QuestionType.TEXT, question_id="question_client_1"
        )
        assert question.id == "question_client_1"
        assert question.is_ai_generated is True

    def test_given_id_still_validated(self):
        """Test that option rules apply to questions created with an id."""
        with pytest.raises(ValidationError, match="at least 2 options"):
            Question.create_ai_generated(
                "Pick one", QuestionType.SINGLE_CHOICE, [], question_id="question_client_1"
            )
