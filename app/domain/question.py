"""Question entity and question type definitions.

A Question is a single survey item. Its identity is fixed at creation; text,
options, order and the required flag may change through the mutators below,
each of which re-checks the option-count rule for the question's type.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from app.domain.errors import ValidationError

MAX_OPTIONS = 10


class QuestionType(str, Enum):
    """Valid question types."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    SCALE = "scale"
    YES_NO = "yes_no"
    EMAIL = "email"
    NUMBER = "number"
    DATE = "date"
    RANKING = "ranking"

    @classmethod
    def from_string(cls, value: str) -> "QuestionType":
        """Parse a question type, raising ValidationError for unknown values."""
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValidationError(
                f"Invalid question type: {value}. Valid types are: {valid}"
            )

    @property
    def is_choice(self) -> bool:
        """Single choice, multiple choice and ranking pick from options."""
        return self in (
            QuestionType.SINGLE_CHOICE,
            QuestionType.MULTIPLE_CHOICE,
            QuestionType.RANKING,
        )

    @property
    def is_scale(self) -> bool:
        return self is QuestionType.SCALE

    @property
    def requires_options(self) -> bool:
        return self.is_choice or self.is_scale

    @property
    def is_text_based(self) -> bool:
        return self in (QuestionType.TEXT, QuestionType.TEXTAREA, QuestionType.EMAIL)

    @property
    def allows_validation(self) -> bool:
        return self in (QuestionType.EMAIL, QuestionType.NUMBER, QuestionType.DATE)


def _clean_options(options: Optional[Iterable[str]]) -> List[str]:
    if options is None:
        return []
    if isinstance(options, str):
        raise ValidationError("Options must be a list of strings, not a single string")
    return [str(option).strip() for option in options]


class Question:
    """A single survey item with a type and validity rules.

    Use :meth:`create` or :meth:`create_ai_generated` for new questions and
    :meth:`from_persistence` to rehydrate stored ones.
    """

    def __init__(
        self,
        question_id: str,
        text: str,
        question_type: QuestionType,
        options: Optional[List[str]] = None,
        is_required: bool = True,
        is_ai_generated: bool = False,
        order: int = 0,
        created_at: Optional[datetime] = None,
    ):
        self._id = question_id
        self._text = text
        self._type = question_type
        self._options = list(options or [])
        self._is_required = is_required
        self._is_ai_generated = is_ai_generated
        self._order = order
        self._created_at = created_at or datetime.now(timezone.utc)

    @classmethod
    def create(
        cls,
        text: str,
        question_type: QuestionType,
        options: Optional[Iterable[str]] = None,
        is_required: bool = True,
        question_id: Optional[str] = None,
    ) -> "Question":
        """Create a new question after validating text and option counts.

        Args:
            text: Question text (must not be blank)
            question_type: Type of the question
            options: Option labels; scale questions take min/max labels
            is_required: Whether respondents must answer
            question_id: Id to keep, for questions that already exist on a
                client; a fresh id is generated when omitted

        Returns:
            New Question

        Raises:
            ValidationError: If text is blank or the option count is invalid

        Example:
            >>> q = Question.create("Pick one", QuestionType.SINGLE_CHOICE, ["A", "B"])
            >>> q.options
            ['A', 'B']
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Question text cannot be empty")
        if not isinstance(question_type, QuestionType):
            question_type = QuestionType.from_string(question_type)

        question = cls(
            question_id=question_id or f"question_{uuid.uuid4().hex}",
            text=text.strip(),
            question_type=question_type,
            options=_clean_options(options),
            is_required=is_required,
        )
        question._validate_structure()
        return question

    @classmethod
    def create_ai_generated(
        cls,
        text: str,
        question_type: QuestionType,
        options: Optional[Iterable[str]] = None,
        is_required: bool = True,
        question_id: Optional[str] = None,
    ) -> "Question":
        """Create a question flagged as produced by the question generator."""
        question = cls.create(text, question_type, options, is_required, question_id)
        question._is_ai_generated = True
        return question

    @classmethod
    def from_persistence(cls, data: Dict[str, Any]) -> "Question":
        """Rehydrate a stored question without re-running creation checks."""
        return cls(
            question_id=data["id"],
            text=data["text"],
            question_type=QuestionType(data["type"]),
            options=list(data.get("options") or []),
            is_required=bool(data.get("is_required", True)),
            is_ai_generated=bool(data.get("is_ai_generated", False)),
            order=int(data.get("order", 0)),
            created_at=data.get("created_at"),
        )

    def _validate_structure(self) -> None:
        if self._type.is_choice and len(self._options) < 2:
            raise ValidationError(
                f"{self._type.value} questions must have at least 2 options"
            )
        if self._type.is_scale and len(self._options) != 2:
            raise ValidationError(
                "Scale questions must have exactly 2 options (min and max labels)"
            )
        if any(not option for option in self._options):
            raise ValidationError("Option text cannot be empty")

    def _require_choice_type(self, action: str) -> None:
        if not self._type.is_choice:
            raise ValidationError(f"Can only {action} choice questions")

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or index < 0 or index >= len(self._options):
            raise ValidationError("Invalid option index")

    def update_text(self, text: str) -> None:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Question text cannot be empty")
        self._text = text.strip()

    def add_option(self, option: str) -> None:
        self._require_choice_type("add options to")
        if not isinstance(option, str) or not option.strip():
            raise ValidationError("Option text cannot be empty")
        if len(self._options) >= MAX_OPTIONS:
            raise ValidationError(f"Question cannot have more than {MAX_OPTIONS} options")
        self._options.append(option.strip())

    def remove_option(self, index: int) -> None:
        """Remove an option, keeping the minimum option count for the type."""
        self._require_choice_type("remove options from")
        self._check_index(index)
        removed = self._options.pop(index)
        try:
            self._validate_structure()
        except ValidationError:
            self._options.insert(index, removed)
            raise

    def update_option(self, index: int, text: str) -> None:
        self._require_choice_type("update options for")
        self._check_index(index)
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Option text cannot be empty")
        self._options[index] = text.strip()

    def set_order(self, order: int) -> None:
        if not isinstance(order, int) or order < 0:
            raise ValidationError("Question order cannot be negative")
        self._order = order

    def set_required(self, is_required: bool) -> None:
        self._is_required = bool(is_required)

    @property
    def id(self) -> str:
        return self._id

    @property
    def text(self) -> str:
        return self._text

    @property
    def type(self) -> QuestionType:
        return self._type

    @property
    def options(self) -> List[str]:
        return list(self._options)

    @property
    def is_required(self) -> bool:
        return self._is_required

    @property
    def is_ai_generated(self) -> bool:
        return self._is_ai_generated

    @property
    def order(self) -> int:
        return self._order

    @property
    def created_at(self) -> datetime:
        return self._created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict for persistence."""
        return {
            "id": self._id,
            "text": self._text,
            "type": self._type.value,
            "options": list(self._options),
            "is_required": self._is_required,
            "is_ai_generated": self._is_ai_generated,
            "order": self._order,
            "created_at": self._created_at,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Question):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return (
            f"<Question(id={self._id}, type={self._type.value}, "
            f"options={len(self._options)}, ai={self._is_ai_generated})>"
        )
