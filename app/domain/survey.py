"""Survey aggregate.

The Survey owns its static questions (authored up front, capped at 50) and
its dynamic questions (generated during a response session, bounded by
``max_questions``). It records domain events in an outbox that callers drain
with :meth:`Survey.pull_domain_events` once the aggregate has been persisted.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.domain import events
from app.domain.errors import BusinessRuleViolation, NotFoundError, ValidationError
from app.domain.events import DomainEvent
from app.domain.question import Question

MAX_STATIC_QUESTIONS = 50
MIN_MAX_QUESTIONS = 5
MAX_MAX_QUESTIONS = 50
DEFAULT_MAX_QUESTIONS = 10
DEFAULT_TARGET_LANGUAGE = "en"


class Survey:
    """Aggregate root defining a questionnaire and its adaptive generation settings.

    Attributes exposed as read-only properties; all changes go through the
    mutators so invariants and ``updated_at`` stay consistent.
    """

    def __init__(
        self,
        survey_id: str,
        title: str,
        description: str = "",
        goal: str = "",
        questions: Optional[List[Question]] = None,
        dynamic_questions: Optional[List[Question]] = None,
        max_questions: int = DEFAULT_MAX_QUESTIONS,
        target_language: str = DEFAULT_TARGET_LANGUAGE,
        auto_translate: bool = False,
        is_active: bool = True,
        owner_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        version: int = 0,
    ):
        now = datetime.now(timezone.utc)
        self._id = survey_id
        self._title = title
        self._description = description
        self._goal = goal
        self._questions: List[Question] = list(questions or [])
        self._dynamic_questions: List[Question] = list(dynamic_questions or [])
        self._max_questions = max_questions
        self._target_language = target_language
        self._auto_translate = auto_translate
        self._is_active = is_active
        self._owner_id = owner_id
        self._created_at = created_at or now
        self._updated_at = updated_at or now
        self._version = version
        self._domain_events: List[DomainEvent] = []

    @classmethod
    def create(
        cls,
        title: str,
        description: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> "Survey":
        """Create a new survey and record a SurveyCreated event.

        Raises:
            ValidationError: If title is blank
        """
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Survey title cannot be empty")

        survey = cls(
            survey_id=f"survey_{uuid.uuid4().hex}",
            title=title.strip(),
            description=(description or "").strip(),
            owner_id=owner_id,
        )
        survey._record(events.survey_created(survey.id, survey.title, owner_id))
        return survey

    @classmethod
    def from_persistence(cls, data: Dict[str, Any]) -> "Survey":
        """Rehydrate a stored survey; no events are recorded."""
        return cls(
            survey_id=data["id"],
            title=data["title"],
            description=data.get("description") or "",
            goal=data.get("goal") or "",
            questions=[Question.from_persistence(q) for q in data.get("questions", [])],
            dynamic_questions=[
                Question.from_persistence(q) for q in data.get("dynamic_questions", [])
            ],
            max_questions=int(data.get("max_questions", DEFAULT_MAX_QUESTIONS)),
            target_language=data.get("target_language") or DEFAULT_TARGET_LANGUAGE,
            auto_translate=bool(data.get("auto_translate", False)),
            is_active=bool(data.get("is_active", True)),
            owner_id=data.get("owner_id"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            version=int(data.get("version", 0)),
        )

    # Static questions

    def add_question(self, question: Question) -> None:
        if len(self._questions) >= MAX_STATIC_QUESTIONS:
            raise BusinessRuleViolation(
                f"Survey cannot have more than {MAX_STATIC_QUESTIONS} questions"
            )
        question.set_order(len(self._questions))
        self._questions.append(question)
        self._touch()

    def remove_question(self, question_id: str) -> None:
        for index, question in enumerate(self._questions):
            if question.id == question_id:
                del self._questions[index]
                self._touch()
                return
        raise NotFoundError.for_entity("Question", question_id)

    # Dynamic questions

    def add_dynamic_question(self, question: Question) -> None:
        """Append a generated question.

        Raises:
            BusinessRuleViolation: If the survey is not eligible for more
                dynamic questions (no goal, or ``max_questions`` reached)
        """
        if not self.can_generate_dynamic_questions():
            raise BusinessRuleViolation(
                "Survey cannot accept more dynamic questions. Check goal and question limits."
            )
        question.set_order(self.total_question_count)
        self._dynamic_questions.append(question)
        self._touch()
        self._record(
            events.dynamic_question_added(self._id, question.id, self.total_question_count)
        )

    def clear_dynamic_questions(self) -> int:
        """Drop every dynamic question and return how many were removed."""
        removed = len(self._dynamic_questions)
        self._dynamic_questions = []
        self._touch()
        return removed

    # Configuration

    def update_title(self, title: str) -> None:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Survey title cannot be empty")
        self._title = title.strip()
        self._touch()

    def update_description(self, description: str) -> None:
        self._description = (description or "").strip()
        self._touch()

    def set_goal(self, goal: Optional[str]) -> None:
        self._goal = (goal or "").strip()
        self._touch()

    def set_max_questions(self, max_questions: int) -> None:
        if (
            isinstance(max_questions, bool)
            or not isinstance(max_questions, int)
            or not MIN_MAX_QUESTIONS <= max_questions <= MAX_MAX_QUESTIONS
        ):
            raise ValidationError(
                f"Max questions must be between {MIN_MAX_QUESTIONS} and {MAX_MAX_QUESTIONS}"
            )
        self._max_questions = max_questions
        self._touch()

    def set_target_language(self, language: str) -> None:
        if not isinstance(language, str) or not language.strip():
            raise ValidationError("Target language cannot be empty")
        self._target_language = language.strip()
        self._touch()

    def set_auto_translate(self, auto_translate: bool) -> None:
        self._auto_translate = bool(auto_translate)
        self._touch()

    def activate(self) -> None:
        self._is_active = True
        self._touch()

    def deactivate(self) -> None:
        if not self._is_active:
            raise BusinessRuleViolation("Survey is already inactive")
        self._is_active = False
        self._touch()

    # Predicates

    def can_be_published(self) -> bool:
        return self.question_count > 0 and self._is_active

    def can_generate_dynamic_questions(self) -> bool:
        if not self._goal.strip():
            return False
        return self.total_question_count < self._max_questions

    @property
    def available_slots(self) -> int:
        """Remaining dynamic-question capacity (never negative)."""
        return max(self._max_questions - self.total_question_count, 0)

    def find_question(self, question_id: str) -> Optional[Question]:
        """Look a question up in the combined static + dynamic list."""
        for question in self.all_questions:
            if question.id == question_id:
                return question
        return None

    # Domain events

    def _record(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    @property
    def domain_events(self) -> List[DomainEvent]:
        return list(self._domain_events)

    def pull_domain_events(self) -> List[DomainEvent]:
        """Return pending events and clear the outbox."""
        pending = self._domain_events
        self._domain_events = []
        return pending

    # Persistence bookkeeping

    def mark_persisted(self, version: int) -> None:
        """Record the version the store now holds for this survey."""
        self._version = version

    def _touch(self) -> None:
        self._updated_at = datetime.now(timezone.utc)

    # Accessors

    @property
    def id(self) -> str:
        return self._id

    @property
    def title(self) -> str:
        return self._title

    @property
    def description(self) -> str:
        return self._description

    @property
    def goal(self) -> str:
        return self._goal

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    @property
    def dynamic_questions(self) -> List[Question]:
        return list(self._dynamic_questions)

    @property
    def all_questions(self) -> List[Question]:
        return self._questions + self._dynamic_questions

    @property
    def question_count(self) -> int:
        return len(self._questions)

    @property
    def dynamic_question_count(self) -> int:
        return len(self._dynamic_questions)

    @property
    def total_question_count(self) -> int:
        return len(self._questions) + len(self._dynamic_questions)

    @property
    def max_questions(self) -> int:
        return self._max_questions

    @property
    def target_language(self) -> str:
        return self._target_language

    @property
    def auto_translate(self) -> bool:
        return self._auto_translate

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def version(self) -> int:
        return self._version

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict for persistence."""
        return {
            "id": self._id,
            "title": self._title,
            "description": self._description,
            "goal": self._goal,
            "questions": [q.to_dict() for q in self._questions],
            "dynamic_questions": [q.to_dict() for q in self._dynamic_questions],
            "max_questions": self._max_questions,
            "target_language": self._target_language,
            "auto_translate": self._auto_translate,
            "is_active": self._is_active,
            "owner_id": self._owner_id,
            "created_at": self._created_at,
            "updated_at": self._updated_at,
            "version": self._version,
        }

    def __repr__(self) -> str:
        return (
            f"<Survey(id={self._id}, title={self._title!r}, "
            f"static={len(self._questions)}, dynamic={len(self._dynamic_questions)}, "
            f"max={self._max_questions}, version={self._version})>"
        )
