"""SurveyResponse entity.

A respondent's answer set for one survey. Answers are kept in a map keyed by
question id (last write wins) and the response is finalized exactly once by
:meth:`SurveyResponse.submit`.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from app.domain import events
from app.domain.errors import BusinessRuleViolation, ValidationError
from app.domain.events import DomainEvent

AnswerValue = Union[str, List[str], int, float]


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value or datetime.now(timezone.utc)


def _is_valid_answer(answer: Any) -> bool:
    if isinstance(answer, bool):
        return False
    if isinstance(answer, (str, int, float)):
        return True
    if isinstance(answer, list):
        return all(isinstance(item, str) for item in answer)
    return False


@dataclass
class Answer:
    """The latest answer given to a single question."""

    question_id: str
    question_text: str
    question_type: str
    answer: AnswerValue
    answered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "answer": self.answer,
            "answered_at": self.answered_at,
        }


class SurveyResponse:
    """A respondent's in-progress or submitted answers to one survey."""

    def __init__(
        self,
        response_id: str,
        survey_id: str,
        respondent_id: Optional[str] = None,
        respondent_email: Optional[str] = None,
        answers: Optional[Dict[str, Answer]] = None,
        started_at: Optional[datetime] = None,
        submitted_at: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self._id = response_id
        self._survey_id = survey_id
        self._respondent_id = respondent_id
        self._respondent_email = respondent_email
        self._answers: Dict[str, Answer] = dict(answers or {})
        self._started_at = started_at or datetime.now(timezone.utc)
        self._submitted_at = submitted_at
        self._metadata: Dict[str, Any] = dict(metadata or {})
        self._domain_events: List[DomainEvent] = []

    @classmethod
    def create(
        cls,
        survey_id: str,
        respondent_id: Optional[str] = None,
        respondent_email: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "SurveyResponse":
        """Start a new response session for a survey.

        Raises:
            ValidationError: If survey_id is blank
        """
        if not isinstance(survey_id, str) or not survey_id.strip():
            raise ValidationError("Survey id is required")
        return cls(
            response_id=f"response_{uuid.uuid4().hex}",
            survey_id=survey_id.strip(),
            respondent_id=respondent_id,
            respondent_email=respondent_email,
            metadata=metadata,
        )

    @classmethod
    def from_persistence(cls, data: Dict[str, Any]) -> "SurveyResponse":
        answers = {}
        for item in data.get("answers", []):
            answers[item["question_id"]] = Answer(
                question_id=item["question_id"],
                question_text=item.get("question_text", ""),
                question_type=item.get("question_type", "text"),
                answer=item["answer"],
                answered_at=_parse_timestamp(item.get("answered_at")),
            )
        return cls(
            response_id=data["id"],
            survey_id=data["survey_id"],
            respondent_id=data.get("respondent_id"),
            respondent_email=data.get("respondent_email"),
            answers=answers,
            started_at=data.get("started_at"),
            submitted_at=data.get("submitted_at"),
            metadata=data.get("metadata"),
        )

    def add_response(
        self,
        question_id: str,
        question_text: str,
        question_type: str,
        answer: AnswerValue,
    ) -> None:
        """Record an answer, replacing any earlier answer to the same question.

        Args:
            question_id: Identifier of the answered question
            question_text: Question text as shown to the respondent
            question_type: Question type value (e.g. "single_choice")
            answer: String, list of strings, or number

        Raises:
            BusinessRuleViolation: If the response was already submitted
            ValidationError: If question_id is blank or the answer has an
                unsupported shape
        """
        if self._submitted_at is not None:
            raise BusinessRuleViolation("Cannot modify submitted response")
        if not isinstance(question_id, str) or not question_id.strip():
            raise ValidationError("Question id is required")
        if not _is_valid_answer(answer):
            raise ValidationError(
                "Answer must be a string, a list of strings, or a number"
            )

        self._answers[question_id] = Answer(
            question_id=question_id,
            question_text=question_text,
            question_type=question_type,
            answer=answer,
        )

    def submit(self) -> None:
        """Finalize the response.

        Raises:
            BusinessRuleViolation: If no answers were recorded or the
                response was already submitted
        """
        if self._submitted_at is not None:
            raise BusinessRuleViolation("Response has already been submitted")
        if not self._answers:
            raise BusinessRuleViolation("Cannot submit empty response")

        self._submitted_at = datetime.now(timezone.utc)
        self._domain_events.append(
            events.survey_response_submitted(
                self._id, self._survey_id, self._respondent_id, len(self._answers)
            )
        )

    def get_answer(self, question_id: str) -> Optional[Answer]:
        return self._answers.get(question_id)

    def is_complete(self, required_question_ids: List[str]) -> bool:
        """True when every required question has an answer."""
        return all(qid in self._answers for qid in required_question_ids)

    def pull_domain_events(self) -> List[DomainEvent]:
        pending = self._domain_events
        self._domain_events = []
        return pending

    @property
    def id(self) -> str:
        return self._id

    @property
    def survey_id(self) -> str:
        return self._survey_id

    @property
    def respondent_id(self) -> Optional[str]:
        return self._respondent_id

    @property
    def respondent_email(self) -> Optional[str]:
        return self._respondent_email

    @property
    def answers(self) -> List[Answer]:
        return list(self._answers.values())

    @property
    def response_count(self) -> int:
        return len(self._answers)

    @property
    def started_at(self) -> datetime:
        return self._started_at

    @property
    def submitted_at(self) -> Optional[datetime]:
        return self._submitted_at

    @property
    def is_submitted(self) -> bool:
        return self._submitted_at is not None

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(self._metadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "survey_id": self._survey_id,
            "respondent_id": self._respondent_id,
            "respondent_email": self._respondent_email,
            "answers": [answer.to_dict() for answer in self._answers.values()],
            "started_at": self._started_at,
            "submitted_at": self._submitted_at,
            "metadata": dict(self._metadata),
        }

    def __repr__(self) -> str:
        return (
            f"<SurveyResponse(id={self._id}, survey_id={self._survey_id}, "
            f"answers={len(self._answers)}, submitted={self.is_submitted})>"
        )
