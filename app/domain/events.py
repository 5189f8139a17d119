"""Domain events collected by aggregates and drained after persistence."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DomainEvent:
    """Something that happened to an aggregate.

    Attributes:
        aggregate_id: Identifier of the aggregate that emitted the event
        event_type: Name subscribers register against
        data: Event payload
        event_id: Unique identifier of this event
        occurred_on: When the event was recorded (UTC)
        version: Payload schema version
    """

    aggregate_id: str
    event_type: str
    data: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: f"event_{uuid.uuid4().hex}")
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "aggregate_id": self.aggregate_id,
            "event_type": self.event_type,
            "occurred_on": self.occurred_on.isoformat(),
            "version": self.version,
            "data": dict(self.data),
        }


SURVEY_CREATED = "SurveyCreated"
DYNAMIC_QUESTION_ADDED = "DynamicQuestionAdded"
SURVEY_RESPONSE_SUBMITTED = "SurveyResponseSubmitted"


def survey_created(survey_id: str, title: str, created_by: Optional[str] = None) -> DomainEvent:
    return DomainEvent(
        aggregate_id=survey_id,
        event_type=SURVEY_CREATED,
        data={"survey_id": survey_id, "title": title, "created_by": created_by},
    )


def dynamic_question_added(survey_id: str, question_id: str, total_questions: int) -> DomainEvent:
    return DomainEvent(
        aggregate_id=survey_id,
        event_type=DYNAMIC_QUESTION_ADDED,
        data={
            "survey_id": survey_id,
            "question_id": question_id,
            "total_questions": total_questions,
        },
    )


def survey_response_submitted(
    response_id: str,
    survey_id: str,
    respondent_id: Optional[str],
    response_count: int,
) -> DomainEvent:
    return DomainEvent(
        aggregate_id=response_id,
        event_type=SURVEY_RESPONSE_SUBMITTED,
        data={
            "response_id": response_id,
            "survey_id": survey_id,
            "respondent_id": respondent_id,
            "response_count": response_count,
        },
    )
