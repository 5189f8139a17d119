"""Pydantic schemas for the YAML question bank.

The question bank drives the deterministic question generator: topic-keyed
question sets for authoring-time generation, Jinja2 follow-up templates for
dynamic questions, and the fixed fallback set used when the model is
unreachable.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.domain.question import QuestionType


class QuestionTemplate(BaseModel):
    """A question in the bank. ``text`` may contain Jinja2 placeholders.

    Attributes:
        text: Question text template
        type: Question type
        options: Option labels (scale questions take min/max labels)
        requires_answer: Only usable when a previous answer is available
    """

    text: str = Field(..., min_length=1)
    type: QuestionType
    options: List[str] = Field(default_factory=list)
    requires_answer: bool = False

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        """Reject blank option labels."""
        if any(not option.strip() for option in v):
            raise ValueError("Option labels cannot be blank")
        return v

    @model_validator(mode="after")
    def validate_option_count(self) -> "QuestionTemplate":
        """Enforce the option-count rule for the question type."""
        if self.type.is_choice and len(self.options) < 2:
            raise ValueError(f"{self.type.value} templates need at least 2 options")
        if self.type.is_scale and len(self.options) != 2:
            raise ValueError("scale templates need exactly 2 options")
        return self


class TopicQuestionSet(BaseModel):
    """Questions offered when a generation topic matches one of the keywords."""

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    keywords: List[str] = Field(..., min_length=1)
    questions: List[QuestionTemplate] = Field(..., min_length=1)

    @field_validator("keywords")
    @classmethod
    def lowercase_keywords(cls, v: List[str]) -> List[str]:
        return [keyword.strip().lower() for keyword in v if keyword.strip()]

    def matches(self, topic: str) -> bool:
        topic_lower = topic.lower()
        return any(keyword in topic_lower for keyword in self.keywords)


class QuestionBank(BaseModel):
    """Complete question bank definition.

    Attributes:
        version: Bank format version
        topics: Topic-specific question sets, checked in order
        default: Questions used when no topic matches (``{{ topic }}`` available)
        follow_up: Dynamic follow-up templates (``goal``, ``last_question``,
            ``last_answer`` and ``answer_count`` available)
        fallback: Fixed questions returned when generation fails
    """

    version: str = "1"
    topics: List[TopicQuestionSet] = Field(default_factory=list)
    default: List[QuestionTemplate] = Field(..., min_length=1)
    follow_up: List[QuestionTemplate] = Field(..., min_length=1)
    fallback: List[QuestionTemplate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_unique_topics(self) -> "QuestionBank":
        names = [topic.name for topic in self.topics]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValueError(f"Duplicate topic names: {sorted(duplicates)}")
        return self

    def topic_for(self, topic: str) -> Optional[TopicQuestionSet]:
        """Return the first topic set whose keywords appear in ``topic``."""
        for topic_set in self.topics:
            if topic_set.matches(topic):
                return topic_set
        return None
