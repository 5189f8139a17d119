"""Pydantic schemas for survey response submission and retrieval."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

# Same shape as the domain's AnswerValue; strict so booleans are not coerced to 1/0
AnswerPayload = Union[StrictStr, List[StrictStr], StrictInt, StrictFloat]


class AnswerIn(BaseModel):
    question_id: str
    question_text: str = ""
    question_type: str = "text"
    answer: AnswerPayload


class DynamicQuestionIn(BaseModel):
    """A dynamic question the client generated during the session."""
    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    type: str
    options: List[str] = Field(default_factory=list)


class SubmitResponseIn(BaseModel):
    """Submission payload.

    ``metadata.user_language`` and ``metadata.translation_applied`` control
    translation of merged dynamic questions.
    """
    responses: List[AnswerIn]
    respondent_id: Optional[str] = None
    respondent_email: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    dynamic_questions: List[DynamicQuestionIn] = Field(default_factory=list)


class SubmitResponseOut(BaseModel):
    success: bool
    response_id: Optional[str] = None
    message: str


class AnswerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: str
    question_text: str
    question_type: str
    answer: AnswerPayload
    answered_at: datetime


class SurveyResponseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    survey_id: str
    respondent_id: Optional[str]
    respondent_email: Optional[str]
    answers: List[AnswerOut]
    response_count: int
    started_at: datetime
    submitted_at: Optional[datetime]
    metadata: Dict[str, Any]


class SurveyResponseListOut(BaseModel):
    survey_id: str
    total: int
    responses: List[SurveyResponseOut]
