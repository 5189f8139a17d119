"""Pydantic schemas for the survey and dynamic question endpoints.

Range rules that the domain already enforces (question counts, indices,
``max_questions``) are left to the domain so they surface as 400 responses
with the domain's error message.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.domain.question import QuestionType
from app.domain.survey import Survey
from app.schemas.responses import AnswerPayload


class QuestionIn(BaseModel):
    """A manually authored question in a create request."""
    text: str
    type: str = Field(..., description="Question type, e.g. 'single_choice'")
    options: List[str] = Field(default_factory=list)
    is_required: bool = True


class AIGenerationIn(BaseModel):
    """Request to generate questions at creation time."""
    topic: str
    question_count: int = Field(..., description="Number of questions (1-20)")
    question_types: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    survey_goal: Optional[str] = None


class SurveyCreateRequest(BaseModel):
    title: str
    description: Optional[str] = None
    owner_id: Optional[str] = None
    goal: Optional[str] = Field(None, description="Empty disables dynamic questions")
    max_questions: Optional[int] = Field(None, description="Question ceiling (5-50)")
    target_language: Optional[str] = None
    auto_translate: Optional[bool] = None
    questions: List[QuestionIn] = Field(default_factory=list)
    ai_generation: Optional[AIGenerationIn] = None


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    type: QuestionType
    options: List[str]
    is_required: bool
    is_ai_generated: bool
    order: int
    created_at: datetime


class SurveyCreatedOut(BaseModel):
    """Public state of a newly created survey."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    goal: str
    max_questions: int
    target_language: str
    auto_translate: bool
    question_count: int
    questions: List[QuestionOut]
    is_active: bool
    created_at: datetime
    can_be_published: bool
    can_generate_dynamic_questions: bool


class SurveyOut(BaseModel):
    """Full survey state including dynamic questions."""

    id: str
    title: str
    description: str
    goal: str
    owner_id: Optional[str]
    max_questions: int
    target_language: str
    auto_translate: bool
    is_active: bool
    questions: List[QuestionOut]
    dynamic_questions: List[QuestionOut]
    question_count: int
    dynamic_question_count: int
    total_question_count: int
    available_slots: int
    can_be_published: bool
    can_generate_dynamic_questions: bool
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, survey: Survey) -> "SurveyOut":
        return cls(
            id=survey.id,
            title=survey.title,
            description=survey.description,
            goal=survey.goal,
            owner_id=survey.owner_id,
            max_questions=survey.max_questions,
            target_language=survey.target_language,
            auto_translate=survey.auto_translate,
            is_active=survey.is_active,
            questions=[QuestionOut.model_validate(q) for q in survey.questions],
            dynamic_questions=[QuestionOut.model_validate(q) for q in survey.dynamic_questions],
            question_count=survey.question_count,
            dynamic_question_count=survey.dynamic_question_count,
            total_question_count=survey.total_question_count,
            available_slots=survey.available_slots,
            can_be_published=survey.can_be_published(),
            can_generate_dynamic_questions=survey.can_generate_dynamic_questions(),
            version=survey.version,
            created_at=survey.created_at,
            updated_at=survey.updated_at,
        )


class SurveySummaryOut(BaseModel):
    id: str
    title: str
    owner_id: Optional[str]
    is_active: bool
    question_count: int
    dynamic_question_count: int
    created_at: datetime

    @classmethod
    def from_domain(cls, survey: Survey) -> "SurveySummaryOut":
        return cls(
            id=survey.id,
            title=survey.title,
            owner_id=survey.owner_id,
            is_active=survey.is_active,
            question_count=survey.question_count,
            dynamic_question_count=survey.dynamic_question_count,
            created_at=survey.created_at,
        )


class SurveyListOut(BaseModel):
    surveys: List[SurveySummaryOut]
    total: int
    offset: int
    limit: int
    has_more: bool


class SurveyStatisticsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_surveys: int
    active_surveys: int
    total_questions: int
    ai_generated_questions: int
    average_questions_per_survey: float


class PreviousAnswerIn(BaseModel):
    question_id: str
    question_text: str = ""
    question_type: str = "text"
    answer: AnswerPayload
    answered_at: Optional[datetime] = None


class GenerateDynamicQuestionsRequest(BaseModel):
    previous_answers: List[PreviousAnswerIn]
    current_question_index: int
    question_count: int = 1


class RegenerateDynamicQuestionsRequest(BaseModel):
    updated_answers: List[PreviousAnswerIn]
    current_question_index: int
    desired_count: Optional[int] = None


class GenerateDynamicQuestionsOut(BaseModel):
    success: bool
    survey_id: str
    question: Optional[QuestionOut] = None
    questions: List[QuestionOut] = Field(default_factory=list)
    total_questions: int
    requested_count: int
    generated_count: int
    can_generate_more: bool
    message: str


class RegenerateDynamicQuestionsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    survey_id: str
    questions: List[QuestionOut]
    previous_dynamic_count: int
    new_dynamic_count: int
