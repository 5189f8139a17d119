"""Pydantic schemas for data validation.

This package contains the API request/response models and the question bank
definition schema.
"""

from app.schemas.question_bank import QuestionTemplate, TopicQuestionSet, QuestionBank
from app.schemas.survey import (
    QuestionIn,
    AIGenerationIn,
    SurveyCreateRequest,
    QuestionOut,
    SurveyCreatedOut,
    SurveyOut,
    SurveySummaryOut,
    SurveyListOut,
    SurveyStatisticsOut,
    PreviousAnswerIn,
    GenerateDynamicQuestionsRequest,
    RegenerateDynamicQuestionsRequest,
    GenerateDynamicQuestionsOut,
    RegenerateDynamicQuestionsOut,
)
from app.schemas.responses import (
    AnswerIn,
    DynamicQuestionIn,
    SubmitResponseIn,
    SubmitResponseOut,
    AnswerOut,
    SurveyResponseOut,
    SurveyResponseListOut,
)
from app.schemas.translation import (
    TranslateRequest,
    TranslateResponse,
    LanguageOut,
    LanguagesOut,
)

__all__ = [
    "QuestionTemplate",
    "TopicQuestionSet",
    "QuestionBank",
    "QuestionIn",
    "AIGenerationIn",
    "SurveyCreateRequest",
    "QuestionOut",
    "SurveyCreatedOut",
    "SurveyOut",
    "SurveySummaryOut",
    "SurveyListOut",
    "SurveyStatisticsOut",
    "PreviousAnswerIn",
    "GenerateDynamicQuestionsRequest",
    "RegenerateDynamicQuestionsRequest",
    "GenerateDynamicQuestionsOut",
    "RegenerateDynamicQuestionsOut",
    "AnswerIn",
    "DynamicQuestionIn",
    "SubmitResponseIn",
    "SubmitResponseOut",
    "AnswerOut",
    "SurveyResponseOut",
    "SurveyResponseListOut",
    "TranslateRequest",
    "TranslateResponse",
    "LanguageOut",
    "LanguagesOut",
]
