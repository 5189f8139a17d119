"""Dynamic question endpoints.

POST appends one or more generated questions to a survey; PUT replaces the
survey's dynamic questions after the respondent changed earlier answers.
"""

from fastapi import APIRouter, Depends

from app.routes.dependencies import get_orchestrator, raise_for_failure
from app.schemas.survey import (
    GenerateDynamicQuestionsOut,
    GenerateDynamicQuestionsRequest,
    QuestionOut,
    RegenerateDynamicQuestionsOut,
    RegenerateDynamicQuestionsRequest,
)
from app.services.dynamic_questions import DynamicQuestionOrchestrator

router = APIRouter(prefix="/api/surveys")


@router.post("/{survey_id}/dynamic-questions", response_model=GenerateDynamicQuestionsOut)
async def generate_dynamic_questions(
    survey_id: str,
    body: GenerateDynamicQuestionsRequest,
    orchestrator: DynamicQuestionOrchestrator = Depends(get_orchestrator),
) -> GenerateDynamicQuestionsOut:
    """Generate dynamic questions from the respondent's previous answers.

    A ``question_count`` of 1 uses the single-question flow; larger counts
    are trimmed to the survey's remaining slots.
    """
    answers = [a.model_dump() for a in body.previous_answers]

    if body.question_count == 1:
        single = await orchestrator.generate_one(
            survey_id, answers, body.current_question_index
        )
        if not single.success:
            raise_for_failure(single.error_code, single.error)
        question = QuestionOut.model_validate(single.question)
        return GenerateDynamicQuestionsOut(
            success=True,
            survey_id=single.survey_id,
            question=question,
            questions=[question],
            total_questions=single.total_questions,
            requested_count=1,
            generated_count=1,
            can_generate_more=single.can_generate_more,
            message="Dynamic question generated successfully",
        )

    result = await orchestrator.generate_multiple(
        survey_id, answers, body.current_question_index, body.question_count
    )
    if not result.success:
        raise_for_failure(result.error_code, result.error)
    questions = [QuestionOut.model_validate(q) for q in result.questions]
    return GenerateDynamicQuestionsOut(
        success=True,
        survey_id=result.survey_id,
        question=questions[0] if questions else None,
        questions=questions,
        total_questions=result.total_questions,
        requested_count=result.requested_count,
        generated_count=result.generated_count,
        can_generate_more=result.can_generate_more,
        message=f"Generated {result.generated_count} of {result.requested_count} questions",
    )


@router.put("/{survey_id}/dynamic-questions", response_model=RegenerateDynamicQuestionsOut)
async def regenerate_dynamic_questions(
    survey_id: str,
    body: RegenerateDynamicQuestionsRequest,
    orchestrator: DynamicQuestionOrchestrator = Depends(get_orchestrator),
) -> RegenerateDynamicQuestionsOut:
    result = await orchestrator.regenerate(
        survey_id,
        [a.model_dump() for a in body.updated_answers],
        body.current_question_index,
        body.desired_count,
    )
    if not result.success:
        raise_for_failure(result.error_code, result.error)
    return RegenerateDynamicQuestionsOut.model_validate(result)
