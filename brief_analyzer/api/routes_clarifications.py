from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from brief_analyzer.api.dependencies import get_creator_id, get_service
from brief_analyzer.briefs.models import Brief, ClarificationEmail, CustomQuestion
from brief_analyzer.briefs.service import BriefService

router = APIRouter(prefix="/briefs", tags=["clarifications"])


class ClarificationEmailResponse(BaseModel):
    brief_id: str
    email: Optional[ClarificationEmail] = None
    message: str


class AnswerRequest(BaseModel):
    answer: str = Field(min_length=1, max_length=2000)


class CustomQuestionRequest(BaseModel):
    question: str = Field(min_length=1, max_length=300)


@router.post("/{brief_id}/clarification-email", response_model=ClarificationEmailResponse)
async def generate_clarification_email(
    brief_id: str,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> ClarificationEmailResponse:
    email = service.generate_clarification_email(brief_id, creator_id)
    if email is None:
        return ClarificationEmailResponse(brief_id=brief_id, message="No unanswered questions")
    return ClarificationEmailResponse(
        brief_id=brief_id, email=email, message="Clarification email generated"
    )


@router.post("/{brief_id}/questions/{question_id}/answer", response_model=Brief)
async def answer_question(
    brief_id: str,
    question_id: str,
    request: AnswerRequest,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> Brief:
    return service.answer_question(brief_id, creator_id, question_id, request.answer)


@router.post("/{brief_id}/custom-questions", response_model=CustomQuestion, status_code=201)
async def add_custom_question(
    brief_id: str,
    request: CustomQuestionRequest,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> CustomQuestion:
    return service.add_custom_question(brief_id, creator_id, request.question)


@router.delete("/{brief_id}/custom-questions/{question_id}", response_model=Brief)
async def remove_custom_question(
    brief_id: str,
    question_id: str,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> Brief:
    return service.remove_custom_question(brief_id, creator_id, question_id)
