from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
from uuid import UUID

from app.schemas.recruitment_step import RecruitmentStepResponse


class ProgressDecisionUpdate(BaseModel):
    status: Literal['accepted', 'rejected']


class ProgressResponse(BaseModel):
    id: UUID
    application_id: UUID
    user_id: UUID
    step_id: UUID
    status: str
    outcome: Optional[str] = None
    score: Optional[int] = None
    review: Optional[str] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    recommendation: Optional[str] = None
    transcript: Optional[str] = None
    call_duration: Optional[int] = None
    scoring_state: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    recruitment_step: Optional[RecruitmentStepResponse] = None

    class Config:
        from_attributes = True


# 결과 미공개 단계에서 지원자에게 숨기는 필드
WITHHELD_FIELDS = ("outcome", "score", "review", "strengths", "weaknesses", "recommendation", "transcript")


def withhold_unreleased(progress: ProgressResponse) -> ProgressResponse:
    """release_results가 꺼진 단계의 평가 결과를 가린 사본 반환"""
    step = progress.recruitment_step
    if step is not None and step.release_results:
        return progress
    return progress.model_copy(update={field: None for field in WITHHELD_FIELDS})
