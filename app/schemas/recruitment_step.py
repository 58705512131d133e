from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime
from uuid import UUID

StepType = Literal['CV review', 'Aptitude', 'Interview']


class RecruitmentStepBase(BaseModel):
    step_type: StepType
    step_order: int
    starts: Optional[datetime] = None
    ends: Optional[datetime] = None
    release_results: bool = False
    content: Optional[str] = None


class RecruitmentStepCreate(RecruitmentStepBase):
    pass


class RecruitmentStepUpdate(BaseModel):
    # 전달된 필드만 반영 (exclude_unset)
    step_type: Optional[StepType] = None
    step_order: Optional[int] = None
    starts: Optional[datetime] = None
    ends: Optional[datetime] = None
    release_results: Optional[bool] = None
    content: Optional[str] = None


class RecruitmentStepResponse(RecruitmentStepBase):
    id: UUID
    job_id: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
