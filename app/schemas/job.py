from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from uuid import UUID

from app.schemas.recruitment_step import RecruitmentStepResponse

JobType = Literal['full-time', 'part-time', 'internship', 'contract']
ExperienceLevel = Literal['entry', 'mid', 'senior', 'lead', 'executive']
RemoteStatus = Literal['onsite', 'remote', 'hybrid']


class JobBase(BaseModel):
    title: str
    description: Optional[str] = None
    type: JobType = 'full-time'
    requirements: Optional[str] = None
    benefits: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: str = 'USD'
    experience_level: Optional[ExperienceLevel] = None
    openings: int = Field(default=1, ge=1)
    location: Optional[str] = None
    remote_status: RemoteStatus = 'onsite'
    department: Optional[str] = None


class JobCreate(JobBase):
    company_id: UUID


class JobUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[JobType] = None
    requirements: Optional[str] = None
    benefits: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: Optional[str] = None
    experience_level: Optional[ExperienceLevel] = None
    openings: Optional[int] = Field(default=None, ge=1)
    location: Optional[str] = None
    remote_status: Optional[RemoteStatus] = None
    department: Optional[str] = None


class JobStatusUpdate(BaseModel):
    status: Literal['open', 'closed']


class CompanyInfo(BaseModel):
    id: UUID
    name: str
    location: Optional[str] = None
    type: Optional[str] = None

    class Config:
        from_attributes = True


class JobResponse(JobBase):
    id: UUID
    company_id: UUID
    status: str
    date_posted: Optional[datetime] = None
    date_closed: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobDetailResponse(JobResponse):
    company: Optional[CompanyInfo] = None
    recruitment_steps: List[RecruitmentStepResponse] = []
