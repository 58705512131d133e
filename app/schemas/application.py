from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
from uuid import UUID

from app.schemas.job import CompanyInfo
from app.schemas.progress import ProgressResponse

ApplicationStatus = Literal['pending', 'selected', 'rejected', 'withdrawn']


class ApplicationCreate(BaseModel):
    job_id: UUID


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    general_review: Optional[str] = None


class ApplicantInfo(BaseModel):
    id: UUID
    name: str
    email: str

    class Config:
        from_attributes = True


class JobSummary(BaseModel):
    id: UUID
    title: str
    status: str
    company: Optional[CompanyInfo] = None

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: UUID
    job_id: UUID
    user_id: UUID
    status: str
    general_review: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicationDetailResponse(ApplicationResponse):
    job: Optional[JobSummary] = None
    applicant: Optional[ApplicantInfo] = None
    progress: List[ProgressResponse] = []


class JobApplicationsResponse(BaseModel):
    """공고별 지원자 목록 (지원자마다 단계별 진행 기록 포함)"""
    job_id: UUID
    applications: List[ApplicationDetailResponse] = []
