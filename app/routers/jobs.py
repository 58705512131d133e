from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID

from app.database.database import get_db
from app.core.security import RequestContext, require_admin
from app.schemas.job import JobCreate, JobUpdate, JobStatusUpdate, JobResponse, JobDetailResponse
from app.schemas.recruitment_step import RecruitmentStepResponse
from app.schemas.application import ApplicationDetailResponse, JobApplicationsResponse
from app.services.job_service import JobService
from app.services.recruitment_step_service import RecruitmentStepService
from app.services.application_service import ApplicationService

router = APIRouter()


@router.get("/jobs", response_model=List[JobResponse])
async def list_jobs(
    company_id: Optional[UUID] = Query(None),
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """채용공고 목록 (회사/상태/고용형태 필터)"""
    service = JobService(db)
    return service.list_jobs(company_id=company_id, status=status, job_type=type)


@router.post("/jobs", response_model=JobResponse, status_code=201)
async def create_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """채용공고 생성 (closed 상태로 시작)"""
    service = JobService(db)
    return service.create_job(payload.model_dump(), current_user)


@router.get("/jobs/{job_id}", response_model=JobDetailResponse)
async def get_job(job_id: UUID, db: Session = Depends(get_db)):
    """채용공고 상세 (회사 정보 + 순서대로 정렬된 채용 단계)"""
    job = JobService(db).get_job(job_id)
    steps = RecruitmentStepService(db).list_steps(job.id)
    detail = JobDetailResponse.model_validate(job)
    return detail.model_copy(update={
        "recruitment_steps": [RecruitmentStepResponse.model_validate(s) for s in steps]
    })


@router.patch("/jobs/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: UUID,
    payload: JobUpdate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    service = JobService(db)
    return service.update_job(job_id, payload.model_dump(exclude_unset=True), current_user)


@router.put("/jobs/{job_id}/status", response_model=JobResponse)
async def set_job_status(
    job_id: UUID,
    payload: JobStatusUpdate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """공고 open/close (단계가 없으면 open 불가)"""
    service = JobService(db)
    return service.set_job_status(job_id, payload.status, current_user)


@router.get("/jobs/{job_id}/applications", response_model=JobApplicationsResponse)
async def list_job_applications(
    job_id: UUID,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """관리자 검토용: 공고의 지원서 목록 + 단계별 진행 기록"""
    applications = ApplicationService(db).list_for_job(job_id, current_user)
    return JobApplicationsResponse(
        job_id=job_id,
        applications=[ApplicationDetailResponse.model_validate(a) for a in applications],
    )
