from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.database.database import get_db
from app.core.security import RequestContext, require_admin, ensure_company_access
from app.schemas.recruitment_step import RecruitmentStepCreate, RecruitmentStepUpdate, RecruitmentStepResponse
from app.schemas.interview import AssessmentGenerateRequest, AssessmentGenerateResponse
from app.services.recruitment_step_service import RecruitmentStepService
from app.services.assessment_content_service import AssessmentContentService
from app.services.bedrock_service import get_text_generator

router = APIRouter()


@router.get("/jobs/{job_id}/steps", response_model=List[RecruitmentStepResponse])
async def list_steps(job_id: UUID, db: Session = Depends(get_db)):
    service = RecruitmentStepService(db)
    return service.list_steps(job_id)


@router.post("/jobs/{job_id}/steps", response_model=RecruitmentStepResponse, status_code=201)
async def add_step(
    job_id: UUID,
    payload: RecruitmentStepCreate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """채용 단계 추가 (순서 중복/비연속 허용)"""
    service = RecruitmentStepService(db)
    return service.add_step(job_id, payload.model_dump(), current_user)


@router.get("/jobs/{job_id}/steps/{step_id}", response_model=RecruitmentStepResponse)
async def get_step(job_id: UUID, step_id: UUID, db: Session = Depends(get_db)):
    service = RecruitmentStepService(db)
    return service.get_step(step_id, job_id=job_id)


@router.patch("/jobs/{job_id}/steps/{step_id}", response_model=RecruitmentStepResponse)
async def update_step(
    job_id: UUID,
    step_id: UUID,
    payload: RecruitmentStepUpdate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """채용 단계 수정 (STEP_EDIT_LOCK이면 사용 중인 단계 수정 불가)"""
    service = RecruitmentStepService(db)
    return service.update_step(step_id, payload.model_dump(exclude_unset=True), current_user, job_id=job_id)


@router.delete("/jobs/{job_id}/steps/{step_id}")
async def delete_step(
    job_id: UUID,
    step_id: UUID,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """채용 단계 삭제 (진행 기록이 있으면 불가)"""
    service = RecruitmentStepService(db)
    service.delete_step(step_id, current_user, job_id=job_id)
    return {"success": True, "message": "채용 단계가 삭제되었습니다"}


@router.post("/jobs/{job_id}/steps/{step_id}/generate", response_model=AssessmentGenerateResponse)
async def generate_step_content(
    job_id: UUID,
    step_id: UUID,
    payload: AssessmentGenerateRequest,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin),
    generator=Depends(get_text_generator)
):
    """
    적성검사/면접 질문 생성 (미리보기용).

    결과는 저장하지 않습니다. 저장하려면 단계 수정으로 content를 반영하세요.
    회사명/직무/상세 정보를 생략하면 공고 정보로 채웁니다.
    """
    step = RecruitmentStepService(db).get_step(step_id, job_id=job_id)
    job = step.job
    ensure_company_access(current_user, job.company_id)

    company_name = payload.company_name or (job.company.name if job.company else None)
    role = payload.role or job.title
    role_details = payload.role_details or "\n".join(
        part for part in (job.description, job.requirements) if part
    )

    service = AssessmentContentService(generator)
    content = await service.generate(step.step_type, payload.variant, company_name, role, role_details)
    return AssessmentGenerateResponse(content=content, step_type=step.step_type, variant=payload.variant)
