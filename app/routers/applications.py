from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID

from app.database.database import get_db
from app.core.security import RequestContext, get_current_user, require_admin
from app.schemas.application import (
    ApplicationCreate, ApplicationStatusUpdate, ApplicationResponse, ApplicationDetailResponse
)
from app.schemas.progress import ProgressDecisionUpdate, ProgressResponse, withhold_unreleased
from app.schemas.interview import DocumentExtractResponse, CVAnalysisRequest, CVAnalysisResponse
from app.services.application_service import ApplicationService
from app.services.progress_service import ProgressService
from app.services.document_service import DocumentService
from app.services.cv_analysis_service import CVAnalysisService
from app.services.job_service import JobService
from app.services.bedrock_service import get_text_generator

router = APIRouter()


@router.post("/applications", response_model=ApplicationResponse, status_code=201)
async def create_application(
    payload: ApplicationCreate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user)
):
    """모집 중인 공고에 지원 (공고당 1회)"""
    service = ApplicationService(db)
    return service.apply(payload.job_id, current_user)


@router.get("/applications", response_model=List[ApplicationResponse])
async def list_applications(
    job_id: Optional[UUID] = Query(None),
    user_id: Optional[UUID] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user)
):
    """
    지원서 목록.

    superadmin은 모든 필터를 사용할 수 있고, 회사 관리자는 자기 회사 공고(job_id)의
    지원서를 조회할 수 있습니다. 그 외에는 본인 지원서만 조회됩니다.
    """
    service = ApplicationService(db)
    if current_user.role == "superadmin":
        return service.list_applications(job_id=job_id, user_id=user_id, status=status)
    if job_id and current_user.can_manage(JobService(db).get_job(job_id).company_id):
        return service.list_applications(job_id=job_id, user_id=user_id, status=status)
    return service.list_applications(job_id=job_id, user_id=current_user.user_id, status=status)


@router.post("/applications/extract-pdf", response_model=DocumentExtractResponse)
async def extract_pdf(
    file: UploadFile = File(...),
    current_user: RequestContext = Depends(get_current_user)
):
    """이력서 PDF 텍스트 추출"""
    data = await file.read()
    result = await DocumentService().extract(data, file.content_type, file.filename or "")
    return DocumentExtractResponse(content=result["text"], page_count=result["page_count"])


@router.get("/applications/{application_id}", response_model=ApplicationDetailResponse)
async def get_application(
    application_id: UUID,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user)
):
    service = ApplicationService(db)
    application = service.get_for_viewer(application_id, current_user)
    return service.to_detail(application, current_user)


@router.put("/applications/{application_id}/status", response_model=ApplicationResponse)
async def set_application_status(
    application_id: UUID,
    payload: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """관리자 최종 결정 (selected/rejected 등)"""
    service = ApplicationService(db)
    return service.set_status(application_id, payload.status, current_user, general_review=payload.general_review)


@router.post("/applications/{application_id}/withdraw", response_model=ApplicationResponse)
async def withdraw_application(
    application_id: UUID,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user)
):
    service = ApplicationService(db)
    return service.withdraw(application_id, current_user)


@router.get("/applications/{application_id}/progress", response_model=List[ProgressResponse])
async def list_progress(
    application_id: UUID,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user)
):
    """지원서의 단계별 진행 기록 (지원자에게는 미공개 단계 결과를 가림)"""
    application = ApplicationService(db).get_for_viewer(application_id, current_user)
    records = [ProgressResponse.model_validate(p) for p in ProgressService(db).list_for_application(application.id)]
    if current_user.can_manage(application.job.company_id):
        return records
    return [withhold_unreleased(p) for p in records]


@router.put("/applications/{application_id}/progress/{progress_id}", response_model=ProgressResponse)
async def set_progress_decision(
    application_id: UUID,
    progress_id: UUID,
    payload: ProgressDecisionUpdate,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(require_admin)
):
    """단계별 관리자 판정 (accepted/rejected). 지원서 상태는 바뀌지 않음"""
    service = ProgressService(db)
    return service.set_decision(application_id, progress_id, payload.status, current_user)


@router.post("/applications/{application_id}/analyze-cv", response_model=CVAnalysisResponse)
async def analyze_cv(
    application_id: UUID,
    payload: CVAnalysisRequest,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user),
    generator=Depends(get_text_generator)
):
    """추출된 CV 텍스트를 AI로 채점하고 진행 기록에 저장 (재제출 시 덮어씀)"""
    service = CVAnalysisService(db, generator)
    result, progress = await service.analyze(application_id, payload.step_id, payload.content, current_user)
    record = ProgressResponse.model_validate(progress)
    if progress.recruitment_step.release_results:
        return CVAnalysisResponse(analysis=result, progress=record)
    # 결과 공개 전에는 제출 여부만 알림
    return CVAnalysisResponse(analysis=None, progress=withhold_unreleased(record))
