from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
import logging

from app.core.exceptions import NotFound, Forbidden, DuplicateApplication, PreconditionFailed, ValidationError
from app.core.security import RequestContext, ensure_company_access
from app.models.application import Application, APPLICATION_STATUSES
from app.models.application_progress import ApplicationProgress
from app.models.job import Job
from app.schemas.application import ApplicationDetailResponse
from app.schemas.progress import withhold_unreleased

logger = logging.getLogger(__name__)


class ApplicationService:
    def __init__(self, db: Session):
        self.db = db

    def apply(self, job_id, context: RequestContext) -> Application:
        """공고 지원 (공고당 지원자 1명에 지원서 1개)"""
        job = self.db.query(Job).filter(Job.id == job_id).first()
        if not job:
            raise NotFound("채용공고를 찾을 수 없습니다")
        if job.status != "open":
            raise PreconditionFailed("모집 중인 공고에만 지원할 수 있습니다")

        existing = (
            self.db.query(Application)
            .filter(Application.job_id == job.id, Application.user_id == context.user_id)
            .first()
        )
        if existing:
            logger.warning(f"⚠️ 중복 지원 시도: job={job.id}, user={context.user_id}")
            raise DuplicateApplication()

        application = Application(job_id=job.id, user_id=context.user_id, status="pending")
        self.db.add(application)
        try:
            self.db.commit()
        except IntegrityError:
            # (job_id, user_id) 유니크 제약 위반 = 동시 중복 지원
            self.db.rollback()
            raise DuplicateApplication()
        self.db.refresh(application)
        logger.info(f"✅ 지원서 생성: {application.id} (job={job.id}, user={context.user_id})")
        return application

    def list_applications(
        self,
        job_id=None,
        user_id=None,
        status: Optional[str] = None,
    ) -> List[Application]:
        query = self.db.query(Application)
        if job_id:
            query = query.filter(Application.job_id == job_id)
        if user_id:
            query = query.filter(Application.user_id == user_id)
        if status:
            query = query.filter(Application.status == status)
        return query.order_by(Application.created_at.desc()).all()

    def list_for_job(self, job_id, context: RequestContext) -> List[Application]:
        """공고의 모든 지원서 + 각 지원서의 진행 기록 (관리자 검토 화면용)"""
        job = self.db.query(Job).filter(Job.id == job_id).first()
        if not job:
            raise NotFound("채용공고를 찾을 수 없습니다")
        ensure_company_access(context, job.company_id)
        return (
            self.db.query(Application)
            .options(
                joinedload(Application.applicant),
                selectinload(Application.progress).joinedload(ApplicationProgress.recruitment_step),
            )
            .filter(Application.job_id == job.id)
            .order_by(Application.created_at.asc())
            .all()
        )

    def get_application(self, application_id) -> Application:
        application = (
            self.db.query(Application)
            .options(
                joinedload(Application.job).joinedload(Job.company),
                joinedload(Application.applicant),
                selectinload(Application.progress).joinedload(ApplicationProgress.recruitment_step),
            )
            .filter(Application.id == application_id)
            .first()
        )
        if not application:
            raise NotFound("지원서를 찾을 수 없습니다")
        return application

    def get_for_viewer(self, application_id, context: RequestContext) -> Application:
        """본인 지원서이거나 해당 회사 관리자만 조회 가능"""
        application = self.get_application(application_id)
        if application.user_id != context.user_id and not context.can_manage(application.job.company_id):
            raise Forbidden("이 지원서를 조회할 권한이 없습니다")
        return application

    def get_owned_application(self, application_id, context: RequestContext) -> Application:
        """지원자 본인 작업용 (CV 제출, 면접)"""
        application = self.get_application(application_id)
        if application.user_id != context.user_id:
            raise Forbidden("본인의 지원서가 아닙니다")
        if application.status == "withdrawn":
            raise PreconditionFailed("철회된 지원서입니다")
        return application

    def set_status(
        self,
        application_id,
        status: str,
        context: RequestContext,
        general_review: Optional[str] = None,
    ) -> Application:
        """관리자의 지원서 최종 상태 변경 (진행 기록에서 자동 도출하지 않음)"""
        if status not in APPLICATION_STATUSES:
            raise ValidationError(f"지원하지 않는 지원서 상태입니다: {status}")
        application = self.get_application(application_id)
        ensure_company_access(context, application.job.company_id)

        application.status = status
        if general_review is not None:
            application.general_review = general_review
        self.db.commit()
        self.db.refresh(application)
        logger.info(f"📝 지원서 상태 변경: {application.id} → {status}")
        return application

    def withdraw(self, application_id, context: RequestContext) -> Application:
        application = self.get_application(application_id)
        if application.user_id != context.user_id:
            raise Forbidden("본인의 지원서만 철회할 수 있습니다")
        if application.status == "withdrawn":
            return application
        if application.status != "pending":
            raise PreconditionFailed("심사가 끝난 지원서는 철회할 수 없습니다")

        application.status = "withdrawn"
        self.db.commit()
        self.db.refresh(application)
        logger.info(f"↩️ 지원서 철회: {application.id}")
        return application

    @staticmethod
    def to_detail(application: Application, context: RequestContext) -> ApplicationDetailResponse:
        """응답 변환. 관리자가 아닌 지원자에게는 미공개 단계의 결과를 가림"""
        detail = ApplicationDetailResponse.model_validate(application)
        if context.can_manage(application.job.company_id):
            return detail
        return detail.model_copy(update={"progress": [withhold_unreleased(p) for p in detail.progress]})
