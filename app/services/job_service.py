from sqlalchemy.orm import Session, joinedload
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
import logging

from app.core.exceptions import NotFound, PreconditionFailed, ValidationError
from app.core.security import RequestContext, ensure_company_access
from app.models.company import Company
from app.models.job import Job
from app.models.recruitment_step import RecruitmentStep

logger = logging.getLogger(__name__)


class JobService:
    def __init__(self, db: Session):
        self.db = db

    def create_job(self, job_data: Dict[str, Any], context: RequestContext) -> Job:
        """채용공고 생성 (status는 항상 closed로 시작)"""
        company_id = job_data.get("company_id")
        company = self.db.query(Company).filter(Company.id == company_id).first()
        if not company:
            raise NotFound("회사를 찾을 수 없습니다")
        ensure_company_access(context, company.id)
        self._validate_salary(job_data.get("salary_min"), job_data.get("salary_max"))

        job = Job(**job_data)
        job.status = "closed"
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        logger.info(f"✅ 채용공고 생성: {job.id} ({job.title})")
        return job

    def list_jobs(
        self,
        company_id=None,
        status: Optional[str] = None,
        job_type: Optional[str] = None,
    ) -> List[Job]:
        query = self.db.query(Job)
        if company_id:
            query = query.filter(Job.company_id == company_id)
        if status:
            query = query.filter(Job.status == status)
        if job_type:
            query = query.filter(Job.type == job_type)
        return query.order_by(Job.date_posted.desc()).all()

    def get_job(self, job_id) -> Job:
        job = (
            self.db.query(Job)
            .options(joinedload(Job.company))
            .filter(Job.id == job_id)
            .first()
        )
        if not job:
            raise NotFound("채용공고를 찾을 수 없습니다")
        return job

    def update_job(self, job_id, fields: Dict[str, Any], context: RequestContext) -> Job:
        """공고 내용 수정 (status는 set_job_status로만 변경)"""
        job = self.get_job(job_id)
        ensure_company_access(context, job.company_id)

        fields = {k: v for k, v in fields.items() if k not in ("status", "company_id", "id")}
        self._validate_salary(
            fields.get("salary_min", job.salary_min),
            fields.get("salary_max", job.salary_max),
        )
        for key, value in fields.items():
            setattr(job, key, value)

        self.db.commit()
        self.db.refresh(job)
        return job

    def set_job_status(self, job_id, new_status: str, context: RequestContext) -> Job:
        """
        공고 open/close 게이트.

        - open: 단계가 1개 이상이고 현재 closed일 때만
        - closed: 현재 open일 때만
        지원서/진행 기록은 건드리지 않습니다.
        """
        job = self.get_job(job_id)
        ensure_company_access(context, job.company_id)

        if new_status == "open":
            step_count = (
                self.db.query(RecruitmentStep)
                .filter(RecruitmentStep.job_id == job.id)
                .count()
            )
            if step_count == 0:
                logger.warning(f"⚠️ 단계 없는 공고 open 시도: {job.id}")
                raise PreconditionFailed("채용 단계를 1개 이상 추가해야 공고를 열 수 있습니다")
            if job.status != "closed":
                raise PreconditionFailed(f"'{job.status}' 상태의 공고는 열 수 없습니다")
            job.status = "open"
            job.date_closed = None
        elif new_status == "closed":
            if job.status != "open":
                raise PreconditionFailed(f"'{job.status}' 상태의 공고는 마감할 수 없습니다")
            job.status = "closed"
            job.date_closed = datetime.now(timezone.utc)
        else:
            raise ValidationError(f"지원하지 않는 상태 변경입니다: {new_status}")

        self.db.commit()
        self.db.refresh(job)
        logger.info(f"🔄 공고 상태 변경: {job.id} → {job.status}")
        return job

    @staticmethod
    def _validate_salary(salary_min, salary_max):
        if salary_min is not None and salary_max is not None and salary_min > salary_max:
            raise ValidationError("최소 급여가 최대 급여보다 클 수 없습니다")
