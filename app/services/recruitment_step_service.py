from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
import logging

from app.core.config import settings
from app.core.exceptions import NotFound, StepInUse, ValidationError
from app.core.security import RequestContext, ensure_company_access
from app.models.job import Job
from app.models.recruitment_step import RecruitmentStep, STEP_TYPES
from app.models.application_progress import ApplicationProgress

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("step_type", "step_order", "release_results")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite는 tz 정보를 저장하지 않으므로 naive 값은 UTC로 간주
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RecruitmentStepService:
    """채용 공고의 단계(파이프라인) 정의 관리"""

    def __init__(self, db: Session, edit_lock: Optional[bool] = None):
        self.db = db
        # 사용 중인 단계의 수정까지 막을지 여부 (삭제는 항상 막음)
        self.edit_lock = settings.step_edit_lock if edit_lock is None else edit_lock

    def list_steps(self, job_id) -> List[RecruitmentStep]:
        """step_order 기준 안정 정렬 (중복/비연속 순서 허용)"""
        return (
            self.db.query(RecruitmentStep)
            .filter(RecruitmentStep.job_id == job_id)
            .order_by(RecruitmentStep.step_order.asc(), RecruitmentStep.created_at.asc())
            .all()
        )

    def get_step(self, step_id, job_id=None) -> RecruitmentStep:
        query = self.db.query(RecruitmentStep).filter(RecruitmentStep.id == step_id)
        if job_id is not None:
            query = query.filter(RecruitmentStep.job_id == job_id)
        step = query.first()
        if not step:
            raise NotFound("채용 단계를 찾을 수 없습니다")
        return step

    def is_step_in_use(self, step_id) -> bool:
        count = (
            self.db.query(ApplicationProgress)
            .filter(ApplicationProgress.step_id == step_id)
            .count()
        )
        return count > 0

    def add_step(self, job_id, step_data: Dict[str, Any], context: RequestContext) -> RecruitmentStep:
        job = self.db.query(Job).filter(Job.id == job_id).first()
        if not job:
            raise NotFound("채용공고를 찾을 수 없습니다")
        ensure_company_access(context, job.company_id)

        self._validate(step_data)
        step = RecruitmentStep(job_id=job.id, **step_data)
        self.db.add(step)
        self.db.commit()
        self.db.refresh(step)
        logger.info(f"✅ 채용 단계 추가: job={job.id}, type={step.step_type}, order={step.step_order}")
        return step

    def update_step(self, step_id, fields: Dict[str, Any], context: RequestContext, job_id=None) -> RecruitmentStep:
        step = self.get_step(step_id, job_id)
        ensure_company_access(context, step.job.company_id)

        # NOT NULL 컬럼에 대한 명시적 null은 무시
        fields = {k: v for k, v in fields.items() if not (k in REQUIRED_FIELDS and v is None)}

        if self.edit_lock and self.is_step_in_use(step.id):
            logger.warning(f"⚠️ 사용 중인 단계 수정 시도 차단: {step.id}")
            raise StepInUse()

        merged = {
            "step_type": step.step_type,
            "step_order": step.step_order,
            "starts": step.starts,
            "ends": step.ends,
            "content": step.content,
        }
        merged.update(fields)
        self._validate(merged)

        for key, value in fields.items():
            setattr(step, key, value)
        self.db.commit()
        self.db.refresh(step)
        logger.info(f"🔄 채용 단계 수정: {step.id} ({', '.join(fields.keys())})")
        return step

    def delete_step(self, step_id, context: RequestContext, job_id=None) -> None:
        step = self.get_step(step_id, job_id)
        ensure_company_access(context, step.job.company_id)

        if self.is_step_in_use(step.id):
            logger.warning(f"⚠️ 사용 중인 단계 삭제 시도 차단: {step.id}")
            raise StepInUse()

        try:
            self.db.delete(step)
            self.db.commit()
        except IntegrityError:
            # 확인 직후 진행 기록이 생긴 경우 (FK RESTRICT)
            self.db.rollback()
            raise StepInUse()
        logger.info(f"🗑️ 채용 단계 삭제: {step_id}")

    @staticmethod
    def _validate(data: Dict[str, Any]) -> None:
        if data.get("step_type") not in STEP_TYPES:
            raise ValidationError("지원하지 않는 단계 유형입니다")

        step_order = data.get("step_order")
        if step_order is None or step_order < 1:
            raise ValidationError("단계 순서는 1 이상이어야 합니다")

        starts, ends = _as_utc(data.get("starts")), _as_utc(data.get("ends"))
        if starts and ends and starts > ends:
            raise ValidationError("단계 시작일은 종료일보다 늦을 수 없습니다")

        if data.get("step_type") == "CV review" and data.get("content"):
            raise ValidationError("CV review 단계에는 콘텐츠를 저장할 수 없습니다")
