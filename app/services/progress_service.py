from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Dict, Any
import logging

from app.core.exceptions import NotFound, AlreadyCompleted, ScoringInProgress, ValidationError
from app.core.security import RequestContext, ensure_company_access
from app.models.application import Application
from app.models.application_progress import ApplicationProgress
from app.models.recruitment_step import RecruitmentStep

logger = logging.getLogger(__name__)

DECISIONS = ("accepted", "rejected")


class ProgressService:
    """
    (지원서, 단계)별 진행 기록 관리.

    모든 채점 엔진은 이 서비스의 upsert/claim을 통해서만 기록을 씁니다.
    (application_id, step_id) 유니크 제약이 동시 제출 경합의 최종 방어선입니다.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_progress(self, application_id, step_id) -> Optional[ApplicationProgress]:
        return (
            self.db.query(ApplicationProgress)
            .filter(
                ApplicationProgress.application_id == application_id,
                ApplicationProgress.step_id == step_id,
            )
            .first()
        )

    def has_progress(self, application_id, step_id) -> bool:
        return self.find_progress(application_id, step_id) is not None

    def upsert_progress(self, application: Application, step_id, fields: Dict[str, Any]) -> ApplicationProgress:
        """기존 기록이 있으면 갱신, 없으면 생성 (마지막 쓰기가 남음)"""
        progress = self.find_progress(application.id, step_id)
        if progress is not None:
            self._apply(progress, fields)
            self.db.commit()
            self.db.refresh(progress)
            logger.info(f"🔄 진행 기록 갱신: application={application.id}, step={step_id}")
            return progress

        progress = ApplicationProgress(
            application_id=application.id,
            user_id=application.user_id,
            step_id=step_id,
        )
        self._apply(progress, fields)
        self.db.add(progress)
        try:
            self.db.commit()
        except IntegrityError:
            # 동시에 다른 요청이 먼저 생성한 경우: 그 행을 갱신
            self.db.rollback()
            logger.warning(f"⚠️ 진행 기록 동시 생성 감지, 기존 행 갱신: application={application.id}, step={step_id}")
            progress = self.find_progress(application.id, step_id)
            if progress is None:
                raise
            self._apply(progress, fields)
            self.db.commit()

        self.db.refresh(progress)
        logger.info(f"✅ 진행 기록 저장: application={application.id}, step={step_id}")
        return progress

    def claim_for_scoring(self, application: Application, step_id) -> ApplicationProgress:
        """
        채점 선점: scoring 상태의 자리표시 행을 삽입합니다.

        이미 채점 중이면 ScoringInProgress, 채점 완료면 AlreadyCompleted.
        선점에 성공한 요청만 모델을 호출합니다.
        """
        existing = self.find_progress(application.id, step_id)
        if existing is None:
            claim = ApplicationProgress(
                application_id=application.id,
                user_id=application.user_id,
                step_id=step_id,
                scoring_state="scoring",
            )
            self.db.add(claim)
            try:
                self.db.commit()
                self.db.refresh(claim)
                logger.info(f"🔒 채점 선점: application={application.id}, step={step_id}")
                return claim
            except IntegrityError:
                self.db.rollback()
                existing = self.find_progress(application.id, step_id)
                if existing is None:
                    raise

        if existing.scoring_state == "scoring":
            logger.warning(f"⚠️ 채점 진행 중인 단계 재요청: application={application.id}, step={step_id}")
            raise ScoringInProgress()
        logger.warning(f"⚠️ 이미 채점 완료된 단계 재요청: application={application.id}, step={step_id}")
        raise AlreadyCompleted()

    def complete_scoring(self, progress: ApplicationProgress, fields: Dict[str, Any]) -> ApplicationProgress:
        self._apply(progress, fields)
        progress.scoring_state = "scored"
        self.db.commit()
        self.db.refresh(progress)
        logger.info(f"✅ 채점 완료: progress={progress.id}, score={progress.score}")
        return progress

    def release_claim(self, progress: ApplicationProgress) -> None:
        """채점 실패 시 자리표시 행 제거 (재시도 허용)"""
        self.db.rollback()
        if progress.scoring_state != "scoring":
            return
        self.db.delete(progress)
        self.db.commit()
        logger.info(f"🔓 채점 선점 해제: progress={progress.id}")

    def set_decision(self, application_id, progress_id, decision: str, context: RequestContext) -> ApplicationProgress:
        """관리자 판정 (점수/AI 판정과 독립, 지원서 상태는 바꾸지 않음)"""
        if decision not in DECISIONS:
            raise ValidationError(f"지원하지 않는 판정입니다: {decision}")

        progress = (
            self.db.query(ApplicationProgress)
            .options(joinedload(ApplicationProgress.application).joinedload(Application.job))
            .filter(
                ApplicationProgress.id == progress_id,
                ApplicationProgress.application_id == application_id,
            )
            .first()
        )
        if not progress:
            raise NotFound("진행 기록을 찾을 수 없습니다")
        ensure_company_access(context, progress.application.job.company_id)

        progress.status = decision
        self.db.commit()
        self.db.refresh(progress)
        logger.info(f"📝 단계 판정: progress={progress.id} → {decision}")
        return progress

    def list_for_application(self, application_id) -> List[ApplicationProgress]:
        """지원서의 모든 진행 기록 (단계 정보 포함, 단계 순서대로)"""
        return (
            self.db.query(ApplicationProgress)
            .join(RecruitmentStep, ApplicationProgress.step_id == RecruitmentStep.id)
            .options(joinedload(ApplicationProgress.recruitment_step))
            .filter(ApplicationProgress.application_id == application_id)
            .order_by(RecruitmentStep.step_order.asc(), RecruitmentStep.created_at.asc())
            .all()
        )

    @staticmethod
    def _apply(progress: ApplicationProgress, fields: Dict[str, Any]) -> None:
        for key, value in fields.items():
            setattr(progress, key, value)
