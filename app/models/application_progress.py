from sqlalchemy import Column, Text, DateTime, ForeignKey, Integer, Enum, JSON, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from app.database.database import Base

PROGRESS_STATUSES = ('pending', 'accepted', 'rejected')
PROGRESS_OUTCOMES = ('passed', 'rejected')
SCORING_STATES = ('scoring', 'scored')


def _utcnow():
    return datetime.now(timezone.utc)


class ApplicationProgress(Base):
    __tablename__ = "application_progress"
    __table_args__ = (
        # (지원서, 단계)당 진행 기록은 최대 하나 (동시 제출 경합의 최종 방어선)
        UniqueConstraint("application_id", "step_id", name="uq_application_progress_application_step"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    application_id = Column(Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    # 단계 삭제 시 연쇄 삭제하지 않음 (사용 중인 단계는 삭제 불가)
    step_id = Column(Uuid, ForeignKey("recruitment_steps.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Enum(*PROGRESS_STATUSES, name='progress_status_enum'), nullable=False, default='pending')  # 관리자 결정
    outcome = Column(Enum(*PROGRESS_OUTCOMES, name='progress_outcome_enum'))  # AI 판정 (CV)
    score = Column(Integer)  # 0 ~ 100
    review = Column(Text)  # markdown
    strengths = Column(JSON)
    weaknesses = Column(JSON)
    recommendation = Column(Text)
    transcript = Column(Text)
    call_duration = Column(Integer)  # 초
    scoring_state = Column(Enum(*SCORING_STATES, name='scoring_state_enum'), nullable=False, default='scored')
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # 관계 설정
    application = relationship("Application", back_populates="progress")
    recruitment_step = relationship("RecruitmentStep", back_populates="progress_records")
