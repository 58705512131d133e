from sqlalchemy import Column, Text, DateTime, ForeignKey, Integer, Boolean, Enum, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from app.database.database import Base

STEP_TYPES = ('CV review', 'Aptitude', 'Interview')


def _utcnow():
    return datetime.now(timezone.utc)


class RecruitmentStep(Base):
    __tablename__ = "recruitment_steps"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    job_id = Column(Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    step_type = Column(Enum(*STEP_TYPES, name='step_type_enum'), nullable=False)
    # 순서는 DB에서 유일성을 강제하지 않음 (조회 시 step_order, created_at 순 정렬)
    step_order = Column(Integer, nullable=False)
    starts = Column(DateTime(timezone=True))
    ends = Column(DateTime(timezone=True))
    release_results = Column(Boolean, nullable=False, default=False)
    content = Column(Text)  # 생성된 적성검사/면접 질문 (CV review는 NULL)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # 관계 설정
    job = relationship("Job", back_populates="recruitment_steps")
    progress_records = relationship("ApplicationProgress", back_populates="recruitment_step", passive_deletes="all")
