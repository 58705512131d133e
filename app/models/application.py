from sqlalchemy import Column, Text, DateTime, ForeignKey, Enum, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from app.database.database import Base

APPLICATION_STATUSES = ('pending', 'selected', 'rejected', 'withdrawn')


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        # (공고, 지원자)당 지원서는 하나
        UniqueConstraint("job_id", "user_id", name="uq_applications_job_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    job_id = Column(Uuid, ForeignKey("jobs.id"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(Enum(*APPLICATION_STATUSES, name='application_status_enum'), nullable=False, default='pending')
    general_review = Column(Text)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # 관계 설정
    job = relationship("Job", back_populates="applications")
    applicant = relationship("User", back_populates="applications")
    progress = relationship("ApplicationProgress", back_populates="application", cascade="all, delete-orphan")
