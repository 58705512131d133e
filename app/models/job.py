from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, Enum, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from app.database.database import Base

JOB_STATUSES = ('draft', 'open', 'paused', 'closed')
JOB_TYPES = ('full-time', 'part-time', 'internship', 'contract')
EXPERIENCE_LEVELS = ('entry', 'mid', 'senior', 'lead', 'executive')
REMOTE_STATUSES = ('onsite', 'remote', 'hybrid')


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    company_id = Column(Uuid, ForeignKey("companies.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    type = Column(Enum(*JOB_TYPES, name='job_type_enum'), nullable=False, default='full-time')
    # 새 공고는 closed로 시작하고, 단계가 1개 이상 있어야 open 가능
    status = Column(Enum(*JOB_STATUSES, name='job_status_enum'), nullable=False, default='closed')
    requirements = Column(Text)
    benefits = Column(Text)
    salary_min = Column(Integer)
    salary_max = Column(Integer)
    salary_currency = Column(String(10), nullable=False, default='USD')
    experience_level = Column(Enum(*EXPERIENCE_LEVELS, name='experience_level_enum'))
    openings = Column(Integer, nullable=False, default=1)
    location = Column(String(200))
    remote_status = Column(Enum(*REMOTE_STATUSES, name='remote_status_enum'), nullable=False, default='onsite')
    department = Column(String(200))
    date_posted = Column(DateTime(timezone=True), server_default=func.now())
    date_closed = Column(DateTime(timezone=True))

    # 관계 설정
    company = relationship("Company", back_populates="jobs")
    recruitment_steps = relationship(
        "RecruitmentStep",
        back_populates="job",
        cascade="all, delete-orphan",
    )
    applications = relationship("Application", back_populates="job")
