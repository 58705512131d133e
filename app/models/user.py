from sqlalchemy import Column, String, DateTime, Enum, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from app.database.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    role = Column(Enum('applicant', 'admin', 'superadmin', name='user_role_enum'), nullable=False, default='applicant')
    avatar_url = Column(String(500))
    linkedin_url = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # 관계 설정
    company_memberships = relationship("CompanyMember", back_populates="user")
    applications = relationship("Application", back_populates="applicant")
