from sqlalchemy import Column, String, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid
from app.database.database import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(200), nullable=False)
    location = Column(String(200))
    type = Column(String(100))

    # 관계 설정
    members = relationship("CompanyMember", back_populates="company", cascade="all, delete-orphan")
    jobs = relationship("Job", back_populates="company")


class CompanyMember(Base):
    """회사를 관리하는 admin 계정 (회사별 채용 파이프라인 편집 권한)"""
    __tablename__ = "company_members"
    __table_args__ = (
        UniqueConstraint("company_id", "user_id", name="uq_company_members_company_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(50), nullable=False, default="admin")

    # 관계 설정
    company = relationship("Company", back_populates="members")
    user = relationship("User", back_populates="company_memberships")
