from datetime import datetime, timedelta, timezone
from dataclasses import dataclass, field
from typing import Optional, Set
import uuid
import logging

import jwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import Unauthorized, Forbidden
from app.database.database import get_db
from app.models.user import User
from app.models.company import CompanyMember

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "superadmin")


@dataclass
class RequestContext:
    """검증된 요청자 신원 (user id, 역할, 관리 중인 회사 목록)"""
    user_id: uuid.UUID
    role: str
    company_ids: Set[uuid.UUID] = field(default_factory=set)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def can_manage(self, company_id) -> bool:
        """해당 회사의 파이프라인을 편집할 수 있는지"""
        if self.role == "superadmin":
            return True
        return self.is_admin and company_id in self.company_ids


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str) -> Optional[str]:
    """토큰을 검증하고 subject(user id)를 반환. 유효하지 않으면 None"""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.InvalidTokenError as e:
        logger.warning(f"⚠️ 토큰 검증 실패: {str(e)}")
        return None
    return payload.get("sub")


def build_request_context(db: Session, token: str) -> RequestContext:
    subject = verify_token(token)
    if not subject:
        raise Unauthorized("유효하지 않은 토큰입니다")
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError:
        raise Unauthorized("유효하지 않은 토큰입니다")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise Unauthorized("사용자를 찾을 수 없습니다")

    memberships = db.query(CompanyMember).filter(CompanyMember.user_id == user.id).all()
    return RequestContext(
        user_id=user.id,
        role=user.role,
        company_ids={m.company_id for m in memberships},
    )


def get_current_user(
    db: Session = Depends(get_db),
    authorization: str = Header(None)
) -> RequestContext:
    """Authorization: Bearer 토큰에서 요청자 정보를 추출"""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized()
    token = authorization.split(" ", 1)[1].strip()
    return build_request_context(db, token)


def require_admin(current_user: RequestContext = Depends(get_current_user)) -> RequestContext:
    if not current_user.is_admin:
        raise Forbidden("관리자 권한이 필요합니다")
    return current_user


def ensure_company_access(current_user: RequestContext, company_id) -> None:
    """관리자가 해당 회사 소속인지 확인"""
    if not current_user.can_manage(company_id):
        raise Forbidden("이 회사의 채용 파이프라인을 관리할 권한이 없습니다")
