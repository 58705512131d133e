"""Tests for token handling and the request context."""

import uuid
from datetime import timedelta

import pytest

from app.core.exceptions import Unauthorized, Forbidden
from app.core.security import (
    RequestContext, create_access_token, verify_token, build_request_context, ensure_company_access
)


class TestTokens:

    def test_round_trip(self):
        user_id = str(uuid.uuid4())
        assert verify_token(create_access_token({"sub": user_id})) == user_id

    def test_expired(self):
        token = create_access_token({"sub": "someone"}, expires_delta=timedelta(seconds=-5))
        assert verify_token(token) is None

    def test_garbage(self):
        assert verify_token("not.a.jwt") is None


class TestBuildRequestContext:

    def test_loads_role_and_companies(self, db_session, admin, company):
        context = build_request_context(db_session, create_access_token({"sub": str(admin.id)}))
        assert context.user_id == admin.id
        assert context.role == "admin"
        assert context.company_ids == {company.id}

    def test_unknown_user(self, db_session):
        with pytest.raises(Unauthorized):
            build_request_context(db_session, create_access_token({"sub": str(uuid.uuid4())}))

    def test_subject_not_a_uuid(self, db_session):
        with pytest.raises(Unauthorized):
            build_request_context(db_session, create_access_token({"sub": "jane"}))


class TestRequestContext:

    def test_admin_manages_own_company_only(self):
        mine, other = uuid.uuid4(), uuid.uuid4()
        context = RequestContext(user_id=uuid.uuid4(), role="admin", company_ids={mine})
        assert context.can_manage(mine) is True
        assert context.can_manage(other) is False
        with pytest.raises(Forbidden):
            ensure_company_access(context, other)

    def test_applicant_member_cannot_manage(self):
        company_id = uuid.uuid4()
        context = RequestContext(user_id=uuid.uuid4(), role="applicant", company_ids={company_id})
        assert context.is_admin is False
        assert context.can_manage(company_id) is False

    def test_superadmin_manages_everything(self):
        context = RequestContext(user_id=uuid.uuid4(), role="superadmin")
        assert context.can_manage(uuid.uuid4()) is True
