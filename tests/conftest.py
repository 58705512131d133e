"""Shared fixtures: in-memory database, data factories, fake providers and an API client."""

import os

# 앱 import 전에 테스트 환경변수 설정
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-chars-long-for-jwt")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("VAPI_API_KEY", "test-vapi-key")
os.environ.setdefault("STEP_EDIT_LOCK", "false")

import json
import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.database import Base, get_db
from app.core.security import RequestContext, create_access_token
from app.models import User, Company, CompanyMember, Job, RecruitmentStep, Application, ApplicationProgress
from app.services.bedrock_service import get_text_generator
from app.services.vapi_service import get_voice_provider


def cv_result_json(score=72, status="passed", review="Solid backend experience."):
    return json.dumps({
        "score": score,
        "status": status,
        "review": review,
        "strengths": ["Python", "SQL"],
        "weaknesses": ["Limited cloud experience"],
        "recommendation": "Proceed to the aptitude test.",
    })


def interview_result_json(score=81):
    review = "\n\n".join(
        f"## {section}\nFine."
        for section in (
            "Overall Assessment",
            "Communication Skills",
            "Technical/Domain Knowledge",
            "Problem-Solving & Critical Thinking",
            "Cultural Fit & Motivation",
            "Key Highlights",
            "Areas for Development",
        )
    )
    return json.dumps({
        "score": score,
        "review": review,
        "strengths": ["Clear communication"],
        "weaknesses": ["Shallow system design answers"],
        "recommendation": "Recommended for the next round.",
    })


LONG_TRANSCRIPT = (
    "Nala (Interviewer): Tell me about a service you built.\n\n"
    "Candidate: I built an order pipeline in Python with FastAPI and PostgreSQL."
)


class FakeTextGenerator:
    """generate(system, user) 호출을 기록하고 준비된 응답을 순서대로 돌려줌"""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.error = None

    def queue(self, *responses):
        self.responses.extend(responses)

    async def generate(self, system_prompt, user_prompt):
        self.calls.append({"system": system_prompt, "user": user_prompt})
        if self.error is not None:
            raise self.error
        if not self.responses:
            raise AssertionError("FakeTextGenerator has no queued response")
        return self.responses.pop(0)


class FakeVoiceProvider:
    def __init__(self, assistant_id="asst_test_123"):
        self.assistant_id = assistant_id
        self.configs = []

    async def create_assistant(self, config):
        self.configs.append(config)
        return self.assistant_id


class Factory:
    """테스트 데이터 생성 도우미"""

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role="applicant", name="Jane Doe", email=None):
        email = email or f"{uuid.uuid4().hex[:8]}@example.com"
        return self._save(User(role=role, name=name, email=email))

    def company(self, name="Acme Corp"):
        return self._save(Company(name=name, location="Berlin", type="Software"))

    def member(self, company, user, role="admin"):
        return self._save(CompanyMember(company_id=company.id, user_id=user.id, role=role))

    def job(self, company, title="Backend Engineer", status="closed", **fields):
        fields.setdefault("description", "Build and run our APIs.")
        fields.setdefault("requirements", "Python, SQL, 3+ years")
        return self._save(Job(company_id=company.id, title=title, status=status, **fields))

    def step(self, job, step_type="CV review", step_order=1, **fields):
        return self._save(RecruitmentStep(job_id=job.id, step_type=step_type, step_order=step_order, **fields))

    def application(self, job, user, status="pending"):
        return self._save(Application(job_id=job.id, user_id=user.id, status=status))

    def progress(self, application, step, **fields):
        return self._save(ApplicationProgress(
            application_id=application.id,
            user_id=application.user_id,
            step_id=step.id,
            **fields,
        ))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def factory(db_session):
    return Factory(db_session)


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def voice_provider():
    return FakeVoiceProvider()


@pytest.fixture
def company(factory):
    return factory.company()


@pytest.fixture
def admin(factory, company):
    user = factory.user(role="admin", name="Alex Admin")
    factory.member(company, user)
    return user


@pytest.fixture
def applicant(factory):
    return factory.user(role="applicant", name="Jane Doe")


@pytest.fixture
def admin_context(admin, company):
    return RequestContext(user_id=admin.id, role="admin", company_ids={company.id})


@pytest.fixture
def applicant_context(applicant):
    return RequestContext(user_id=applicant.id, role="applicant")


@pytest.fixture
def open_job(factory, company):
    """CV review 단계가 하나 있는 모집 중 공고"""
    job = factory.job(company, status="open")
    factory.step(job, "CV review", 1, release_results=True)
    return job


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db_session, text_generator, voice_provider):
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_generator] = lambda: text_generator
    app.dependency_overrides[get_voice_provider] = lambda: voice_provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
