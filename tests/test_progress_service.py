"""Tests for the application ledger's progress records."""

from unittest.mock import patch

import pytest

from app.core.exceptions import AlreadyCompleted, ScoringInProgress, NotFound, Forbidden, ValidationError
from app.core.security import RequestContext
from app.models.application_progress import ApplicationProgress
from app.services.progress_service import ProgressService


@pytest.fixture
def step(open_job):
    return open_job.recruitment_steps[0]


@pytest.fixture
def application(factory, open_job, applicant):
    return factory.application(open_job, applicant)


def _rows(db_session, application, step):
    return (
        db_session.query(ApplicationProgress)
        .filter(ApplicationProgress.application_id == application.id, ApplicationProgress.step_id == step.id)
        .all()
    )


class TestUpsertProgress:
    """At most one progress row per (application, step)."""

    def test_repeated_upserts_keep_one_row_with_last_values(self, db_session, application, step):
        service = ProgressService(db_session)
        for score in (35, 64, 88):
            service.upsert_progress(application, step.id, {"score": score, "review": f"review {score}"})

        rows = _rows(db_session, application, step)
        assert len(rows) == 1
        assert rows[0].score == 88
        assert rows[0].review == "review 88"
        assert rows[0].user_id == application.user_id

    def test_concurrent_insert_falls_back_to_update(self, db_session, factory, application, step):
        """A row created between the lookup and the insert is updated instead of duplicated."""
        existing = factory.progress(application, step, score=10)
        service = ProgressService(db_session)
        real_find = service.find_progress

        with patch.object(service, "find_progress", side_effect=[None, real_find(application.id, step.id)]):
            progress = service.upsert_progress(application, step.id, {"score": 77})

        assert progress.id == existing.id
        rows = _rows(db_session, application, step)
        assert len(rows) == 1
        assert rows[0].score == 77

    def test_has_progress(self, db_session, factory, application, step):
        service = ProgressService(db_session)
        assert service.has_progress(application.id, step.id) is False
        factory.progress(application, step)
        assert service.has_progress(application.id, step.id) is True


class TestScoringClaim:

    def test_claim_inserts_placeholder(self, db_session, application, step):
        claim = ProgressService(db_session).claim_for_scoring(application, step.id)
        assert claim.scoring_state == "scoring"
        assert claim.score is None

    def test_second_claim_while_scoring(self, db_session, application, step):
        service = ProgressService(db_session)
        service.claim_for_scoring(application, step.id)
        with pytest.raises(ScoringInProgress):
            service.claim_for_scoring(application, step.id)

    def test_claim_after_scored(self, db_session, factory, application, step):
        factory.progress(application, step, score=70, scoring_state="scored")
        with pytest.raises(AlreadyCompleted):
            ProgressService(db_session).claim_for_scoring(application, step.id)

    def test_release_removes_placeholder(self, db_session, application, step):
        service = ProgressService(db_session)
        claim = service.claim_for_scoring(application, step.id)
        service.release_claim(claim)
        assert _rows(db_session, application, step) == []

    def test_release_keeps_scored_row(self, db_session, application, step):
        service = ProgressService(db_session)
        claim = service.claim_for_scoring(application, step.id)
        progress = service.complete_scoring(claim, {"score": 90})
        service.release_claim(progress)
        rows = _rows(db_session, application, step)
        assert len(rows) == 1
        assert rows[0].scoring_state == "scored"


class TestSetDecision:
    """Admin decisions are independent of score, outcome and application status."""

    def test_decision_keeps_score_and_outcome(self, db_session, factory, application, step, admin_context):
        progress = factory.progress(application, step, score=42, outcome="rejected")
        updated = ProgressService(db_session).set_decision(application.id, progress.id, "accepted", admin_context)

        assert updated.status == "accepted"
        assert updated.score == 42
        assert updated.outcome == "rejected"
        db_session.refresh(application)
        assert application.status == "pending"

    def test_unknown_decision(self, db_session, factory, application, step, admin_context):
        progress = factory.progress(application, step)
        with pytest.raises(ValidationError):
            ProgressService(db_session).set_decision(application.id, progress.id, "maybe", admin_context)

    def test_progress_must_belong_to_application(self, db_session, factory, open_job, application, step, admin_context):
        other = factory.application(open_job, factory.user())
        progress = factory.progress(other, step)
        with pytest.raises(NotFound):
            ProgressService(db_session).set_decision(application.id, progress.id, "accepted", admin_context)

    def test_admin_of_other_company(self, db_session, factory, application, step):
        outsider = factory.user(role="admin")
        context = RequestContext(user_id=outsider.id, role="admin", company_ids=set())
        progress = factory.progress(application, step)
        with pytest.raises(Forbidden):
            ProgressService(db_session).set_decision(application.id, progress.id, "rejected", context)


class TestListForApplication:

    def test_ordered_by_step_order(self, db_session, factory, open_job, application, step):
        interview = factory.step(open_job, "Interview", 3)
        aptitude = factory.step(open_job, "Aptitude", 2)
        factory.progress(application, interview)
        factory.progress(application, step)
        factory.progress(application, aptitude)

        records = ProgressService(db_session).list_for_application(application.id)
        assert [r.step_id for r in records] == [step.id, aptitude.id, interview.id]
