"""Tests for the pipeline definition store (recruitment steps)."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import StepInUse, ValidationError, NotFound
from app.services.recruitment_step_service import RecruitmentStepService


@pytest.fixture
def job(factory, company):
    return factory.job(company)


class TestAddStep:

    def test_add_step(self, db_session, job, admin_context):
        step = RecruitmentStepService(db_session).add_step(
            job.id, {"step_type": "Aptitude", "step_order": 2, "release_results": True}, admin_context
        )
        assert step.job_id == job.id
        assert step.step_type == "Aptitude"
        assert step.content is None

    @pytest.mark.parametrize("order", [0, -3])
    def test_order_must_be_positive(self, db_session, job, admin_context, order):
        with pytest.raises(ValidationError):
            RecruitmentStepService(db_session).add_step(
                job.id, {"step_type": "CV review", "step_order": order}, admin_context
            )

    def test_window_must_be_ordered(self, db_session, job, admin_context):
        now = datetime.now(timezone.utc)
        with pytest.raises(ValidationError):
            RecruitmentStepService(db_session).add_step(
                job.id,
                {"step_type": "Interview", "step_order": 1, "starts": now, "ends": now - timedelta(days=1)},
                admin_context,
            )

    def test_cv_review_rejects_content(self, db_session, job, admin_context):
        with pytest.raises(ValidationError):
            RecruitmentStepService(db_session).add_step(
                job.id, {"step_type": "CV review", "step_order": 1, "content": "1. Why?"}, admin_context
            )

    def test_unknown_job(self, db_session, admin_context):
        import uuid
        with pytest.raises(NotFound):
            RecruitmentStepService(db_session).add_step(
                uuid.uuid4(), {"step_type": "CV review", "step_order": 1}, admin_context
            )


class TestListSteps:

    def test_stable_sort_tolerates_duplicate_and_gapped_orders(self, db_session, factory, job):
        third = factory.step(job, "Interview", 7)
        first = factory.step(job, "CV review", 1)
        second_a = factory.step(job, "Aptitude", 3)
        second_b = factory.step(job, "Interview", 3)

        steps = RecruitmentStepService(db_session).list_steps(job.id)
        assert [s.id for s in steps] == [first.id, second_a.id, second_b.id, third.id]


class TestDeleteStep:
    """Deletion is blocked iff a progress row references the step."""

    def test_delete_unused_step(self, db_session, factory, job, admin_context):
        step = factory.step(job)
        service = RecruitmentStepService(db_session)
        service.delete_step(step.id, admin_context)
        assert service.list_steps(job.id) == []

    def test_delete_in_use_step_fails(self, db_session, factory, job, admin_context, applicant):
        step = factory.step(job)
        application = factory.application(job, applicant)
        factory.progress(application, step, score=50)

        service = RecruitmentStepService(db_session)
        with pytest.raises(StepInUse):
            service.delete_step(step.id, admin_context)
        assert [s.id for s in service.list_steps(job.id)] == [step.id]

    def test_delete_checks_only_the_target_step(self, db_session, factory, job, admin_context, applicant):
        used = factory.step(job, "CV review", 1)
        unused = factory.step(job, "Interview", 2)
        factory.progress(factory.application(job, applicant), used)

        service = RecruitmentStepService(db_session)
        service.delete_step(unused.id, admin_context)
        assert [s.id for s in service.list_steps(job.id)] == [used.id]


class TestUpdateStep:

    def test_update_in_use_step_allowed_by_default(self, db_session, factory, job, admin_context, applicant):
        step = factory.step(job, "Interview", 1)
        factory.progress(factory.application(job, applicant), step)

        updated = RecruitmentStepService(db_session, edit_lock=False).update_step(
            step.id, {"release_results": True}, admin_context
        )
        assert updated.release_results is True

    def test_edit_lock_blocks_update_of_in_use_step(self, db_session, factory, job, admin_context, applicant):
        step = factory.step(job, "Interview", 1)
        factory.progress(factory.application(job, applicant), step)

        with pytest.raises(StepInUse):
            RecruitmentStepService(db_session, edit_lock=True).update_step(
                step.id, {"step_order": 2}, admin_context
            )

    def test_edit_lock_allows_unused_step(self, db_session, factory, job, admin_context):
        step = factory.step(job, "Interview", 1)
        updated = RecruitmentStepService(db_session, edit_lock=True).update_step(
            step.id, {"step_order": 4}, admin_context
        )
        assert updated.step_order == 4

    def test_content_round_trip_is_exact(self, db_session, factory, job, admin_context):
        """Saved content reads back byte-for-byte."""
        step = factory.step(job, "Aptitude", 2)
        text = "1. What is 2 + 2?\n   A) 3\n   B) 4  <- correct\n\n2. Ünïcode «quotes» ✓   \n"

        service = RecruitmentStepService(db_session)
        service.update_step(step.id, {"content": text}, admin_context)
        db_session.expire_all()
        assert service.get_step(step.id).content == text

    def test_explicit_null_for_required_field_is_ignored(self, db_session, factory, job, admin_context):
        step = factory.step(job, "Aptitude", 2)
        updated = RecruitmentStepService(db_session).update_step(
            step.id, {"step_type": None, "step_order": None}, admin_context
        )
        assert updated.step_type == "Aptitude"
        assert updated.step_order == 2

    def test_switching_to_cv_review_with_content_fails(self, db_session, factory, job, admin_context):
        step = factory.step(job, "Aptitude", 2, content="1. Q")
        with pytest.raises(ValidationError):
            RecruitmentStepService(db_session).update_step(step.id, {"step_type": "CV review"}, admin_context)

    def test_step_must_belong_to_job(self, db_session, factory, company, job, admin_context):
        other_job = factory.job(company, title="Other")
        step = factory.step(other_job)
        with pytest.raises(NotFound):
            RecruitmentStepService(db_session).update_step(step.id, {"step_order": 2}, admin_context, job_id=job.id)
