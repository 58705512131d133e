"""Tests for interview session creation and transcript scoring."""

import pytest

from app.core.exceptions import (
    AlreadyCompleted, TranscriptTooShort, NotFound, MalformedAIResponse, UpstreamServiceError, ScoringInProgress
)
from app.services.interview_service import (
    InterviewService, format_transcript, format_duration, build_assistant_config,
    INTERVIEW_ANALYSIS_SYSTEM_PROMPT, END_CALL_PHRASES,
)
from app.services.progress_service import ProgressService
from conftest import interview_result_json, LONG_TRANSCRIPT


@pytest.fixture
def interview_step(factory, open_job):
    return factory.step(open_job, "Interview", 2, content="1. Tell me about yourself.", release_results=True)


@pytest.fixture
def application(factory, open_job, applicant):
    return factory.application(open_job, applicant)


def _service(db_session, text_generator, voice_provider):
    return InterviewService(db_session, generator=text_generator, voice_provider=voice_provider)


class TestFormatting:

    def test_format_transcript_labels_speakers(self):
        segments = [
            {"role": "assistant", "text": "Welcome!"},
            {"role": "user", "text": "Thanks, glad to be here."},
        ]
        assert format_transcript(segments, "Nala") == (
            "Nala (Interviewer): Welcome!\n\nCandidate: Thanks, glad to be here."
        )

    def test_format_duration(self):
        assert format_duration(754) == "12 minutes 34 seconds"
        assert format_duration(0) == "0 minutes 0 seconds"


class TestCreateSession:

    @pytest.mark.asyncio
    async def test_creates_assistant(
        self, db_session, text_generator, voice_provider, application, interview_step, applicant_context
    ):
        handle = await _service(db_session, text_generator, voice_provider).create_session(
            application.id, interview_step.id, applicant_context
        )
        assert handle.assistant_id == "asst_test_123"
        assert handle.job_title == "Backend Engineer"
        assert handle.company_name == "Acme Corp"
        assert handle.max_duration_seconds == 1800

        config = voice_provider.configs[0]
        assert config["name"] == "Nala"
        assert config["endCallPhrases"] == END_CALL_PHRASES
        assert config["maxDurationSeconds"] == 1800
        assert config["voice"]["speed"] == 0.85
        system_prompt = config["model"]["messages"][0]["content"]
        assert "1. Tell me about yourself." in system_prompt
        assert "Jane Doe" in system_prompt

    @pytest.mark.asyncio
    async def test_completed_interview_creates_no_assistant(
        self, db_session, factory, text_generator, voice_provider, application, interview_step, applicant_context
    ):
        factory.progress(application, interview_step, score=70)
        with pytest.raises(AlreadyCompleted):
            await _service(db_session, text_generator, voice_provider).create_session(
                application.id, interview_step.id, applicant_context
            )
        assert voice_provider.configs == []

    @pytest.mark.asyncio
    async def test_requires_interview_step(
        self, db_session, text_generator, voice_provider, open_job, application, applicant_context
    ):
        with pytest.raises(NotFound):
            await _service(db_session, text_generator, voice_provider).create_session(
                application.id, open_job.recruitment_steps[0].id, applicant_context
            )

    def test_default_questions_when_step_has_none(self, factory, open_job, application):
        step = factory.step(open_job, "Interview", 3)
        config = build_assistant_config(application, step)
        assert "Ask 5 general interview questions" in config["model"]["messages"][0]["content"]


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_scores_and_stores_transcript(
        self, db_session, text_generator, voice_provider, application, interview_step, applicant_context
    ):
        text_generator.queue(interview_result_json(score=81))
        result, progress = await _service(db_session, text_generator, voice_provider).analyze(
            application.id, interview_step.id, LONG_TRANSCRIPT, 754, applicant_context
        )

        assert result.score == 81
        assert progress.score == 81
        assert progress.transcript == LONG_TRANSCRIPT
        assert progress.call_duration == 754
        assert progress.scoring_state == "scored"
        assert progress.outcome is None

        call = text_generator.calls[0]
        assert call["system"] == INTERVIEW_ANALYSIS_SYSTEM_PROMPT
        assert "Duration: 12 minutes 34 seconds" in call["user"]
        assert LONG_TRANSCRIPT in call["user"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("transcript", ["", "   ", "Candidate: hi", "x" * 49])
    async def test_short_transcript_writes_nothing(
        self, db_session, text_generator, voice_provider, application, interview_step, applicant_context, transcript
    ):
        with pytest.raises(TranscriptTooShort):
            await _service(db_session, text_generator, voice_provider).analyze(
                application.id, interview_step.id, transcript, 10, applicant_context
            )
        assert text_generator.calls == []
        assert ProgressService(db_session).has_progress(application.id, interview_step.id) is False

    @pytest.mark.asyncio
    async def test_second_analysis_is_rejected(
        self, db_session, text_generator, voice_provider, application, interview_step, applicant_context
    ):
        service = _service(db_session, text_generator, voice_provider)
        text_generator.queue(interview_result_json(score=81))
        await service.analyze(application.id, interview_step.id, LONG_TRANSCRIPT, 60, applicant_context)

        with pytest.raises(AlreadyCompleted):
            await service.analyze(application.id, interview_step.id, LONG_TRANSCRIPT, 60, applicant_context)
        assert len(text_generator.calls) == 1

    @pytest.mark.asyncio
    async def test_analysis_while_another_is_scoring(
        self, db_session, factory, text_generator, voice_provider, application, interview_step, applicant_context
    ):
        factory.progress(application, interview_step, scoring_state="scoring")
        with pytest.raises(ScoringInProgress):
            await _service(db_session, text_generator, voice_provider).analyze(
                application.id, interview_step.id, LONG_TRANSCRIPT, 60, applicant_context
            )
        assert text_generator.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", ["malformed", "upstream"])
    async def test_failure_releases_claim_and_allows_retry(
        self, db_session, text_generator, voice_provider, application, interview_step, applicant_context, failure
    ):
        service = _service(db_session, text_generator, voice_provider)
        if failure == "malformed":
            text_generator.queue("not json at all")
            expected = MalformedAIResponse
        else:
            text_generator.error = UpstreamServiceError("Bedrock timeout")
            expected = UpstreamServiceError

        with pytest.raises(expected):
            await service.analyze(application.id, interview_step.id, LONG_TRANSCRIPT, 60, applicant_context)
        assert ProgressService(db_session).has_progress(application.id, interview_step.id) is False

        text_generator.error = None
        text_generator.queue(interview_result_json(score=66))
        _, progress = await service.analyze(application.id, interview_step.id, LONG_TRANSCRIPT, 60, applicant_context)
        assert progress.score == 66
