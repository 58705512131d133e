from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional, Tuple
import logging

from app.core.config import settings
from app.core.exceptions import NotFound, AlreadyCompleted, TranscriptTooShort
from app.core.security import RequestContext
from app.models.application import Application
from app.models.application_progress import ApplicationProgress
from app.models.recruitment_step import RecruitmentStep
from app.schemas.analysis import InterviewAnalysisResult, parse_ai_result
from app.schemas.interview import InterviewSessionHandle
from app.services.application_service import ApplicationService
from app.services.progress_service import ProgressService
from app.services.recruitment_step_service import RecruitmentStepService

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS = "Ask 5 general interview questions relevant to the role."

END_CALL_PHRASES = [
    "thank you for your time",
    "that concludes our interview",
    "we will be in touch",
    "goodbye",
]

END_CALL_MESSAGE = (
    "Thank you for completing the interview! Your responses have been recorded. "
    "You'll receive your results shortly. Good luck!"
)

INTERVIEW_ANALYSIS_SYSTEM_PROMPT = """You are an expert HR recruiter analyzing an interview transcript. You will evaluate the candidate's performance and provide a structured assessment.

You must respond with ONLY valid JSON matching this exact schema:
{
  "score": <number 0-100>,
  "review": "<markdown formatted detailed review using the structure below>",
  "strengths": ["<strength 1>", "<strength 2>", ...],
  "weaknesses": ["<weakness 1>", "<weakness 2>", ...],
  "recommendation": "<1-2 sentence final recommendation>"
}

The "review" field should be in markdown format with the following structure:
## Overall Assessment
A 3-5 sentence summary of the candidate's interview performance.

## Communication Skills
Evaluate clarity, articulation, confidence, and professionalism in responses.

## Technical/Domain Knowledge
Assess the depth and accuracy of the candidate's knowledge relevant to the role.

## Problem-Solving & Critical Thinking
Evaluate how well the candidate structures thoughts and approaches problems.

## Cultural Fit & Motivation
Assess enthusiasm, alignment with company values, and genuine interest in the role.

## Key Highlights
Notable moments or standout answers from the interview.

## Areas for Development
Specific areas where the candidate could improve.

Scoring guidelines:
- 85-100: Outstanding. Exceptional communication, deep expertise, excellent fit
- 70-84: Strong. Good communication, solid knowledge, clear potential
- 55-69: Average. Adequate responses but lacks depth or confidence in key areas
- 40-54: Below Average. Struggled with several questions, gaps in knowledge
- 0-39: Poor. Unable to answer most questions adequately

Be fair, thorough, and constructive. Consider the role requirements when scoring."""


def format_duration(seconds: int) -> str:
    seconds = max(int(seconds or 0), 0)
    return f"{seconds // 60} minutes {seconds % 60} seconds"


def format_transcript(segments: List[Dict[str, str]], assistant_name: Optional[str] = None) -> str:
    """확정된 segment 목록 → 화자 라벨이 붙은 transcript"""
    assistant_name = assistant_name or settings.vapi_assistant_name
    lines = []
    for segment in segments:
        if segment["role"] == "assistant":
            lines.append(f"{assistant_name} (Interviewer): {segment['text']}")
        else:
            lines.append(f"Candidate: {segment['text']}")
    return "\n\n".join(lines)


def _company_name(application: Application) -> Optional[str]:
    company = application.job.company
    return company.name if company else None


def build_interviewer_prompt(application: Application, step: RecruitmentStep) -> str:
    job = application.job
    company = _company_name(application) or "the company"
    candidate = application.applicant.name if application.applicant else "the candidate"
    questions = step.content or DEFAULT_QUESTIONS
    return f"""You are a professional AI interviewer conducting a virtual interview for {company}.

## Role Details
- **Position:** {job.title}
- **Company:** {_company_name(application) or "N/A"}
- **Job Type:** {job.type}
- **Department:** {job.department or "N/A"}
- **Experience Level:** {job.experience_level or "N/A"}

## Job Description
{job.description or "No description provided."}

## Requirements
{job.requirements or "No specific requirements listed."}

## Interview Questions
Use these pre-prepared questions as your guide. Ask them one at a time, wait for the candidate's response, then move to the next:

{questions}

## Instructions
1. Start by warmly greeting the candidate by name ({candidate}) and briefly introducing yourself as the AI interviewer for the {job.title} position at {company}.
2. Ask the questions ONE AT A TIME. Do not list multiple questions at once.
3. After they answer, briefly acknowledge their response before moving to the next question.
4. If a candidate's answer is unclear or too brief, ask a short follow-up to get more detail before moving on.
5. Keep your tone professional, warm, and encouraging throughout.
6. After all questions are done, thank the candidate for their time and let them know the interview is complete.
7. Keep each of your responses concise, under 40 words unless you need to clarify something.
8. Do NOT provide feedback on answers during the interview. Just listen and acknowledge."""


def build_assistant_config(application: Application, step: RecruitmentStep) -> Dict[str, Any]:
    job = application.job
    company = _company_name(application) or "our company"
    candidate = application.applicant.name if application.applicant else "there"
    return {
        "name": settings.vapi_assistant_name,
        "endCallPhrases": END_CALL_PHRASES,
        "firstMessage": (
            f"Hello {candidate}! Welcome to your virtual interview for the {job.title} position at {company}. "
            "I'll be conducting your interview today. Are you ready to begin?"
        ),
        "model": {
            "provider": "openai",
            "model": "gpt-4o",
            "messages": [
                {"role": "system", "content": build_interviewer_prompt(application, step)},
            ],
        },
        "voice": {
            "provider": "11labs",
            "voiceId": settings.vapi_voice_id,
            "speed": 0.85,
        },
        "endCallMessage": END_CALL_MESSAGE,
        "maxDurationSeconds": settings.interview_max_duration_seconds,
    }


def build_analysis_prompt(application: Application, step: RecruitmentStep, transcript: str, call_duration: int) -> str:
    job = application.job
    return f"""## Job Context
**Position:** {job.title}
**Company:** {_company_name(application) or "N/A"}
**Type:** {job.type}
**Experience Level:** {job.experience_level or "N/A"}
**Department:** {job.department or "N/A"}

**Job Description:**
{job.description or "No description."}

**Requirements:**
{job.requirements or "No specific requirements."}

## Interview Questions Used
{step.content or "Standard interview questions were used."}

## Interview Transcript
{transcript}

## Call Metadata
- Duration: {format_duration(call_duration)}
- Candidate: {application.applicant.name if application.applicant else "Unknown"}

---

Analyze this interview transcript and provide your structured evaluation as JSON."""


class InterviewService:
    """AI 음성 면접: 세션 생성과 transcript 채점"""

    def __init__(self, db: Session, generator=None, voice_provider=None):
        self.db = db
        self.generator = generator
        self.voice_provider = voice_provider
        self.applications = ApplicationService(db)
        self.steps = RecruitmentStepService(db)
        self.progress = ProgressService(db)

    def _load_interview(self, application_id, step_id, context: RequestContext) -> Tuple[Application, RecruitmentStep]:
        application = self.applications.get_owned_application(application_id, context)
        step = self.steps.get_step(step_id, job_id=application.job_id)
        if step.step_type != "Interview":
            raise NotFound("면접 단계를 찾을 수 없습니다")
        return application, step

    async def create_session(self, application_id, step_id, context: RequestContext) -> InterviewSessionHandle:
        """면접 세션 생성. 이미 진행 기록이 있으면 어시스턴트를 만들지 않고 거절"""
        application, step = self._load_interview(application_id, step_id, context)

        if self.progress.has_progress(application.id, step.id):
            logger.warning(f"⚠️ 이미 완료한 면접 재시작 시도: application={application.id}, step={step.id}")
            raise AlreadyCompleted()

        config = build_assistant_config(application, step)
        assistant_id = await self.voice_provider.create_assistant(config)
        logger.info(f"🎙️ 면접 세션 생성: application={application.id}, assistant={assistant_id}")

        return InterviewSessionHandle(
            assistant_id=assistant_id,
            job_title=application.job.title,
            company_name=_company_name(application),
            max_duration_seconds=settings.interview_max_duration_seconds,
        )

    async def analyze(
        self,
        application_id,
        step_id,
        transcript: str,
        call_duration: int,
        context: RequestContext,
    ) -> Tuple[InterviewAnalysisResult, ApplicationProgress]:
        """
        면접 transcript 채점.

        (지원서, 단계)를 먼저 선점한 요청만 모델을 호출합니다.
        실패하면 선점 행을 지워 진행 기록이 남지 않게 합니다.
        """
        transcript = (transcript or "").strip()
        if len(transcript) < settings.interview_min_transcript_length:
            logger.warning(f"⚠️ transcript가 너무 짧음: {len(transcript)} 문자")
            raise TranscriptTooShort()

        application, step = self._load_interview(application_id, step_id, context)
        logger.info(f"🤖 면접 분석 시작 - transcript 길이: {len(transcript)} 문자, 통화 시간: {call_duration}초")

        claim = self.progress.claim_for_scoring(application, step.id)
        completed = False
        try:
            content = await self.generator.generate(
                INTERVIEW_ANALYSIS_SYSTEM_PROMPT,
                build_analysis_prompt(application, step, transcript, call_duration),
            )
            result = parse_ai_result(content, InterviewAnalysisResult)
            logger.info(f"✅ 면접 분석 결과 파싱 성공 - 점수: {result.score}")

            progress = self.progress.complete_scoring(claim, {
                "score": result.score,
                "review": result.review,
                "strengths": result.strengths,
                "weaknesses": result.weaknesses,
                "recommendation": result.recommendation,
                "transcript": transcript,
                "call_duration": call_duration,
            })
            completed = True
            return result, progress
        finally:
            if not completed:
                logger.error(f"❌ 면접 분석 실패, 선점 해제: application={application.id}, step={step.id}")
                self.progress.release_claim(claim)
