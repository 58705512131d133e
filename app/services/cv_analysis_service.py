from sqlalchemy.orm import Session
from typing import Tuple
import logging

from app.core.exceptions import EmptyDocument, ValidationError
from app.core.security import RequestContext
from app.models.application_progress import ApplicationProgress
from app.models.job import Job
from app.schemas.analysis import CVAnalysisResult, parse_ai_result
from app.services.application_service import ApplicationService
from app.services.progress_service import ProgressService
from app.services.recruitment_step_service import RecruitmentStepService

logger = logging.getLogger(__name__)

CV_SYSTEM_PROMPT = """You are an expert HR recruiter and CV analyst. You will analyze a candidate's CV against a job posting and provide a structured evaluation.

You must respond with ONLY valid JSON matching this exact schema:
{
  "score": <number 0-100>,
  "status": "<passed|rejected>",
  "review": "<detailed 2-4 sentence review of the candidate's fit>",
  "strengths": ["<strength 1>", "<strength 2>", ...],
  "weaknesses": ["<weakness 1>", "<weakness 2>", ...],
  "recommendation": "<1-2 sentence final recommendation>"
}

Scoring guidelines:
- 80-100: Excellent fit, strong match on most requirements -> status: "passed"
- 60-79: Good fit, meets key requirements with some gaps -> status: "passed"
- 40-59: Moderate fit, meets some requirements but has notable gaps -> status: "rejected"
- 0-39: Poor fit, does not meet most requirements -> status: "rejected"

Be fair, objective, and constructive in your analysis."""


def build_cv_prompt(job: Job, cv_text: str) -> str:
    company_name = job.company.name if job.company else "N/A"
    return f"""## Job Details
**Title:** {job.title}
**Company:** {company_name}
**Type:** {job.type}
**Location:** {job.location or "N/A"}
**Remote Status:** {job.remote_status or "N/A"}
**Experience Level:** {job.experience_level or "N/A"}
**Department:** {job.department or "N/A"}

**Description:**
{job.description or "No description provided."}

**Requirements:**
{job.requirements or "No specific requirements listed."}

**Benefits:**
{job.benefits or "No benefits listed."}

---

## Candidate CV Content
{cv_text}

---

Analyze this CV against the job posting and provide your structured evaluation as JSON."""


class CVAnalysisService:
    """CV 텍스트를 공고 요구사항과 비교해 채점하고 진행 기록에 반영"""

    def __init__(self, db: Session, generator):
        self.db = db
        self.generator = generator
        self.applications = ApplicationService(db)
        self.steps = RecruitmentStepService(db)
        self.progress = ProgressService(db)

    async def analyze(
        self,
        application_id,
        step_id,
        cv_text: str,
        context: RequestContext,
    ) -> Tuple[CVAnalysisResult, ApplicationProgress]:
        application = self.applications.get_owned_application(application_id, context)
        step = self.steps.get_step(step_id, job_id=application.job_id)
        if step.step_type != "CV review":
            raise ValidationError("CV review 단계가 아닙니다")
        if not cv_text or not cv_text.strip():
            raise EmptyDocument()

        logger.info(f"🤖 CV 분석 시작 - application={application.id}, CV 길이: {len(cv_text)} 문자")
        logger.info(f"📝 CV 미리보기 (처음 100자): {cv_text[:100]}...")

        content = await self.generator.generate(CV_SYSTEM_PROMPT, build_cv_prompt(application.job, cv_text))
        result = parse_ai_result(content, CVAnalysisResult)
        logger.info(f"✅ CV 분석 결과 파싱 성공 - 점수: {result.score}, 판정: {result.status}")

        # 재제출은 기존 기록을 덮어씀
        progress = self.progress.upsert_progress(application, step.id, {
            "score": result.score,
            "outcome": result.status,
            "review": result.review,
            "strengths": result.strengths,
            "weaknesses": result.weaknesses,
            "recommendation": result.recommendation,
            "scoring_state": "scored",
        })
        return result, progress
