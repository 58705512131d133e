"""
적성검사/면접 질문 생성.

생성 결과는 저장하지 않고 그대로 반환합니다. 관리자가 미리보기 후
단계 수정(content)으로 명시적으로 저장해야 반영됩니다.
"""
import logging

from app.core.exceptions import ValidationError, UpstreamServiceError

logger = logging.getLogger(__name__)

APTITUDE_QUESTION_COUNT = 8
INTERVIEW_QUESTION_COUNT = 10

APTITUDE_VARIANTS = {
    "multiple-choice": "with clear options (A, B, C, D) covering fundamental concepts, logical thinking, and domain knowledge",
    "coding": "with clear problem statements, expected inputs/outputs, and constraints",
    "logical-reasoning": "that test analytical thinking, pattern recognition, and problem-solving abilities",
}

INTERVIEW_VARIANTS = {
    "technical": "focus on technical skills, problem-solving, and domain expertise",
    "behavioral": "focus on past experiences, soft skills, and how the candidate handles situations",
    "case-study": "focus on analytical thinking, decision-making, and business acumen with realistic scenarios",
}

SYSTEM_PROMPT = (
    "You are an experienced recruiter who writes assessment material for hiring pipelines. "
    "Follow the requested format exactly and return only the requested content."
)


def _aptitude_prompt(variant: str, company_name: str, role: str, role_details: str) -> str:
    n = APTITUDE_QUESTION_COUNT
    return f"""Generate exactly {n} aptitude test questions for a {variant} test.

Context:
- Company: {company_name}
- Position: {role}
- Focus Areas: {role_details}

Requirements:
- Questions should be {APTITUDE_VARIANTS[variant]}
- Questions should be specific to the role and company requirements
- Format as a numbered list (1-{n})
- Each question should be independent and clear
- For multiple choice, include 4 options (A, B, C, D) and mark the correct answer
- For coding problems, include sample test cases
- For logical reasoning, provide clear problem statements
- Difficulty should range from medium to hard
- No long explanations, just clear questions with options/requirements
"""


def _interview_prompt(variant: str, company_name: str, role: str, role_details: str) -> str:
    n = INTERVIEW_QUESTION_COUNT
    return f"""Generate exactly {n} interview questions for a {variant} interview.

Context:
- Company: {company_name}
- Position: {role}
- Role Details: {role_details}

Requirements:
- This should {INTERVIEW_VARIANTS[variant]}
- Questions should be specific to the role and company
- Format as a numbered list (1-{n})
- Each question should be independent and clear
- No explanations or answers needed, just the questions
- Keep questions concise and professional

Generate only the {n} questions, nothing else."""


def build_assessment_prompt(step_type: str, variant: str, company_name: str, role: str, role_details: str) -> str:
    """단계 유형/세부 유형에 맞는 생성 프롬프트 (같은 입력이면 항상 같은 프롬프트)"""
    if not company_name or not role or not role_details:
        raise ValidationError("회사명, 직무, 직무 상세 정보가 모두 필요합니다")

    if step_type == "Aptitude":
        if variant not in APTITUDE_VARIANTS:
            raise ValidationError(f"지원하지 않는 적성검사 유형입니다: {variant}")
        return _aptitude_prompt(variant, company_name, role, role_details)
    if step_type == "Interview":
        if variant not in INTERVIEW_VARIANTS:
            raise ValidationError(f"지원하지 않는 면접 유형입니다: {variant}")
        return _interview_prompt(variant, company_name, role, role_details)
    raise ValidationError(f"'{step_type}' 단계는 콘텐츠 생성을 지원하지 않습니다")


class AssessmentContentService:
    def __init__(self, generator):
        self.generator = generator

    async def generate(self, step_type: str, variant: str, company_name: str, role: str, role_details: str) -> str:
        prompt = build_assessment_prompt(step_type, variant, company_name, role, role_details)
        logger.info(f"📝 {step_type} 콘텐츠 생성 요청 - 유형: {variant}, 직무: {role}")

        content = await self.generator.generate(SYSTEM_PROMPT, prompt)
        if not content or not content.strip():
            raise UpstreamServiceError("생성된 콘텐츠가 비어 있습니다")

        logger.info(f"✅ {step_type} 콘텐츠 생성 완료 - {len(content)} 문자")
        return content
