from pydantic import BaseModel, model_validator
from typing import Optional, List, Literal
from uuid import UUID

from app.schemas.analysis import CVAnalysisResult, InterviewAnalysisResult
from app.schemas.progress import ProgressResponse


class DocumentExtractResponse(BaseModel):
    content: str
    page_count: int


class CVAnalysisRequest(BaseModel):
    step_id: UUID
    content: str


class CVAnalysisResponse(BaseModel):
    analysis: Optional[CVAnalysisResult] = None
    progress: ProgressResponse


class InterviewSessionRequest(BaseModel):
    step_id: UUID


class InterviewSessionHandle(BaseModel):
    assistant_id: str
    job_title: str
    company_name: Optional[str] = None
    max_duration_seconds: int


class TranscriptSegment(BaseModel):
    role: Literal['assistant', 'user']
    text: str


class InterviewAnalysisRequest(BaseModel):
    step_id: UUID
    # 포맷된 transcript 문자열 또는 확정 segment 목록 중 하나
    transcript: Optional[str] = None
    segments: Optional[List[TranscriptSegment]] = None
    call_duration: int = 0

    @model_validator(mode="after")
    def _require_transcript(self):
        if self.transcript is None and self.segments is None:
            raise ValueError("transcript 또는 segments 중 하나는 필요합니다")
        return self


class InterviewAnalysisResponse(BaseModel):
    analysis: Optional[InterviewAnalysisResult] = None
    progress: ProgressResponse
    call_duration: int


class AssessmentGenerateRequest(BaseModel):
    variant: str
    company_name: Optional[str] = None
    role: Optional[str] = None
    role_details: Optional[str] = None


class AssessmentGenerateResponse(BaseModel):
    content: str
    step_type: str
    variant: str
