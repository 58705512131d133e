"""
채용 파이프라인 도메인 예외.

서비스 계층은 HTTPException 대신 이 예외들을 던지고,
main.py에 등록된 핸들러가 status_code/code 기반 JSON 응답으로 변환합니다.
"""
from fastapi import status


class RecruitmentError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "recruitment_error"
    default_message = "요청을 처리할 수 없습니다"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(RecruitmentError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "입력값이 올바르지 않습니다"


class UnsupportedFormat(ValidationError):
    code = "unsupported_format"
    default_message = "PDF 파일만 업로드할 수 있습니다"


class EmptyDocument(ValidationError):
    code = "empty_document"
    default_message = "문서에서 텍스트를 추출할 수 없습니다. 읽을 수 있는 PDF를 업로드하세요"


class TranscriptTooShort(ValidationError):
    code = "transcript_too_short"
    default_message = "면접 기록이 너무 짧거나 비어 있습니다. 면접이 완료되지 않았을 수 있습니다"


class Unauthorized(RecruitmentError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_message = "인증 토큰이 필요합니다"


class Forbidden(RecruitmentError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "권한이 없습니다"


class NotFound(RecruitmentError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "대상을 찾을 수 없습니다"


class Conflict(RecruitmentError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "이미 처리된 요청입니다"


class StepInUse(Conflict):
    code = "step_in_use"
    default_message = "지원자가 진행한 단계는 변경하거나 삭제할 수 없습니다"


class DuplicateApplication(Conflict):
    code = "duplicate_application"
    default_message = "이미 지원한 공고입니다"


class AlreadyCompleted(Conflict):
    code = "already_completed"
    default_message = "이미 완료한 면접입니다"


class ScoringInProgress(Conflict):
    code = "scoring_in_progress"
    default_message = "이 단계의 평가가 이미 진행 중입니다"


class PreconditionFailed(RecruitmentError):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    code = "precondition_failed"
    default_message = "현재 상태에서는 요청을 처리할 수 없습니다"


class UpstreamServiceError(RecruitmentError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"
    default_message = "외부 서비스 호출에 실패했습니다"


class MalformedAIResponse(UpstreamServiceError):
    code = "malformed_ai_response"
    default_message = "AI 분석 응답을 해석하지 못했습니다"
