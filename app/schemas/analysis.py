"""
AI 분석 결과 스키마.

언어 모델이 돌려준 텍스트는 여기서 스키마 검증을 통과해야만 사용합니다.
"""
from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Optional, List, Type, TypeVar
import json
import re
import logging

from app.core.exceptions import MalformedAIResponse

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

PASSING_SCORE = 60

_FENCE_JSON = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE = re.compile(r"```\s*")


def outcome_for_score(score: int) -> str:
    """점수 구간 판정: 80-100, 60-79 → passed / 40-59, 0-39 → rejected"""
    return "passed" if score >= PASSING_SCORE else "rejected"


class CVAnalysisResult(BaseModel):
    score: int = Field(ge=0, le=100)
    status: Optional[str] = None
    review: str
    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendation: str = ""

    @model_validator(mode="after")
    def _apply_score_band(self):
        # 모델이 준 status보다 점수 구간이 우선
        self.status = outcome_for_score(self.score)
        return self


class InterviewAnalysisResult(BaseModel):
    score: int = Field(ge=0, le=100)
    review: str
    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendation: str = ""


def strip_code_fences(content: str) -> str:
    cleaned = _FENCE_JSON.sub("", content)
    cleaned = _FENCE.sub("", cleaned)
    return cleaned.strip()


def parse_ai_result(content: str, model_cls: Type[T]) -> T:
    """모델 응답 텍스트 → 검증된 결과 객체. 실패 시 MalformedAIResponse"""
    cleaned = strip_code_fences(content or "")

    # 앞뒤 설명 문장이 붙은 경우 JSON 부분만 추출
    start_idx = cleaned.find('{')
    end_idx = cleaned.rfind('}') + 1
    if start_idx == -1 or end_idx == 0:
        logger.error(f"❌ AI 응답에 JSON이 없습니다: {cleaned[:200]}")
        raise MalformedAIResponse()

    try:
        data = json.loads(cleaned[start_idx:end_idx])
        return model_cls.model_validate(data)
    except json.JSONDecodeError as e:
        logger.error(f"❌ JSON 파싱 실패: {str(e)}")
        raise MalformedAIResponse()
    except PydanticValidationError as e:
        logger.error(f"❌ AI 응답 스키마 불일치: {e.error_count()}개 오류")
        raise MalformedAIResponse()
