import httpx
import logging
from functools import lru_cache
from typing import Dict, Any

from app.core.config import settings
from app.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class VapiService:
    """VAPI 음성 면접 어시스턴트 등록 (REST)"""

    def __init__(self):
        self.api_key = settings.vapi_api_key
        self.base_url = settings.vapi_base_url.rstrip("/")

    async def create_assistant(self, config: Dict[str, Any]) -> str:
        """어시스턴트를 생성하고 assistant id를 반환"""
        if not self.api_key:
            logger.error("❌ VAPI_API_KEY가 설정되지 않았습니다")
            raise UpstreamServiceError("음성 면접 서비스가 설정되지 않았습니다")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.info(f"🎙️ VAPI 어시스턴트 생성 요청: {config.get('name')}")
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(f"{self.base_url}/assistant", headers=headers, json=config)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ VAPI 응답 오류: {e.response.status_code} {e.response.text[:200]}")
            raise UpstreamServiceError("음성 면접 어시스턴트를 생성하지 못했습니다")
        except httpx.HTTPError as e:
            logger.error(f"❌ VAPI 호출 실패: {str(e)}")
            raise UpstreamServiceError("음성 면접 서비스에 연결하지 못했습니다")
        except ValueError:
            logger.error(f"❌ VAPI 응답 JSON 파싱 실패: {response.text[:200]}")
            raise UpstreamServiceError("음성 면접 서비스 응답을 해석하지 못했습니다")

        assistant_id = data.get("id") if isinstance(data, dict) else None
        if not assistant_id:
            raise UpstreamServiceError("음성 면접 서비스 응답에 assistant id가 없습니다")
        logger.info(f"✅ VAPI 어시스턴트 생성 완료: {assistant_id}")
        return assistant_id


@lru_cache()
def get_voice_provider() -> VapiService:
    return VapiService()
