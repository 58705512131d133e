import boto3
import json
import logging
import requests
from functools import lru_cache
from typing import Dict, Any
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class BedrockService:
    """AWS Bedrock을 사용한 텍스트 생성 서비스 (generate(system, user) → text)"""

    def __init__(self):
        self.region = settings.aws_region
        self.model_id = settings.bedrock_model_id
        self.bearer_token = settings.aws_bearer_token_bedrock
        self.max_tokens = settings.bedrock_max_tokens
        self.timeout = settings.bedrock_timeout_seconds

        logger.info(f"🔧 Bedrock Service 초기화 - Region: {self.region}, Model ID: {self.model_id}")

        if self.bearer_token:
            # Bearer Token 사용 시 boto3 클라이언트 사용 안함
            self.bedrock_client = None
            logger.info("✅ Bearer Token 방식으로 Bedrock 호출")
        else:
            # 일반적인 AWS 자격 증명 사용
            self.bedrock_client = boto3.client(
                'bedrock-runtime',
                region_name=self.region
            )
        logger.info("✅ Bedrock 클라이언트 초기화 완료")

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        """시스템/사용자 프롬프트로 텍스트 생성 (블로킹 호출은 스레드풀에서 실행)"""
        body = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [
                {
                    "role": "user",
                    "content": user_prompt
                }
            ]
        }

        logger.info(f"🚀 Bedrock API 요청 시작 - 프롬프트 길이: {len(system_prompt) + len(user_prompt)} 문자")
        try:
            response_body = await run_in_threadpool(self._invoke_sync, body)
        except (requests.RequestException, BotoCoreError, ClientError) as e:
            logger.error(f"❌ Bedrock 호출 실패: {str(e)}")
            raise UpstreamServiceError(f"텍스트 생성 서비스 호출에 실패했습니다: {str(e)}")

        content = self._extract_text(response_body)
        logger.info(f"✅ Bedrock API 응답 수신 - 응답 길이: {len(content)} 문자")
        return content

    def _invoke_sync(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if self.bearer_token:
            # Bearer Token을 사용한 직접 HTTP 요청
            url = f"https://bedrock-runtime.{self.region}.amazonaws.com/model/{self.model_id}/invoke"
            headers = {
                "Authorization": f"Bearer {self.bearer_token}",
                "Content-Type": "application/json"
            }
            response = requests.post(url, headers=headers, json=body, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        response = self.bedrock_client.invoke_model(
            modelId=self.model_id,
            body=json.dumps(body),
            contentType="application/json"
        )
        return json.loads(response['body'].read())

    @staticmethod
    def _extract_text(response_body: Dict[str, Any]) -> str:
        try:
            parts = response_body['content']
            return "".join(part.get('text', '') for part in parts if part.get('type', 'text') == 'text')
        except (KeyError, TypeError, AttributeError):
            logger.error(f"❌ 예상치 못한 Bedrock 응답 형식: {list(response_body.keys()) if isinstance(response_body, dict) else type(response_body)}")
            raise UpstreamServiceError("텍스트 생성 서비스 응답 형식이 올바르지 않습니다")


@lru_cache()
def get_text_generator() -> BedrockService:
    """라우터 의존성 (테스트에서 가짜 생성기로 교체)"""
    return BedrockService()
