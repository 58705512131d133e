from pydantic_settings import BaseSettings
from typing import Optional, List, Union
from pydantic import Field, model_validator
import json

class Settings(BaseSettings):

    # API 설정
    api_base_url: str = Field(default="http://localhost:8000", alias="API_BASE_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # 데이터베이스 설정
    database_url: str = Field(default="sqlite:///./recruit.db", alias="DATABASE_URL")

    # JWT 설정 (신원 토큰 검증용)
    secret_key: str = Field(default="your-secret-key-here", alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # 문서 업로드 설정
    max_document_size: int = Field(default=10 * 1024 * 1024, alias="MAX_DOCUMENT_SIZE")  # 10MB

    # CORS 설정
    # 쉼표 구분 문자열도 받도록 str 허용 (validator에서 리스트로 변환)
    cors_origins: Union[List[str], str] = Field(default=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ], alias="CORS_ORIGINS")

    # AWS Bedrock 설정
    aws_region: str = Field(default="us-east-1", alias="AWS_REGION")
    bedrock_model_id: str = Field(default="anthropic.claude-3-5-sonnet-20241022-v2:0", alias="BEDROCK_MODEL_ID")
    aws_bearer_token_bedrock: Optional[str] = Field(default=None, alias="AWS_BEARER_TOKEN_BEDROCK")
    bedrock_max_tokens: int = Field(default=4000, alias="BEDROCK_MAX_TOKENS")
    bedrock_timeout_seconds: int = Field(default=120, alias="BEDROCK_TIMEOUT_SECONDS")

    # VAPI (음성 면접) 설정
    vapi_api_key: Optional[str] = Field(default=None, alias="VAPI_API_KEY")
    vapi_base_url: str = Field(default="https://api.vapi.ai", alias="VAPI_BASE_URL")
    vapi_assistant_name: str = Field(default="Nala", alias="VAPI_ASSISTANT_NAME")
    vapi_voice_id: str = Field(default="8NOqHwer6AD8mGkiPfkf", alias="VAPI_VOICE_ID")
    interview_max_duration_seconds: int = Field(default=1800, alias="INTERVIEW_MAX_DURATION_SECONDS")  # 30분

    # 면접 분석: 이보다 짧은 transcript는 면접이 진행되지 않은 것으로 간주
    interview_min_transcript_length: int = Field(default=50, alias="INTERVIEW_MIN_TRANSCRIPT_LENGTH")

    # 사용 중인 단계의 수정까지 막는 엄격 모드 (삭제는 항상 차단)
    step_edit_lock: bool = Field(default=False, alias="STEP_EDIT_LOCK")


    @model_validator(mode="after")
    def _normalize_cors_origins(self):
        """환경변수로 전달된 CORS_ORIGINS가 문자열(JSON)일 경우 리스트로 파싱"""
        origins = self.cors_origins
        if isinstance(origins, str):
            try:
                parsed = json.loads(origins)
                if isinstance(parsed, list):
                    self.cors_origins = parsed
            except json.JSONDecodeError:
                # 쉼표 구분 문자열일 수도 있으니 분리 시도
                self.cors_origins = [o.strip() for o in origins.split(",") if o.strip()]
        return self


    # pydantic v2 model configuration: load `.env` and ignore extra env vars
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

settings = Settings()
