import logging
import os

import uvicorn

from app.core.config import settings

logger = logging.getLogger("recruit.run")

if __name__ == "__main__":
    # 배포 환경에서는 HOST/PORT 환경변수로 바인딩 주소 지정
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    reload = os.getenv("RELOAD", "false").lower() == "true"

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(f"🚀 Recruitment Pipeline API 시작: {host}:{port} (reload={reload}, db={settings.database_url.split(':', 1)[0]})")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower()
    )
