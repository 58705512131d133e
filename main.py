from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.routers import jobs, recruitment_steps, applications, interviews
from app.database.database import engine, Base, check_db_connection
from app.core.config import settings
from app.core.exceptions import RecruitmentError
import logging

# 모든 모델 import (테이블 생성을 위해 필요)
from app import models  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("recruit.main")

# 데이터베이스 테이블 생성
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Recruitment Pipeline API",
    description="AI 채점 기반 채용 파이프라인 백엔드 API",
    version="1.0.0"
)


# 서버 시작 시 등록된 라우터/엔드포인트를 로그에 찍어 디버깅에 도움을 줍니다.
@app.on_event("startup")
async def log_registered_routes():
    routes = []
    for route in app.router.routes:
        path = getattr(route, "path", None) or str(route)
        methods = getattr(route, "methods", None)
        routes.append({"path": path, "methods": sorted(methods) if methods else []})
    logger.info(f"Registered routes: {routes}")


# 도메인 예외 → {"detail", "code"} JSON 응답
@app.exception_handler(RecruitmentError)
async def recruitment_error_handler(request: Request, exc: RecruitmentError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} → {exc.status_code} {exc.code}: {exc.message}")
    else:
        logger.info(f"↩️ {request.method} {request.url.path} → {exc.status_code} {exc.code}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


logger.info(f"Configured CORS origins: {settings.cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,  # 환경변수에서 CORS origins 가져오기
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(jobs.router, tags=["채용공고"])
app.include_router(recruitment_steps.router, tags=["채용 단계"])
app.include_router(applications.router, tags=["지원"])
app.include_router(interviews.router, tags=["면접"])


@app.get("/")
async def root():
    return {"message": "Recruitment Pipeline API 서버가 실행 중입니다!"}


@app.get("/health")
async def health_check():
    database = check_db_connection()
    return {
        "status": "healthy" if database["status"] == "connected" else "degraded",
        "database": database,
    }
