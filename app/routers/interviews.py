import asyncio
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.core.config import settings
from app.core.exceptions import RecruitmentError, ValidationError
from app.core.security import RequestContext, get_current_user, build_request_context
from app.schemas.interview import (
    InterviewSessionRequest, InterviewSessionHandle, InterviewAnalysisRequest, InterviewAnalysisResponse
)
from app.schemas.progress import ProgressResponse, withhold_unreleased
from app.services.interview_service import InterviewService, format_transcript
from app.services.interview_session import InterviewSession, AnalysisState
from app.services.bedrock_service import get_text_generator
from app.services.vapi_service import get_voice_provider

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/applications/{application_id}/interview", response_model=InterviewSessionHandle)
async def create_interview(
    application_id: UUID,
    payload: InterviewSessionRequest,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user),
    voice_provider=Depends(get_voice_provider)
):
    """면접 어시스턴트 생성 (이미 완료한 면접이면 409)"""
    service = InterviewService(db, voice_provider=voice_provider)
    return await service.create_session(application_id, payload.step_id, current_user)


@router.post("/applications/{application_id}/analyze-interview", response_model=InterviewAnalysisResponse)
async def analyze_interview(
    application_id: UUID,
    payload: InterviewAnalysisRequest,
    db: Session = Depends(get_db),
    current_user: RequestContext = Depends(get_current_user),
    generator=Depends(get_text_generator)
):
    """면접 transcript 채점 (transcript 문자열 또는 확정 segment 목록)"""
    transcript = payload.transcript
    if transcript is None:
        transcript = format_transcript([s.model_dump() for s in payload.segments])

    service = InterviewService(db, generator=generator)
    result, progress = await service.analyze(
        application_id, payload.step_id, transcript, payload.call_duration, current_user
    )
    record = ProgressResponse.model_validate(progress)
    if progress.recruitment_step.release_results:
        return InterviewAnalysisResponse(analysis=result, progress=record, call_duration=payload.call_duration)
    return InterviewAnalysisResponse(
        analysis=None, progress=withhold_unreleased(record), call_duration=payload.call_duration
    )


class RelayChannel:
    """
    세션 엔진 → 브라우저 메시지 큐.

    엔진의 통화 제어(start/stop)와 미디어 캡처(acquire/release)를
    브라우저에 보내는 명령으로 바꿉니다. 큐에 넣기만 하므로 이벤트 처리를 막지 않습니다.
    """

    def __init__(self):
        self.outbox: asyncio.Queue = asyncio.Queue()

    def send(self, message: Dict[str, Any]):
        self.outbox.put_nowait(message)

    # 통화 제어
    def start(self, assistant_id: str):
        self.send({"type": "command", "action": "start", "assistant_id": assistant_id})

    def stop(self):
        self.send({"type": "command", "action": "stop"})

    # 카메라/마이크 캡처
    def acquire(self):
        self.send({"type": "media", "action": "acquire"})

    def release(self):
        self.send({"type": "media", "action": "release"})

    async def pump(self, ws: WebSocket):
        while True:
            message = await self.outbox.get()
            await ws.send_json(message)


@router.websocket("/applications/{application_id}/interview/live")
async def interview_live(
    ws: WebSocket,
    application_id: UUID,
    step_id: UUID = Query(...),
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    generator=Depends(get_text_generator),
    voice_provider=Depends(get_voice_provider)
):
    """
    실시간 면접 세션 중계.

    브라우저는 음성 SDK 이벤트와 start/end/retry-analysis 명령을 보내고,
    서버는 state/analysis/error 메시지와 통화·미디어 명령을 돌려줍니다.
    연결이 끊기면 사용자가 면접을 종료한 것으로 처리합니다.
    """
    authorization = ws.headers.get("authorization")
    if not token and authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    try:
        context = build_request_context(db, token or "")
    except RecruitmentError as e:
        # 4401 종료 코드는 수락 이후에만 클라이언트에 전달됨
        await ws.accept()
        await ws.close(code=4401, reason=e.message)
        return

    await ws.accept()
    service = InterviewService(db, generator=generator, voice_provider=voice_provider)
    channel = RelayChannel()
    reported = {"analysis_state": AnalysisState.NONE}

    async def start_session():
        return await service.create_session(application_id, step_id, context)

    async def analyze(transcript: str, call_duration: int):
        result, _ = await service.analyze(application_id, step_id, transcript, call_duration, context)
        return result

    def on_change(session: InterviewSession):
        channel.send({"type": "state", **session.snapshot()})
        if session.analysis_state == reported["analysis_state"]:
            return
        reported["analysis_state"] = session.analysis_state
        if session.analysis_state == AnalysisState.COMPLETED:
            message = {"type": "analysis", "state": "completed"}
            if service.steps.get_step(step_id).release_results:
                message["analysis"] = session.analysis_result.model_dump()
            channel.send(message)
        elif session.analysis_state == AnalysisState.FAILED:
            channel.send({"type": "analysis", "state": "failed", "error": session.analysis_error})

    session = InterviewSession(
        start_session=start_session,
        analyze=analyze,
        call=channel,
        media=channel,
        already_completed=lambda: service.progress.has_progress(application_id, step_id),
        on_change=on_change,
        assistant_name=settings.vapi_assistant_name,
    )
    pump_task = asyncio.create_task(channel.pump(ws))
    channel.send({"type": "state", **session.snapshot()})

    try:
        while True:
            try:
                message = await ws.receive_json()
            except (ValueError, KeyError, TypeError):
                message = None
            if not isinstance(message, dict):
                # 잘못된 프레임은 알리고 세션은 유지
                channel.send({"type": "error", "code": ValidationError.code, "error": "JSON 객체 메시지만 처리할 수 있습니다"})
                continue
            message_type = message.get("type")
            if message_type == "start":
                try:
                    await session.start()
                except RecruitmentError as e:
                    channel.send({"type": "error", "code": e.code, "error": e.message})
            elif message_type == "end":
                session.end()
            elif message_type == "retry-analysis":
                session.retry_analysis()
            else:
                session.handle_event(message)
    except WebSocketDisconnect:
        logger.info(f"🔌 면접 세션 연결 종료: application={application_id}")
    finally:
        # 클라이언트가 떠나도 진행 중인 분석은 마무리
        await session.close()
        pump_task.cancel()
