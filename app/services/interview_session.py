"""
실시간 음성 면접 세션 엔진.

상태: idle → loading → connecting → active → ending → ended

음성 SDK 이벤트(call-start, call-end, speech-start, speech-end, volume-level,
transcript, error, status-update)를 받아 세션 상태만 바꾸고 즉시 반환합니다.
네트워크 작업(분석 요청)은 별도 태스크로 실행합니다.
카메라/마이크 캡처는 어떤 경로로 끝나든 반드시 해제합니다.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.core.exceptions import RecruitmentError, AlreadyCompleted, PreconditionFailed, UpstreamServiceError
from app.services.interview_service import format_transcript

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDING = "ending"
    ENDED = "ended"


class AnalysisState(str, Enum):
    NONE = "none"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


LIVE_STATES = (SessionState.CONNECTING, SessionState.ACTIVE, SessionState.ENDING)


class InterviewSession:
    """
    (지원서, 면접 단계) 하나에 대한 면접 세션.

    협력 객체:
    - start_session: async () -> 세션 핸들 (assistant_id 포함)
    - analyze: async (transcript, call_duration) -> 분석 결과
    - call: start(assistant_id) / stop() 을 가진 통화 제어
    - media: acquire() / release() 를 가진 카메라·마이크 캡처
    - already_completed: () -> bool, 시작 전 완료 여부 확인
    - on_change: (session) -> None, 상태가 바뀔 때마다 호출
    """

    def __init__(
        self,
        start_session: Callable[[], Awaitable[Any]],
        analyze: Callable[[str, int], Awaitable[Any]],
        call,
        media,
        already_completed: Optional[Callable[[], bool]] = None,
        on_change: Optional[Callable[["InterviewSession"], None]] = None,
        assistant_name: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._start_session = start_session
        self._analyze = analyze
        self.call = call
        self.media = media
        self._already_completed = already_completed
        self._on_change = on_change
        self.assistant_name = assistant_name
        self._clock = clock

        self.state = SessionState.IDLE
        self.handle = None
        self.segments: List[Dict[str, str]] = []
        self.partial: Optional[Dict[str, str]] = None
        self.assistant_speaking = False
        self.volume = 0.0
        self.last_error: Optional[str] = None

        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None

        self.analysis_state = AnalysisState.NONE
        self.analysis_result = None
        self.analysis_error: Optional[str] = None
        self._analysis_task: Optional[asyncio.Task] = None
        self._media_acquired = False

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    @property
    def transcript(self) -> str:
        """확정된 segment만으로 만든 transcript (partial은 포함하지 않음)"""
        return format_transcript(self.segments, self.assistant_name)

    @property
    def call_duration(self) -> int:
        if self.started_at is None:
            return 0
        end = self.ended_at if self.ended_at is not None else self._clock()
        return int(end - self.started_at)

    @property
    def submitted(self) -> bool:
        return self.analysis_state == AnalysisState.COMPLETED

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "segments": list(self.segments),
            "partial": self.partial,
            "assistant_speaking": self.assistant_speaking,
            "volume": self.volume,
            "call_duration": self.call_duration,
            "analysis_state": self.analysis_state.value,
            "error": self.last_error,
        }

    # ------------------------------------------------------------------
    # 사용자 동작
    # ------------------------------------------------------------------
    async def start(self):
        """세션 생성 후 통화 시작 요청. 실패하면 idle로 되돌아감"""
        if self.state != SessionState.IDLE:
            raise PreconditionFailed(f"'{self.state.value}' 상태에서는 면접을 시작할 수 없습니다")
        if self.analysis_state != AnalysisState.NONE:
            raise AlreadyCompleted()
        if self._already_completed is not None and self._already_completed():
            self.last_error = AlreadyCompleted.default_message
            self._notify()
            raise AlreadyCompleted()

        self._set_state(SessionState.LOADING)
        try:
            self.handle = await self._start_session()
            self._set_state(SessionState.CONNECTING)
            self.call.start(self.handle.assistant_id)
        except RecruitmentError as e:
            logger.warning(f"⚠️ 면접 세션 시작 실패: {e.message}")
            self.last_error = e.message
            self._abort_to_idle()
            raise
        except Exception as e:
            logger.exception(f"❌ 면접 세션 시작 중 예기치 못한 오류: {str(e)}")
            self.last_error = UpstreamServiceError.default_message
            self._abort_to_idle()
            raise UpstreamServiceError() from e
        return self.handle

    def end(self):
        """사용자가 통화 종료 요청"""
        if self.state not in (SessionState.CONNECTING, SessionState.ACTIVE):
            return
        self._set_state(SessionState.ENDING)
        self.call.stop()
        self._release_media()

    async def close(self):
        """
        연결 종료(클라이언트 이탈 포함). 사용자 종료와 동일하게 처리하고
        진행 중인 분석이 끝날 때까지 기다립니다.
        """
        if self.state in LIVE_STATES:
            if self.state != SessionState.ENDING:
                self.call.stop()
            self._finish()
        elif self.state in (SessionState.IDLE, SessionState.LOADING):
            self._release_media()
        await self.wait_analysis()

    async def wait_analysis(self):
        if self._analysis_task is not None:
            await asyncio.shield(self._analysis_task)

    def retry_analysis(self) -> bool:
        """분석 실패 후 수동 재시도"""
        if self.state != SessionState.ENDED or self.analysis_state != AnalysisState.FAILED:
            return False
        self._analysis_task = None
        self.analysis_state = AnalysisState.NONE
        self._trigger_analysis()
        return True

    # ------------------------------------------------------------------
    # 음성 SDK 이벤트
    # ------------------------------------------------------------------
    def handle_event(self, event: Dict[str, Any]):
        event_type = event.get("type")
        if event_type == "message" and isinstance(event.get("message"), dict):
            # 웹 SDK의 message 이벤트는 안쪽 payload로 처리
            return self.handle_event(event["message"])

        handler = self._handlers().get(event_type)
        if handler is None:
            logger.debug(f"무시된 이벤트: {event_type}")
            return
        handler(event)

    def _handlers(self):
        return {
            "call-start": self._on_call_start,
            "call-end": self._on_call_end,
            "speech-start": self._on_speech_start,
            "speech-end": self._on_speech_end,
            "volume-level": self._on_volume_level,
            "transcript": self._on_transcript,
            "error": self._on_error,
            "status-update": self._on_status_update,
        }

    def _on_call_start(self, event):
        if self.state != SessionState.CONNECTING:
            logger.warning(f"⚠️ 예상치 못한 call-start ({self.state.value})")
            return
        self.segments = []
        self.partial = None
        self.started_at = self._clock()
        self.ended_at = None
        self._acquire_media()
        self._set_state(SessionState.ACTIVE)

    def _on_call_end(self, event):
        self._finish()

    def _on_status_update(self, event):
        if event.get("status") == "ended":
            self._finish()

    def _on_speech_start(self, event):
        self.assistant_speaking = True
        self._notify()

    def _on_speech_end(self, event):
        self.assistant_speaking = False
        self._notify()

    def _on_volume_level(self, event):
        try:
            self.volume = float(event.get("level", event.get("volume", 0.0)))
        except (TypeError, ValueError):
            return

    def _on_transcript(self, event):
        if self.state not in (SessionState.ACTIVE, SessionState.ENDING):
            return
        segment = {
            "role": "assistant" if event.get("role") == "assistant" else "user",
            "text": event.get("transcript") or event.get("text") or "",
        }
        if event.get("transcriptType") == "final":
            # 확정 segment만 영구 transcript에 추가
            self.segments.append(segment)
            self.partial = None
        else:
            self.partial = segment
        self._notify()

    def _on_error(self, event):
        message = event.get("error") or event.get("message") or "통화 중 오류가 발생했습니다"
        if not isinstance(message, str):
            message = str(message)
        self.last_error = message
        logger.warning(f"⚠️ 면접 통화 오류 ({self.state.value}): {message}")
        if self.state in (SessionState.LOADING, SessionState.CONNECTING):
            # 연결 전 오류는 세션을 처음 상태로 되돌림
            self.call.stop()
            self._abort_to_idle()
        else:
            # 통화 중 오류는 알리기만 하고 통화는 유지
            self._notify()

    # ------------------------------------------------------------------
    # 내부 처리
    # ------------------------------------------------------------------
    def _finish(self):
        """사용자/제공자 종료를 동일하게 처리: ending → ended, 분석 1회 자동 실행"""
        if self.state not in LIVE_STATES:
            return
        if self.state != SessionState.ENDING:
            self._set_state(SessionState.ENDING)
        self.partial = None
        if self.started_at is not None and self.ended_at is None:
            self.ended_at = self._clock()
        self._release_media()
        self._set_state(SessionState.ENDED)
        self._trigger_analysis()

    def _trigger_analysis(self):
        # 재렌더/재연결 등으로 여러 번 불려도 분석은 한 번만
        if self._analysis_task is not None or self.analysis_state != AnalysisState.NONE:
            return
        self.analysis_state = AnalysisState.RUNNING
        self._analysis_task = asyncio.get_running_loop().create_task(self._run_analysis())

    async def _run_analysis(self):
        transcript = self.transcript
        duration = self.call_duration
        logger.info(f"🤖 면접 종료, 자동 분석 시작 - segment {len(self.segments)}개, {duration}초")
        try:
            self.analysis_result = await self._analyze(transcript, duration)
        except RecruitmentError as e:
            logger.error(f"❌ 면접 자동 분석 실패: {e.message}")
            self.analysis_state = AnalysisState.FAILED
            self.analysis_error = e.message
            self._notify()
            return
        except Exception as e:
            logger.exception(f"❌ 면접 자동 분석 중 예기치 못한 오류: {str(e)}")
            self.analysis_state = AnalysisState.FAILED
            self.analysis_error = "면접 분석 중 오류가 발생했습니다. 다시 시도해주세요"
            self._notify()
            return
        self.analysis_state = AnalysisState.COMPLETED
        self.analysis_error = None
        logger.info("✅ 면접 자동 분석 완료")
        self._notify()

    def _abort_to_idle(self):
        self._release_media()
        self.handle = None
        self._set_state(SessionState.IDLE)

    def _acquire_media(self):
        if self._media_acquired:
            return
        self.media.acquire()
        self._media_acquired = True

    def _release_media(self):
        if not self._media_acquired:
            return
        self._media_acquired = False
        self.media.release()

    def _set_state(self, state: SessionState):
        if self.state == state:
            return
        logger.info(f"🔄 면접 세션 상태: {self.state.value} → {state.value}")
        self.state = state
        self._notify()

    def _notify(self):
        if self._on_change is not None:
            self._on_change(self)
