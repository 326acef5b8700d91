from fastapi import WebSocket
from typing import Dict, Optional
import asyncio
import logging
from locuta.core.config import settings
from locuta.core.exceptions import PlaybackError
from locuta.schemas.protocol import PlaybackPayload
from locuta.schemas.transcript import TranscriptAnalysis
from locuta.schemas.voice_metrics import VoiceMetrics
from locuta.services.analyzer import AnalyzerController
from locuta.services.audio_sources import ChunkStreamSource
from locuta.services.playback import IntroPlayback
from locuta.services.telemetry import LoggingTelemetry, TelemetryContext

logger = logging.getLogger(__name__)


class Session:
    def __init__(self, websocket: WebSocket, telemetry: Optional[TelemetryContext] = None):
        self.websocket = websocket
        self.telemetry = telemetry or LoggingTelemetry()
        self.outbox: "asyncio.Queue[VoiceMetrics]" = asyncio.Queue()
        self.source = ChunkStreamSource(sample_rate=settings.SAMPLE_RATE)
        self.analyzer = AnalyzerController(
            config=settings.ANALYZER,
            telemetry=self.telemetry,
            on_metrics=self.outbox.put_nowait,
        )
        self.transcript: Optional[TranscriptAnalysis] = None
        self.playback = IntroPlayback()

    def start(self):
        self.analyzer.start_analyzing(self.source)

    def finish(self) -> VoiceMetrics:
        """Stop the recording and return its final metrics."""
        final = self.analyzer.stop_analyzing()
        self._drain_outbox()
        return final

    def reset(self):
        """Start a fresh recording while keeping the WebSocket alive."""
        self.finish()
        self.source = ChunkStreamSource(sample_rate=settings.SAMPLE_RATE)
        self.transcript = None
        self.start()
        logger.info("Session state reset (WebSocket remains open)")

    def control_playback(self, command: PlaybackPayload) -> IntroPlayback:
        """Apply one intro playback command and return the sequencer."""
        action = command.action
        if action == "load":
            if command.greeting_duration is None or command.lesson_duration is None:
                raise PlaybackError("load needs greeting_duration and lesson_duration")
            self.playback.load(command.greeting_duration, command.lesson_duration)
        elif action in ("advance", "seek"):
            if command.seconds is None:
                raise PlaybackError(f"{action} needs seconds")
            getattr(self.playback, action)(command.seconds)
        elif action in ("skip_backward", "skip_forward"):
            if command.seconds is None:
                getattr(self.playback, action)()
            else:
                getattr(self.playback, action)(command.seconds)
        else:
            getattr(self.playback, action)()
        return self.playback

    def close(self):
        self.analyzer.stop_analyzing()
        self._drain_outbox()

    def _drain_outbox(self):
        while not self.outbox.empty():
            self.outbox.get_nowait()


class SessionManager:
    def __init__(self):
        self.active_sessions: Dict[str, Session] = {}

    async def connect(self, session_id: str, websocket: WebSocket) -> Session:
        await websocket.accept()
        session = Session(websocket)
        self.active_sessions[session_id] = session
        logger.info(f"Session {session_id} connected")
        return session

    def disconnect(self, session_id: str):
        if session_id in self.active_sessions:
            self.active_sessions[session_id].close()
            del self.active_sessions[session_id]
            logger.info(f"Session {session_id} disconnected")

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.active_sessions.get(session_id)


manager = SessionManager()
