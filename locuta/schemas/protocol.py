from pydantic import BaseModel, Field
from typing import Optional, Literal
from locuta.schemas.voice_metrics import VoiceMetrics
from locuta.schemas.transcript import TranscriptAnalysis


class StreamPayload(BaseModel):
    timestamp: float = Field(..., description="Timestamp of the audio chunk")
    audio_chunk: str = Field(..., description="Base64 encoded audio chunk")


class EndSessionPayload(BaseModel):
    type: Literal["end_session"] = "end_session"


class TranscriptPayload(BaseModel):
    type: Literal["transcript"]
    text: str
    duration_seconds: float = Field(..., gt=0)
    lesson_number: Optional[int] = Field(None, ge=1, description="Lesson the answer belongs to")


PlaybackAction = Literal[
    "load", "play", "pause", "advance", "seek", "skip_backward", "skip_forward", "replay",
]


class PlaybackPayload(BaseModel):
    type: Literal["playback"]
    action: PlaybackAction
    greeting_duration: Optional[float] = Field(None, ge=0, description="Greeting clip length in seconds (load)")
    lesson_duration: Optional[float] = Field(None, ge=0, description="Lesson clip length in seconds (load)")
    seconds: Optional[float] = Field(None, description="Played time (advance), target time (seek) or skip amount")


class MetricsResponse(BaseModel):
    type: Literal["metrics"] = "metrics"
    metrics: VoiceMetrics


class PlaybackStatusResponse(BaseModel):
    type: Literal["playback_state"] = "playback_state"
    state: str
    segment: str
    current_time: float
    duration: float


class ReportResponse(BaseModel):
    type: Literal["final_report"] = "final_report"
    metrics: VoiceMetrics
    transcript: Optional[TranscriptAnalysis] = None


class ErrorResponse(BaseModel):
    type: Literal["error"] = "error"
    detail: str
