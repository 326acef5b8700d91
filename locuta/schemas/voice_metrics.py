from dataclasses import dataclass
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


@dataclass
class Frame:
    """One sampling tick's reading."""
    volume: int  # 0-100
    timestamp_ms: float
    pitch: Optional[float] = None  # Hz, None when not estimated this tick


class Pause(BaseModel):
    start_ms: float = Field(..., description="Time the silence began")
    end_ms: float = Field(..., description="Time speech resumed")
    duration_ms: float = Field(..., description="Length of the silence")


class VoiceMetrics(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    # Real-time
    current_volume: int = Field(0, description="Volume of the latest frame (0-100)")
    average_volume: int = Field(0, description="Mean of the rolling volume window")
    volume_stability: int = Field(100, description="100 minus twice the volume standard deviation")

    # Pace
    speaking_time_ms: int = Field(0, description="Accumulated speaking time")
    silence_time_ms: int = Field(0, description="Accumulated silence time")
    speaking_ratio: float = Field(0.0, description="Share of session time spent speaking", ge=0, le=1)

    # Pauses
    pause_count: int = 0
    average_pause_duration: int = Field(0, description="Mean pause length in ms")
    long_pause_count: int = Field(0, description="Pauses longer than 2 s")
    strategic_pause_count: int = Field(0, description="Pauses between 300 ms and 1.5 s")

    # Pitch
    pitch_stability: int = 80
    average_pitch: int = Field(0, description="Mean pitch in Hz")
    pitch_range: int = Field(0, description="Max minus min pitch in Hz")

    # Confidence indicators
    volume_drop_count: int = 0
    trailing_off_count: int = 0

    # Composite scores
    confidence_score: int = Field(0, ge=0, le=100)
    pace_score: int = Field(0, ge=0, le=100)
    delivery_score: int = Field(0, ge=0, le=100)
