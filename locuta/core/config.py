from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings


class AnalyzerSettings(BaseSettings):
    """Tunable thresholds of the voice-delivery analyzer.

    Defaults are the values feedback scores are calibrated against; override
    them through ``LOCUTA_ANALYZER_*`` environment variables or by passing
    keyword arguments.
    """

    # Speech activity
    silence_threshold: int = Field(15, description="Volume at or below this level counts as silence")
    pause_min_duration_ms: float = Field(200.0, description="Shortest silence recorded as a pause")
    volume_drop_threshold: int = Field(20, description="Volume loss between speaking frames counted as a drop")
    trailing_window: int = Field(10, description="Samples inspected for a trailing-off fade")
    trailing_tolerance: int = Field(2, description="Allowed rise between samples of a fade")

    # Histories
    volume_history_size: int = Field(300, description="Capacity of the rolling volume window")
    pitch_history_size: int = Field(100, description="Capacity of the rolling pitch window")

    # Pitch
    pitch_min_hz: float = Field(50.0, description="Lowest plausible speaking pitch")
    pitch_max_hz: float = Field(500.0, description="Highest plausible speaking pitch")
    pitch_min_lag: int = Field(20, description="Shortest autocorrelation lag in samples")
    pitch_correlation_threshold: float = Field(0.5, description="Minimum correlation for a voiced estimate")

    # Analyser graph
    fft_size: int = Field(2048, description="Analysis window in samples")
    smoothing_time_constant: float = Field(0.8, description="Spectral smoothing between frames")
    min_decibels: float = Field(-100.0, description="Spectrum floor mapped to byte 0")
    max_decibels: float = Field(-30.0, description="Spectrum ceiling mapped to byte 255")
    volume_scale: float = Field(0.8, description="Scale from mean spectrum byte to volume level")

    # Loop cadence
    tick_rate_hz: float = Field(60.0, description="Sampling loop rate")
    pitch_interval_ticks: int = Field(10, description="Ticks between pitch estimates while speaking")
    publish_interval_ticks: int = Field(6, description="Ticks between published metric snapshots")

    class Config:
        env_prefix = "LOCUTA_ANALYZER_"
        extra = "ignore"


class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]
    SAMPLE_RATE: int = 44100
    ANALYZER: AnalyzerSettings = Field(default_factory=AnalyzerSettings)

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
