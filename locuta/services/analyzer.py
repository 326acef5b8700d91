"""
Voice-delivery analyzer: samples an audio input on a steady tick, tracks speech
and pauses, estimates pitch and republishes VoiceMetrics snapshots.
"""
import asyncio
import logging
import time
from typing import Callable, Optional
from locuta.core.config import AnalyzerSettings
from locuta.core.exceptions import AudioInitError
from locuta.schemas.voice_metrics import Frame, VoiceMetrics
from locuta.services.audio_sampler import AudioSampler
from locuta.services.audio_sources import AudioSource
from locuta.services.analyzers.aggregator import MetricsAggregator, SessionTotals
from locuta.services.analyzers.pitch import PitchEstimator, PitchHistory
from locuta.services.analyzers.speech_activity import SpeechActivityTracker
from locuta.services.telemetry import (
    ERROR_OCCURRED,
    RECORDING_STARTED,
    RECORDING_STOPPED,
    LoggingTelemetry,
    TelemetryContext,
)

logger = logging.getLogger(__name__)

MetricsCallback = Callable[[VoiceMetrics], None]


class AnalyzerController:
    """Owns one analysis session at a time.

    ``start_analyzing`` schedules the sampling loop on the running event loop
    when there is one; without a loop the caller drives ``tick()`` itself.
    Internal accumulation happens on every tick, snapshots are published every
    ``publish_interval_ticks`` ticks.
    """

    def __init__(
        self,
        config: Optional[AnalyzerSettings] = None,
        sampler: Optional[AudioSampler] = None,
        telemetry: Optional[TelemetryContext] = None,
        on_metrics: Optional[MetricsCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or AnalyzerSettings()
        self.sampler = sampler or AudioSampler(self.config)
        self.telemetry = telemetry or LoggingTelemetry()
        self.on_metrics = on_metrics
        self.clock = clock

        self.tracker = SpeechActivityTracker(self.config)
        self.pitch_estimator = PitchEstimator(self.config)
        self.pitch_history = PitchHistory(self.config)
        self.aggregator = MetricsAggregator()

        self._metrics = VoiceMetrics()
        self._analyzing = False
        self._task: Optional[asyncio.Task] = None
        self._tick_count = 0
        self._current_volume = 0
        self._session_start_ms = 0.0
        self._last_tick_ms = 0.0

    @property
    def is_analyzing(self) -> bool:
        return self._analyzing

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def _now_ms(self) -> float:
        return self.clock() * 1000.0

    def _reset(self):
        self.tracker = SpeechActivityTracker(self.config)
        self.pitch_history = PitchHistory(self.config)
        self._tick_count = 0
        self._current_volume = 0
        self._metrics = VoiceMetrics()

    def start_analyzing(self, source: AudioSource):
        if self._analyzing:
            logger.warning("Analysis already running; stopping previous session first")
            self.stop_analyzing()

        self._reset()
        try:
            self.sampler.open_for(source)
        except AudioInitError as e:
            logger.error(f"Failed to start audio analysis: {e}")
            self.telemetry.track(ERROR_OCCURRED, {"error_type": "AudioInitError", "message": str(e)})
            raise

        now = self._now_ms()
        self._session_start_ms = now
        self._last_tick_ms = now
        self._analyzing = True
        self.telemetry.track(RECORDING_STARTED, {"sample_rate": source.sample_rate})
        logger.info(f"Analysis started ({type(source).__name__}, {source.sample_rate} Hz)")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._task = loop.create_task(self._run())

    async def _run(self):
        interval = 1.0 / self.config.tick_rate_hz
        while self._analyzing:
            try:
                self.tick()
            except Exception:
                logger.exception("Analysis tick failed")
            await asyncio.sleep(interval)

    def tick(self) -> Optional[VoiceMetrics]:
        """Run one sampling iteration. Returns the snapshot if one was published."""
        if not self._analyzing:
            return None

        now = self._now_ms()
        next_tick = self._tick_count + 1
        try:
            self.sampler.refresh()
            frame = Frame(volume=self.sampler.sample_volume(), timestamp_ms=now)
            if frame.volume > self.config.silence_threshold and next_tick % self.config.pitch_interval_ticks == 0:
                frame.pitch = self.pitch_estimator.estimate(
                    self.sampler.sample_waveform(), self.sampler.sample_rate
                )
        except Exception as e:
            # Elapsed time is carried into the next good tick
            logger.warning(f"Skipping tick {next_tick}: {e}")
            return None

        elapsed = max(0.0, now - self._last_tick_ms)
        self._last_tick_ms = now
        self._tick_count = next_tick
        self._apply(frame, elapsed)

        if self._tick_count % self.config.publish_interval_ticks == 0:
            return self._publish()
        return None

    def _apply(self, frame: Frame, elapsed_ms: float):
        self._current_volume = frame.volume
        self.tracker.update(frame.volume, frame.timestamp_ms, elapsed_ms)
        if frame.pitch is not None:
            self.pitch_history.add(frame.pitch)

    def _compute(self) -> VoiceMetrics:
        totals = SessionTotals(
            speaking_time_ms=self.tracker.speaking_time_ms,
            silence_time_ms=self.tracker.silence_time_ms,
            volume_drop_count=self.tracker.volume_drop_count,
            trailing_off_count=self.tracker.trailing_off_count,
        )
        return self.aggregator.compute(
            current_volume=self._current_volume,
            volumes=list(self.tracker.volume_history),
            pitches=list(self.pitch_history),
            pauses=self.tracker.pauses,
            totals=totals,
        )

    def _publish(self) -> VoiceMetrics:
        self._metrics = self._compute()
        if self.on_metrics is not None:
            try:
                self.on_metrics(self._metrics)
            except Exception:
                logger.exception("Metrics consumer failed")
        return self._metrics

    def stop_analyzing(self) -> VoiceMetrics:
        """End the session and return its final snapshot. Safe to call repeatedly."""
        if not self._analyzing:
            return self._metrics

        self._analyzing = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        try:
            final = self._publish()
        finally:
            try:
                self.sampler.close()
            except Exception as e:
                logger.error(f"Failed to release audio input: {e}")

        duration_ms = self._last_tick_ms - self._session_start_ms
        self.telemetry.track(RECORDING_STOPPED, {
            "duration_ms": round(duration_ms),
            "confidence_score": final.confidence_score,
            "pace_score": final.pace_score,
            "delivery_score": final.delivery_score,
        })
        logger.info(f"Analysis stopped after {self._tick_count} ticks (delivery={final.delivery_score})")
        return final

    def get_metrics(self) -> VoiceMetrics:
        return self._metrics
