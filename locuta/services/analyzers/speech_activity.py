import logging
from collections import deque
from enum import Enum
from typing import List, Optional
from locuta.core.config import AnalyzerSettings
from locuta.schemas.voice_metrics import Pause

logger = logging.getLogger(__name__)


class SpeechState(str, Enum):
    SILENT = "silent"
    SPEAKING = "speaking"


class SpeechActivityTracker:
    """Classifies frames as speech or silence and keeps pause bookkeeping.

    Durations are accumulated from the elapsed time reported with each frame,
    so irregular tick spacing never drifts the speaking/silence totals.
    """

    def __init__(self, config: Optional[AnalyzerSettings] = None):
        self.config = config or AnalyzerSettings()
        self.volume_history: deque = deque(maxlen=self.config.volume_history_size)
        self.reset()

    def reset(self):
        self.volume_history.clear()
        self.state = SpeechState.SILENT
        self.pauses: List[Pause] = []
        self.pause_start_ms: Optional[float] = None
        self.speaking_time_ms = 0.0
        self.silence_time_ms = 0.0
        self.volume_drop_count = 0
        self.trailing_off_count = 0
        self.last_volume = 0

    @property
    def is_speaking(self) -> bool:
        return self.state is SpeechState.SPEAKING

    def update(self, volume: int, now_ms: float, elapsed_ms: float) -> SpeechState:
        self.volume_history.append(volume)

        was_speaking = self.is_speaking
        speaking = volume > self.config.silence_threshold

        if speaking:
            self.speaking_time_ms += elapsed_ms
            if self.pause_start_ms is not None:
                self._close_pause(now_ms)
        else:
            self.silence_time_ms += elapsed_ms
            if was_speaking and self.pause_start_ms is None:
                self.pause_start_ms = now_ms

        if was_speaking and speaking:
            if self.last_volume - volume > self.config.volume_drop_threshold:
                self.volume_drop_count += 1
        elif was_speaking and not speaking:
            if self._is_trailing_off():
                self.trailing_off_count += 1

        self.last_volume = volume
        self.state = SpeechState.SPEAKING if speaking else SpeechState.SILENT
        return self.state

    def _close_pause(self, now_ms: float):
        duration = now_ms - self.pause_start_ms
        if duration >= self.config.pause_min_duration_ms:
            self.pauses.append(Pause(start_ms=self.pause_start_ms, end_ms=now_ms, duration_ms=duration))
            logger.debug(f"Pause recorded: {duration:.0f}ms")
        self.pause_start_ms = None

    def _is_trailing_off(self) -> bool:
        window = self.config.trailing_window
        if len(self.volume_history) < window:
            return False
        recent = list(self.volume_history)[-window:]
        tolerance = self.config.trailing_tolerance
        if not all(cur <= prev + tolerance for prev, cur in zip(recent, recent[1:])):
            return False
        # The speech itself must fade; a level run cut off by silence is an abrupt stop
        return recent[0] - recent[-2] > tolerance
