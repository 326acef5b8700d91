"""
Short-lag autocorrelation pitch estimation on byte-scaled waveforms.
"""
from collections import deque
from typing import Optional
import numpy as np
from locuta.core.config import AnalyzerSettings

# Lags scored per vectorised pass; bounds the difference matrix to a few MB
LAG_BLOCK = 128


class PitchEstimator:
    def __init__(self, config: Optional[AnalyzerSettings] = None):
        self.config = config or AnalyzerSettings()

    def estimate(self, waveform: np.ndarray, sample_rate: float) -> float:
        """Return the fundamental frequency in Hz, or 0 when no lag correlates well enough.

        For each lag from ``pitch_min_lag`` up to half the buffer the score is
        ``1 - mean(|x[i] - x[i + lag]|) / 255``; the first lag with the highest
        score wins.
        """
        scores, lags = self.lag_scores(waveform)
        if len(scores) == 0:
            return 0.0

        best = int(np.argmax(scores))
        best_correlation = float(scores[best])
        best_lag = int(lags[best])
        if best_correlation > self.config.pitch_correlation_threshold and best_lag > 0:
            return float(sample_rate) / best_lag
        return 0.0

    def lag_scores(self, waveform: np.ndarray):
        """Correlation score for every candidate lag, with the lags themselves."""
        x = np.asarray(waveform, dtype=np.float64)
        n = len(x)
        lags = np.arange(self.config.pitch_min_lag, (n + 1) // 2)
        scores = np.empty(len(lags), dtype=np.float64)

        for start in range(0, len(lags), LAG_BLOCK):
            block = lags[start:start + LAG_BLOCK]
            width = n - block[0]
            index = block[:, None] + np.arange(width)
            valid = index < n
            shifted = x[np.minimum(index, n - 1)]
            diff = np.where(valid, np.abs(x[:width] - shifted), 0.0)
            scores[start:start + len(block)] = 1.0 - diff.sum(axis=1) / (n - block) / 255.0

        return scores, lags


class PitchHistory:
    """Bounded FIFO of pitch samples inside the plausible speaking band."""

    def __init__(self, config: Optional[AnalyzerSettings] = None):
        self.config = config or AnalyzerSettings()
        self.values: deque = deque(maxlen=self.config.pitch_history_size)

    def __len__(self):
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def is_plausible(self, pitch: float) -> bool:
        return self.config.pitch_min_hz <= pitch <= self.config.pitch_max_hz

    def add(self, pitch: float) -> bool:
        """Store ``pitch`` if plausible. Returns whether it was kept."""
        if not self.is_plausible(pitch):
            return False
        self.values.append(pitch)
        return True

    def clear(self):
        self.values.clear()
