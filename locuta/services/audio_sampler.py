"""
Microphone-side analyser graph.

Mirrors the behaviour of a browser ``AnalyserNode``: a fixed FFT window over the
most recent samples, Blackman windowing, exponential smoothing of the
magnitude spectrum between reads and byte scaling of both the spectrum (in dB)
and the raw waveform.
"""
import logging
from typing import Optional
import numpy as np
from locuta.core.config import AnalyzerSettings
from locuta.core.exceptions import AnalyzerError, AudioInitError
from locuta.services.audio_sources import AudioSource
from locuta.utils.stats import round_half_up

logger = logging.getLogger(__name__)


class AudioSampler:
    def __init__(self, config: Optional[AnalyzerSettings] = None):
        self.config = config or AnalyzerSettings()
        self.source: Optional[AudioSource] = None
        self._window: Optional[np.ndarray] = None
        self._blackman: Optional[np.ndarray] = None
        self._smoothed: Optional[np.ndarray] = None
        self._byte_spectrum: Optional[np.ndarray] = None

    @property
    def is_open(self) -> bool:
        return self.source is not None

    @property
    def sample_rate(self) -> int:
        if self.source is None:
            raise AnalyzerError("Sampler is not open")
        return self.source.sample_rate

    @property
    def frequency_bin_count(self) -> int:
        return self.config.fft_size // 2

    def open_for(self, source: AudioSource):
        """Connect ``source`` and build the analysis graph around it."""
        if self.source is not None:
            self.close()

        fft_size = self.config.fft_size
        if fft_size < 32 or fft_size > 32768 or fft_size & (fft_size - 1):
            raise AudioInitError(f"fft_size must be a power of two in [32, 32768], got {fft_size}")
        if not 0.0 <= self.config.smoothing_time_constant <= 1.0:
            raise AudioInitError("smoothing_time_constant must be within [0, 1]")
        if self.config.min_decibels >= self.config.max_decibels:
            raise AudioInitError("min_decibels must be lower than max_decibels")

        try:
            source.open()
        except AudioInitError:
            raise
        except Exception as e:
            raise AudioInitError(f"Audio source failed to open: {e}") from e

        n = np.arange(fft_size)
        self._blackman = (
            0.42
            - 0.5 * np.cos(2 * np.pi * n / fft_size)
            + 0.08 * np.cos(4 * np.pi * n / fft_size)
        )
        self._window = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
        self._byte_spectrum = np.zeros(self.frequency_bin_count, dtype=np.uint8)
        self.source = source
        logger.debug(f"Analyser graph ready (fft={fft_size}, sr={source.sample_rate})")

    def refresh(self) -> int:
        """Pull new audio into the window and update the spectrum. Returns samples read."""
        if self.source is None:
            raise AnalyzerError("Sampler is not open")

        new_audio = np.asarray(self.source.read(), dtype=np.float32)
        count = len(new_audio)
        if count:
            size = len(self._window)
            if count >= size:
                self._window = new_audio[-size:].copy()
            else:
                self._window = np.concatenate((self._window[count:], new_audio))

        self._update_spectrum()
        return count

    def _update_spectrum(self):
        fft_size = self.config.fft_size
        tau = self.config.smoothing_time_constant

        spectrum = np.fft.rfft(self._window * self._blackman)[:self.frequency_bin_count]
        magnitude = np.abs(spectrum) / fft_size
        self._smoothed = tau * self._smoothed + (1.0 - tau) * magnitude

        min_db = self.config.min_decibels
        max_db = self.config.max_decibels
        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed)
        scaled = np.floor(255.0 / (max_db - min_db) * (db - min_db))
        scaled[~np.isfinite(scaled)] = 0
        self._byte_spectrum = np.clip(scaled, 0, 255).astype(np.uint8)

    def frequency_data(self) -> np.ndarray:
        if self._byte_spectrum is None:
            raise AnalyzerError("Sampler is not open")
        return self._byte_spectrum.copy()

    def sample_volume(self) -> int:
        """Volume level 0-100 from the mean of the byte spectrum."""
        spectrum = self.frequency_data()
        level = round_half_up(float(np.mean(spectrum)) * self.config.volume_scale)
        return int(min(100, level))

    def sample_waveform(self) -> np.ndarray:
        """Byte-scaled time-domain data of the current window (128 is silence)."""
        if self._window is None:
            raise AnalyzerError("Sampler is not open")
        scaled = np.floor(128.0 * (1.0 + self._window))
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def close(self):
        source, self.source = self.source, None
        if source is None:
            return
        self._window = None
        self._smoothed = None
        self._byte_spectrum = None
        source.close()
        logger.debug("Analyser graph released")
