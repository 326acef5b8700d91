import numpy as np
import pytest
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from locuta.core.config import AnalyzerSettings
from locuta.core.exceptions import AudioInitError, FrameReadError
from locuta.services.analyzer import AnalyzerController
from locuta.services.audio_sources import ChunkStreamSource
from locuta.services.telemetry import TelemetryContext


class RecordingTelemetry(TelemetryContext):
    """Keeps tracked events in memory for assertions."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def track(self, event: str, properties: Optional[Dict[str, Any]] = None):
        self.events.append((event, dict(properties or {})))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeSampler:
    """Sampler stand-in that replays scripted volume levels."""

    def __init__(self, volumes: Iterable[int] = (), waveform: Optional[np.ndarray] = None,
                 sample_rate: int = 44100, fail_on: Optional[Set[int]] = None,
                 fail_open: bool = False, fail_close: bool = False):
        self.volumes: List[int] = list(volumes)
        self.waveform = waveform if waveform is not None else np.full(2048, 128, dtype=np.uint8)
        self._sample_rate = sample_rate
        self.fail_on = fail_on or set()
        self.fail_open = fail_open
        self.fail_close = fail_close
        self.source = None
        self.refresh_calls = 0
        self.waveform_calls = 0
        self.close_calls = 0
        self._index = -1

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def open_for(self, source):
        if self.fail_open:
            raise AudioInitError("no audio device")
        self.source = source

    def feed(self, volumes: Iterable[int]):
        self.volumes.extend(volumes)

    def refresh(self) -> int:
        self.refresh_calls += 1
        if self.refresh_calls in self.fail_on:
            raise FrameReadError("glitch")
        self._index += 1
        return 1

    def sample_volume(self) -> int:
        return self.volumes[self._index]

    def sample_waveform(self) -> np.ndarray:
        self.waveform_calls += 1
        return self.waveform

    def close(self):
        self.close_calls += 1
        self.source = None
        if self.fail_close:
            raise OSError("device busy")


def run_ticks(analyzer: AnalyzerController, clock: FakeClock, count: int, interval: float = 1 / 60):
    published = []
    for _ in range(count):
        clock.advance(interval)
        snapshot = analyzer.tick()
        if snapshot is not None:
            published.append(snapshot)
    return published


def byte_sine(frequency: float, sample_rate: int, length: int, amplitude: float = 100.0) -> np.ndarray:
    n = np.arange(length)
    return 128.0 + amplitude * np.sin(2 * np.pi * frequency * n / sample_rate)


@pytest.fixture
def config():
    return AnalyzerSettings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def telemetry():
    return RecordingTelemetry()


@pytest.fixture
def make_analyzer(config, clock, telemetry):
    def _make(sampler: FakeSampler, **kwargs):
        return AnalyzerController(config=kwargs.pop("config", config), sampler=sampler,
                                  telemetry=telemetry, clock=clock, **kwargs)
    return _make


@pytest.fixture
def source():
    return ChunkStreamSource(sample_rate=44100)
