import numpy as np
import pytest

from locuta.core.config import AnalyzerSettings
from locuta.core.exceptions import AnalyzerError, AudioInitError
from locuta.services.audio_sampler import AudioSampler
from locuta.services.audio_sources import ArraySource, AudioSource


class BrokenSource(AudioSource):
    def open(self):
        raise OSError("permission denied")

    def read(self):
        return np.array([], dtype=np.float32)


def noise(seconds=0.2, sample_rate=44100, amplitude=0.5, seed=0):
    rng = np.random.default_rng(seed)
    return rng.uniform(-amplitude, amplitude, int(seconds * sample_rate)).astype(np.float32)


class TestOpen:

    def test_invalid_fft_size_fails_before_opening_source(self):
        sampler = AudioSampler(AnalyzerSettings(fft_size=1000))
        source = ArraySource(np.zeros(100))
        with pytest.raises(AudioInitError):
            sampler.open_for(source)
        assert not source.is_open
        assert not sampler.is_open

    def test_source_failure_surfaces_as_init_error(self):
        sampler = AudioSampler()
        with pytest.raises(AudioInitError, match="permission denied"):
            sampler.open_for(BrokenSource(44100))
        assert not sampler.is_open

    def test_frequency_bins(self):
        sampler = AudioSampler()
        sampler.open_for(ArraySource(np.zeros(100)))
        assert sampler.frequency_bin_count == 1024
        assert sampler.sample_rate == 44100
        assert len(sampler.frequency_data()) == 1024

    def test_sampling_requires_open_graph(self):
        sampler = AudioSampler()
        with pytest.raises(AnalyzerError):
            sampler.sample_volume()
        with pytest.raises(AnalyzerError):
            sampler.refresh()


class TestVolume:

    def test_silence_is_zero(self):
        sampler = AudioSampler()
        sampler.open_for(ArraySource(np.zeros(8192), block_size=2048))
        for _ in range(3):
            sampler.refresh()
            assert sampler.sample_volume() == 0

    def test_loud_noise_is_speech_level(self):
        sampler = AudioSampler()
        sampler.open_for(ArraySource(noise(), block_size=2048))
        sampler.refresh()
        sampler.refresh()
        assert sampler.sample_volume() > 15
        assert sampler.sample_volume() <= 100

    def test_volume_is_deterministic(self):
        levels = []
        for _ in range(2):
            sampler = AudioSampler()
            sampler.open_for(ArraySource(noise(amplitude=0.01), block_size=735))
            for _ in range(5):
                sampler.refresh()
            levels.append((sampler.sample_volume(), sampler.frequency_data().tobytes()))
        assert levels[0] == levels[1]

    def test_repeated_reads_without_refresh_are_stable(self):
        sampler = AudioSampler()
        sampler.open_for(ArraySource(noise(amplitude=0.05), block_size=735))
        sampler.refresh()
        assert sampler.sample_volume() == sampler.sample_volume()

    def test_smoothing_ramps_level_up(self):
        sampler = AudioSampler(AnalyzerSettings(volume_scale=0.1))
        sampler.open_for(ArraySource(noise(seconds=1.0), block_size=2048))
        sampler.refresh()
        first = sampler.sample_volume()
        for _ in range(10):
            sampler.refresh()
        assert sampler.sample_volume() >= first


class TestWaveform:

    def test_silence_is_centered(self):
        sampler = AudioSampler()
        sampler.open_for(ArraySource(np.zeros(4096), block_size=2048))
        sampler.refresh()
        waveform = sampler.sample_waveform()
        assert waveform.dtype == np.uint8
        assert len(waveform) == 2048
        assert np.all(waveform == 128)

    def test_full_scale_is_clipped(self):
        audio = np.concatenate([np.ones(1024), -np.ones(1024)]).astype(np.float32)
        sampler = AudioSampler()
        sampler.open_for(ArraySource(audio, block_size=2048))
        sampler.refresh()
        waveform = sampler.sample_waveform()
        assert waveform[0] == 255
        assert waveform[-1] == 0

    def test_window_keeps_most_recent_samples(self):
        sampler = AudioSampler()
        sampler.open_for(ArraySource(np.linspace(-0.5, 0.5, 3000), block_size=1000))
        for _ in range(3):
            sampler.refresh()
        waveform = sampler.sample_waveform()
        assert waveform[-1] == np.floor(128 * 1.5)


class TestClose:

    def test_close_is_idempotent_and_releases_source(self):
        source = ArraySource(np.zeros(100))
        sampler = AudioSampler()
        sampler.open_for(source)
        sampler.close()
        sampler.close()
        assert not source.is_open
        assert not sampler.is_open

    def test_reopen_closes_previous_source(self):
        first, second = ArraySource(np.zeros(100)), ArraySource(np.zeros(100))
        sampler = AudioSampler()
        sampler.open_for(first)
        sampler.open_for(second)
        assert not first.is_open
        assert second.is_open
