"""
Audio inputs the analyzer can sample from.

Every source hands out mono float32 PCM in [-1, 1] through a non-blocking
``read()`` that returns whatever arrived since the previous call.
"""
import base64
import io
import logging
from collections import deque
from typing import Optional
import numpy as np
import soundfile as sf
import librosa
from locuta.core.exceptions import AudioInitError, FrameReadError

logger = logging.getLogger(__name__)


class AudioSource:
    def __init__(self, sample_rate: int):
        self.sample_rate = int(sample_rate)
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self):
        self._open = True

    def read(self) -> np.ndarray:
        raise NotImplementedError

    def close(self):
        self._open = False

    def _ensure_open(self):
        if not self._open:
            raise FrameReadError(f"{type(self).__name__} is not open")


class MicrophoneSource(AudioSource):
    """Live input from the default (or given) capture device."""

    def __init__(self, sample_rate: int = 44100, device: Optional[int] = None,
                 block_duration: float = 0.02, max_blocks: int = 256):
        super().__init__(sample_rate)
        self.device = device
        self.blocksize = max(256, int(self.sample_rate * block_duration))
        self._blocks = deque(maxlen=max_blocks)
        self._stream = None

    def open(self):
        try:
            # PortAudio is loaded on import; a missing library is an init failure
            import sounddevice as sd
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                blocksize=self.blocksize,
                device=self.device,
                channels=1,
                dtype="float32",
                callback=self._callback,
            )
            self._stream.start()
        except Exception as e:
            if self._stream is not None:
                self._stream.close()
            self._stream = None
            raise AudioInitError(f"Could not open microphone: {e}") from e
        super().open()
        logger.info(f"Microphone opened at {self.sample_rate} Hz (block={self.blocksize})")

    def _callback(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"Input stream status: {status}")
        audio = np.asarray(indata, dtype=np.float32)
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        self._blocks.append(audio.copy())

    def read(self) -> np.ndarray:
        self._ensure_open()
        chunks = []
        while self._blocks:
            chunks.append(self._blocks.popleft())
        if not chunks:
            return np.array([], dtype=np.float32)
        return np.concatenate(chunks)

    def close(self):
        stream, self._stream = self._stream, None
        super().close()
        self._blocks.clear()
        if stream is not None:
            stream.stop()
            stream.close()
            logger.info("Microphone closed")


class ChunkStreamSource(AudioSource):
    """Source fed by a network client pushing encoded audio chunks."""

    def __init__(self, sample_rate: int = 44100, max_chunks: int = 512):
        super().__init__(sample_rate)
        self._chunks = deque(maxlen=max_chunks)
        self._chunk_count = 0

    def push(self, pcm: np.ndarray):
        audio = np.asarray(pcm, dtype=np.float32)
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        if len(audio):
            self._chunks.append(audio)

    def push_encoded(self, base64_chunk: str) -> int:
        """Decode a base64 audio file chunk and queue it. Returns samples queued."""
        audio = self._decode_chunk(base64_chunk)
        self._chunk_count += 1
        if len(audio) == 0:
            logger.warning(f"Chunk #{self._chunk_count}: decode returned empty array")
            return 0
        self.push(audio)
        return len(audio)

    def read(self) -> np.ndarray:
        self._ensure_open()
        chunks = []
        while self._chunks:
            chunks.append(self._chunks.popleft())
        if not chunks:
            return np.array([], dtype=np.float32)
        return np.concatenate(chunks)

    def close(self):
        super().close()
        self._chunks.clear()

    def _decode_chunk(self, base64_chunk: str) -> np.ndarray:
        try:
            audio_bytes = base64.b64decode(base64_chunk)
            with io.BytesIO(audio_bytes) as b:
                y, sr = sf.read(b, dtype="float32")
            if y.ndim > 1:
                y = y.mean(axis=1)
            if sr != self.sample_rate:
                y = librosa.resample(y, orig_sr=sr, target_sr=self.sample_rate)
            return y.astype(np.float32)
        except Exception as e:
            logger.debug(f"Chunk decode failed: {e}")
            return np.array([], dtype=np.float32)


class ArraySource(AudioSource):
    """Replays a prepared signal, one block per read."""

    def __init__(self, audio: np.ndarray, sample_rate: int = 44100, block_size: int = 735):
        super().__init__(sample_rate)
        self.audio = np.asarray(audio, dtype=np.float32)
        self.block_size = block_size
        self.position = 0

    def open(self):
        self.position = 0
        super().open()

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.audio)

    def read(self) -> np.ndarray:
        self._ensure_open()
        block = self.audio[self.position:self.position + self.block_size]
        self.position += len(block)
        return block
