class AnalyzerError(Exception):
    """Base class for voice analyzer failures."""


class AudioInitError(AnalyzerError):
    """The audio input or its analysis graph could not be set up."""


class FrameReadError(AnalyzerError):
    """A single frame could not be read from the audio input."""


class PlaybackError(AnalyzerError):
    """An intro playback operation was requested in an invalid state."""
