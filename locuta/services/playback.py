"""
Sequential playback of a lesson intro: a greeting clip followed by the lesson
clip, addressed as one continuous timeline.

The sequencer only tracks positions and state; the caller plays the actual
audio and reports elapsed time through ``advance``.
"""
import logging
from enum import Enum
from typing import Callable, Optional
from locuta.core.exceptions import PlaybackError

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING_GREETING = "playing_greeting"
    PLAYING_LESSON = "playing_lesson"
    PAUSED = "paused"
    FINISHED = "finished"


class Segment(str, Enum):
    GREETING = "greeting"
    LESSON = "lesson"


class IntroPlayback:
    def __init__(self, on_state_change: Optional[Callable[[PlaybackState], None]] = None):
        self.on_state_change = on_state_change
        self.greeting_duration: Optional[float] = None
        self.lesson_duration: Optional[float] = None
        self.state = PlaybackState.IDLE
        self.segment = Segment.GREETING
        self.greeting_position = 0.0
        self.lesson_position = 0.0

    @property
    def loaded(self) -> bool:
        return self.greeting_duration is not None and self.lesson_duration is not None

    @property
    def duration(self) -> float:
        if not self.loaded:
            return 0.0
        return self.greeting_duration + self.lesson_duration

    @property
    def current_time(self) -> float:
        if self.segment is Segment.GREETING:
            return self.greeting_position
        return (self.greeting_duration or 0.0) + self.lesson_position

    @property
    def is_playing(self) -> bool:
        return self.state in (PlaybackState.PLAYING_GREETING, PlaybackState.PLAYING_LESSON)

    def load(self, greeting_duration: float, lesson_duration: float):
        if greeting_duration < 0 or lesson_duration < 0:
            raise PlaybackError("Clip durations must not be negative")
        self.greeting_duration = float(greeting_duration)
        self.lesson_duration = float(lesson_duration)
        self.segment = Segment.GREETING
        self.greeting_position = 0.0
        self.lesson_position = 0.0
        self._set_state(PlaybackState.IDLE)

    def play(self):
        if not self.loaded:
            raise PlaybackError("Nothing loaded to play")
        if self.state in (PlaybackState.IDLE, PlaybackState.FINISHED):
            self._rewind()
        self._set_state(self._playing_state())

    def pause(self):
        if self.is_playing:
            self._set_state(PlaybackState.PAUSED)

    def advance(self, seconds: float):
        """Move the playhead forward by ``seconds`` of played audio."""
        if not self.is_playing or seconds <= 0:
            return

        if self.segment is Segment.GREETING:
            self.greeting_position += seconds
            overflow = self.greeting_position - self.greeting_duration
            if overflow < 0:
                return
            # Greeting ended: the lesson picks up the remainder
            self.greeting_position = self.greeting_duration
            self.segment = Segment.LESSON
            self.lesson_position = 0.0
            self._set_state(PlaybackState.PLAYING_LESSON)
            seconds = overflow

        self.lesson_position += seconds
        if self.lesson_position >= self.lesson_duration:
            self._rewind()
            self._set_state(PlaybackState.FINISHED)

    def seek(self, time: float):
        if not self.loaded:
            raise PlaybackError("Nothing loaded to seek")
        time = max(0.0, min(self.duration, time))

        if time <= self.greeting_duration:
            self.segment = Segment.GREETING
            self.greeting_position = time
            self.lesson_position = 0.0
        else:
            self.segment = Segment.LESSON
            self.greeting_position = self.greeting_duration
            self.lesson_position = time - self.greeting_duration

        if self.is_playing:
            self._set_state(self._playing_state())
        else:
            self._set_state(PlaybackState.PAUSED)

    def skip_backward(self, seconds: float = 10):
        self.seek(max(0.0, self.current_time - seconds))

    def skip_forward(self, seconds: float = 10):
        self.seek(min(self.duration, self.current_time + seconds))

    def replay(self):
        self.seek(0)
        self.play()

    def _rewind(self):
        self.segment = Segment.GREETING
        self.greeting_position = 0.0
        self.lesson_position = 0.0

    def _playing_state(self) -> PlaybackState:
        if self.segment is Segment.GREETING:
            return PlaybackState.PLAYING_GREETING
        return PlaybackState.PLAYING_LESSON

    def _set_state(self, state: PlaybackState):
        if state is self.state:
            return
        logger.debug(f"Intro playback: {self.state.value} -> {state.value}")
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)
