import re
from typing import List, Optional, Tuple
from locuta.schemas.transcript import LessonLevel, TranscriptAnalysis
from locuta.utils.stats import round_half_up

FILLER_WORDS = [
    "um", "uh", "like", "you know", "so", "actually", "basically",
    "right", "hmm", "well", "sort of", "kind of", "i mean", "you see",
]

SLOW_WPM = 100
FAST_WPM = 180
HIGH_FILLER_RATIO = 5
MEDIUM_FILLER_RATIO = 2
MIN_DURATION_SECONDS = 15
MAX_DURATION_SECONDS = 120
LONG_SENTENCE_WORDS = 30
LOW_DIVERSITY = 40

_FILLER_PATTERNS = [re.compile(rf"\b{re.escape(f)}\b", re.IGNORECASE) for f in FILLER_WORDS]


def count_fillers(text: str) -> Tuple[int, List[str]]:
    lower = text.lower()
    found: List[str] = []
    for pattern in _FILLER_PATTERNS:
        found.extend(pattern.findall(lower))
    return len(found), found


def calculate_wpm(text: str, duration_seconds: float) -> int:
    if duration_seconds <= 0:
        return 0
    words = len(text.split())
    return int(round_half_up(words / (duration_seconds / 60)))


def analyze_transcript(text: str, duration_seconds: float,
                       lesson_number: Optional[int] = None) -> TranscriptAnalysis:
    lesson_level = get_lesson_level(lesson_number) if lesson_number is not None else None
    words = text.split()
    word_count = len(words)
    if word_count == 0:
        return TranscriptAnalysis(
            word_count=0, wpm=0, filler_count=0, filler_ratio=0.0,
            vocabulary_diversity=0.0, avg_words_per_sentence=0.0,
            issues=["too_short"] if duration_seconds < MIN_DURATION_SECONDS else [],
            lesson_level=lesson_level,
        )

    unique_words = {w.lower() for w in words}
    vocabulary_diversity = len(unique_words) / word_count * 100

    wpm = calculate_wpm(text, duration_seconds)
    filler_count, filler_words = count_fillers(text)
    filler_ratio = filler_count / word_count * 100

    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    avg_words_per_sentence = word_count / len(sentences) if sentences else float(word_count)

    issues = []
    if wpm < SLOW_WPM:
        issues.append("too_slow")
    if wpm > FAST_WPM:
        issues.append("too_fast")

    if filler_ratio > HIGH_FILLER_RATIO:
        issues.append("high_filler_words")
    elif filler_ratio > MEDIUM_FILLER_RATIO:
        issues.append("medium_filler_words")

    if duration_seconds < MIN_DURATION_SECONDS:
        issues.append("too_short")
    if duration_seconds > MAX_DURATION_SECONDS:
        issues.append("too_long")

    if avg_words_per_sentence > LONG_SENTENCE_WORDS:
        issues.append("long_sentences")
    if vocabulary_diversity < LOW_DIVERSITY:
        issues.append("low_vocabulary_diversity")

    return TranscriptAnalysis(
        word_count=word_count,
        wpm=wpm,
        filler_count=filler_count,
        filler_words=filler_words,
        filler_ratio=filler_ratio,
        vocabulary_diversity=vocabulary_diversity,
        avg_words_per_sentence=avg_words_per_sentence,
        issues=issues,
        lesson_level=lesson_level,
    )


def get_lesson_level(lesson_number: int) -> LessonLevel:
    if lesson_number <= 3:
        return "beginner"
    if lesson_number <= 7:
        return "intermediate"
    return "advanced"
