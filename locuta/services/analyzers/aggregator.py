"""
Turns the analyzer's accumulated state into a VoiceMetrics snapshot.

Every weight and threshold below is part of the published scoring contract:
feedback built on these numbers expects them unchanged.
"""
from dataclasses import dataclass
from typing import Iterable, Sequence
from locuta.schemas.voice_metrics import Pause, VoiceMetrics
from locuta.utils.stats import clamp, mean_and_std, round_half_up

# Pause classification (ms)
LONG_PAUSE_MS = 2000
STRATEGIC_PAUSE_MIN_MS = 300
STRATEGIC_PAUSE_MAX_MS = 1500

# Confidence
CONFIDENCE_BASE = 70.0
CONFIDENCE_STABILITY_WEIGHT = 0.3
CONFIDENCE_VOLUME_RANGE = (30, 80)
CONFIDENCE_VOLUME_BONUS = 10.0
CONFIDENCE_QUIET_PENALTY = 0.5
VOLUME_DROP_PENALTY, VOLUME_DROP_PENALTY_CAP = 2.0, 15.0
TRAILING_OFF_PENALTY, TRAILING_OFF_PENALTY_CAP = 4.0, 20.0
LONG_PAUSE_PENALTY, LONG_PAUSE_PENALTY_CAP = 5.0, 15.0

# Pace
PACE_BASE = 70.0
STRATEGIC_PAUSE_BONUS, STRATEGIC_PAUSE_BONUS_CAP = 3.0, 15.0
PAUSE_DURATION_SWEET_SPOT = (300, 1000)

# Delivery
DELIVERY_WEIGHTS = {
    "confidence": 0.35,
    "pace": 0.30,
    "volume_stability": 0.20,
    "pitch_stability": 0.15,
}
PITCH_STABILITY_PLATEAU = (60, 85)


@dataclass
class SessionTotals:
    speaking_time_ms: float = 0.0
    silence_time_ms: float = 0.0
    volume_drop_count: int = 0
    trailing_off_count: int = 0

    @property
    def speaking_ratio(self) -> float:
        total = self.speaking_time_ms + self.silence_time_ms
        return self.speaking_time_ms / total if total > 0 else 0.0


def volume_stability(volumes: Iterable[float]) -> float:
    _, std = mean_and_std(volumes)
    return clamp(100 - std * 2)


def pitch_stability(pitches: Sequence[float]) -> float:
    if len(pitches) == 0:
        return 0.0
    _, std = mean_and_std(pitches)
    return clamp(100 - std / 2)


def confidence_score(volume_stability: float, average_volume: float, volume_drops: int,
                     trailing_offs: int, long_pauses: int, speaking_ratio: float) -> float:
    score = CONFIDENCE_BASE
    score += (volume_stability - 50) * CONFIDENCE_STABILITY_WEIGHT

    low, high = CONFIDENCE_VOLUME_RANGE
    if low <= average_volume <= high:
        score += CONFIDENCE_VOLUME_BONUS
    elif average_volume < low:
        score -= (low - average_volume) * CONFIDENCE_QUIET_PENALTY

    score -= min(VOLUME_DROP_PENALTY_CAP, volume_drops * VOLUME_DROP_PENALTY)
    score -= min(TRAILING_OFF_PENALTY_CAP, trailing_offs * TRAILING_OFF_PENALTY)
    score -= min(LONG_PAUSE_PENALTY_CAP, long_pauses * LONG_PAUSE_PENALTY)

    if 0.5 <= speaking_ratio <= 0.8:
        score += 5
    elif speaking_ratio > 0.9:
        score -= 5
    elif speaking_ratio < 0.4:
        score -= 10

    return clamp(score)


def pace_score(speaking_ratio: float, average_pause_duration: float, strategic_pauses: int) -> float:
    score = PACE_BASE

    if 0.5 <= speaking_ratio <= 0.75:
        score += 15
    elif speaking_ratio > 0.85:
        score -= 10
    elif speaking_ratio < 0.4:
        score -= 15

    score += min(STRATEGIC_PAUSE_BONUS_CAP, strategic_pauses * STRATEGIC_PAUSE_BONUS)

    low, high = PAUSE_DURATION_SWEET_SPOT
    if low <= average_pause_duration <= high:
        score += 10
    elif average_pause_duration > LONG_PAUSE_MS:
        score -= 10

    return clamp(score)


def delivery_score(confidence: float, pace: float, volume_stability: float, pitch_stability: float) -> float:
    low, high = PITCH_STABILITY_PLATEAU
    # Comfortably stable pitch is rewarded flat; only extremes move the score
    adjusted_pitch = 85 if low <= pitch_stability <= high else pitch_stability
    score = (
        confidence * DELIVERY_WEIGHTS["confidence"]
        + pace * DELIVERY_WEIGHTS["pace"]
        + volume_stability * DELIVERY_WEIGHTS["volume_stability"]
        + adjusted_pitch * DELIVERY_WEIGHTS["pitch_stability"]
    )
    return clamp(round_half_up(score))


class MetricsAggregator:
    """Stateless: the same inputs always produce the same snapshot."""

    def compute(self, current_volume: int, volumes: Sequence[float], pitches: Sequence[float],
                pauses: Sequence[Pause], totals: SessionTotals) -> VoiceMetrics:
        average_volume, _ = mean_and_std(volumes)
        stability = volume_stability(volumes)

        long_pauses = sum(1 for p in pauses if p.duration_ms > LONG_PAUSE_MS)
        strategic_pauses = sum(
            1 for p in pauses if STRATEGIC_PAUSE_MIN_MS <= p.duration_ms <= STRATEGIC_PAUSE_MAX_MS
        )
        average_pause, _ = mean_and_std(p.duration_ms for p in pauses)

        if len(pitches):
            average_pitch, _ = mean_and_std(pitches)
            pitch_span = max(pitches) - min(pitches)
        else:
            average_pitch, pitch_span = 0.0, 0.0
        pitch_stab = pitch_stability(pitches)

        ratio = totals.speaking_ratio

        confidence = confidence_score(
            volume_stability=stability,
            average_volume=average_volume,
            volume_drops=totals.volume_drop_count,
            trailing_offs=totals.trailing_off_count,
            long_pauses=long_pauses,
            speaking_ratio=ratio,
        )
        pace = pace_score(
            speaking_ratio=ratio,
            average_pause_duration=average_pause,
            strategic_pauses=strategic_pauses,
        )
        delivery = delivery_score(confidence, pace, stability, pitch_stab)

        return VoiceMetrics(
            current_volume=current_volume,
            average_volume=int(round_half_up(average_volume)),
            volume_stability=int(round_half_up(stability)),
            speaking_time_ms=int(round_half_up(totals.speaking_time_ms)),
            silence_time_ms=int(round_half_up(totals.silence_time_ms)),
            speaking_ratio=round_half_up(ratio, 2),
            pause_count=len(pauses),
            average_pause_duration=int(round_half_up(average_pause)),
            long_pause_count=long_pauses,
            strategic_pause_count=strategic_pauses,
            pitch_stability=int(round_half_up(pitch_stab)),
            average_pitch=int(round_half_up(average_pitch)),
            pitch_range=int(round_half_up(pitch_span)),
            volume_drop_count=totals.volume_drop_count,
            trailing_off_count=totals.trailing_off_count,
            confidence_score=int(round_half_up(confidence)),
            pace_score=int(round_half_up(pace)),
            delivery_score=int(delivery),
        )
