"""Component scorers: raw daily metrics -> 0-100 sub-scores.

Every curve is piecewise linear with saturation and goes through ``lerp``,
so rounding is identical across components. Breakpoints are wellness
heuristics, not clinical thresholds.
"""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (``round()`` is banker's)."""
    return int(math.floor(value + 0.5))


def lerp(
    value: float,
    domain_min: float,
    domain_max: float,
    score_min: float,
    score_max: float,
) -> int:
    """Map ``value`` from the domain onto the score range, clamped.

    The domain fraction is clamped to [0, 1] before scaling, so the result
    never leaves [score_min, score_max] however far out ``value`` is.
    ``score_max`` may be below ``score_min`` for inverted curves.
    """
    if domain_max == domain_min:
        return round_half_up(score_max)
    t = (value - domain_min) / (domain_max - domain_min)
    t = max(0.0, min(1.0, t))
    return round_half_up(score_min + t * (score_max - score_min))


# ---------------------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------------------

SLEEP_IDEAL_MIN = 7.0
SLEEP_IDEAL_MAX = 9.0


def score_sleep(hours: float) -> int:
    """7-9h = 100; 5h->20 up to 7h; 9h->100 down to 60 at 10h and beyond."""
    if SLEEP_IDEAL_MIN <= hours <= SLEEP_IDEAL_MAX:
        return 100
    if hours < SLEEP_IDEAL_MIN:
        return lerp(hours, 5, 7, 20, 100)
    return lerp(hours, 9, 10, 100, 60)


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------

def score_hrv(hrv_ms: float) -> int:
    """>=60ms = 100, <=20ms = 20."""
    return lerp(hrv_ms, 20, 60, 20, 100)


def score_rhr(rhr_bpm: float) -> int:
    """<=60 bpm = 100, >=80 bpm = 30 (lower is better)."""
    return lerp(rhr_bpm, 60, 80, 100, 30)


def score_recovery(hrv_ms: float | None, rhr_bpm: float | None) -> int | None:
    """Average of HRV and RHR sub-scores, or whichever one is present."""
    if hrv_ms is not None and rhr_bpm is not None:
        return round_half_up((score_hrv(hrv_ms) + score_rhr(rhr_bpm)) / 2)
    if hrv_ms is not None:
        return score_hrv(hrv_ms)
    if rhr_bpm is not None:
        return score_rhr(rhr_bpm)
    return None


# ---------------------------------------------------------------------------
# Activity, clinical, consistency
# ---------------------------------------------------------------------------

def score_activity(steps: float) -> int:
    """>=8000 steps = 100, <=2000 = 20."""
    return lerp(steps, 2000, 8000, 20, 100)


def score_clinical(wellness: float) -> int:
    """The lab wellness score, clamped to [0, 100]."""
    return lerp(wellness, 0, 100, 0, 100)


CONSISTENCY_FULL_STREAK = 7


def score_consistency(streak_days: int) -> int:
    """7+ day streak = 100, 0 = 0, linear between."""
    return lerp(streak_days, 0, CONSISTENCY_FULL_STREAK, 0, 100)
