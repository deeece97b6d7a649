"""Vitality Score: five component scores combined with weight redistribution.

Components without data are dropped and their base weight is shared among
the available ones in proportion to their own base weights, so effective
weights of available components always sum to 1.0.

Everything here is a pure function of its arguments; callers pass the
reference date explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta

from healthwallet.domains.health.domain_logic.component_scorers import (
    round_half_up,
    score_activity,
    score_clinical,
    score_consistency,
    score_recovery,
    score_sleep,
)
from healthwallet.domains.health.domain_logic.health_models import (
    COMPONENT_KEYS,
    COMPONENT_WEIGHTS,
    NO_DATA_LABEL,
    ComponentScore,
    DailyMetric,
    VitalityResult,
    VitalityTrendPoint,
    parse_iso_date,
)
from healthwallet.domains.health.domain_logic.streak import current_streak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawComponent:
    """A component sub-score before weighting."""

    score: int
    value: str
    available: bool


_UNAVAILABLE = RawComponent(score=0, value=NO_DATA_LABEL, available=False)


def _fmt(number: float) -> str:
    """Render 7.0 as '7' and 7.5 as '7.5'."""
    if float(number).is_integer():
        return str(int(number))
    return f"{number:g}"


# ---------------------------------------------------------------------------
# Per-component availability + raw score
# ---------------------------------------------------------------------------

def sleep_component(metric: DailyMetric | None) -> RawComponent:
    if metric is None or metric.sleep_hours is None:
        return _UNAVAILABLE
    hours = metric.sleep_hours
    return RawComponent(score_sleep(hours), f"{_fmt(hours)}h", True)


def recovery_component(metric: DailyMetric | None) -> RawComponent:
    if metric is None:
        return _UNAVAILABLE
    hrv, rhr = metric.hrv_avg_ms, metric.resting_heart_rate
    score = score_recovery(hrv, rhr)
    if score is None:
        return _UNAVAILABLE
    parts = []
    if hrv is not None:
        parts.append(f"HRV {_fmt(hrv)}ms")
    if rhr is not None:
        parts.append(f"RHR {_fmt(rhr)}")
    return RawComponent(score, " / ".join(parts), True)


def activity_component(metric: DailyMetric | None) -> RawComponent:
    if metric is None or metric.steps is None:
        return _UNAVAILABLE
    return RawComponent(score_activity(metric.steps), f"{_fmt(metric.steps)} steps", True)


def clinical_component(wellness: float | None) -> RawComponent:
    if wellness is None or wellness <= 0:
        return _UNAVAILABLE
    return RawComponent(score_clinical(wellness), "Blood work", True)


def consistency_component(streak: int) -> RawComponent:
    # A streak of 0 is data, not absence.
    streak = max(0, streak)
    return RawComponent(score_consistency(streak), f"{streak}-day streak", True)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def effective_weights(available: Iterable[str]) -> dict[str, float]:
    """Redistribute base weights over the available component keys.

    Returns an entry for every component; unavailable ones get 0.0. With
    nothing available every weight is 0.0.
    """
    available = set(available)
    available_weight = sum(COMPONENT_WEIGHTS[k] for k in COMPONENT_KEYS if k in available)
    if available_weight <= 0:
        return {k: 0.0 for k in COMPONENT_KEYS}
    return {
        k: (COMPONENT_WEIGHTS[k] / available_weight if k in available else 0.0)
        for k in COMPONENT_KEYS
    }


def aggregate(raw: Mapping[str, RawComponent]) -> VitalityResult:
    """Combine raw components into the final score and breakdown.

    Keys missing from ``raw`` are treated as unavailable. With no available
    component the result is score 0 flagged ``insufficient_data``.
    """
    raw = {k: raw.get(k, _UNAVAILABLE) for k in COMPONENT_KEYS}
    weights = effective_weights(k for k, r in raw.items() if r.available)

    total = 0.0
    components: dict[str, ComponentScore] = {}
    for key in COMPONENT_KEYS:
        r = raw[key]
        weight = weights[key]
        if r.available:
            total += r.score * weight
        components[key] = ComponentScore(
            score=r.score if r.available else 0,
            weight=round(weight, 2),
            value=r.value,
            available=r.available,
        )

    insufficient = not any(r.available for r in raw.values())
    if insufficient:
        logger.debug("Vitality aggregation with no available components")
    return VitalityResult(
        score=0 if insufficient else max(0, min(100, round_half_up(total))),
        components=components,
        insufficient_data=insufficient,
    )


def compute_vitality(
    metric: DailyMetric | None,
    wellness: float | None,
    streak: int,
) -> VitalityResult:
    """Vitality Score for one day.

    Args:
        metric: That day's wearable record, or None.
        wellness: Wellness score of the latest completed lab record, or None.
        streak: Current logging streak ending on that day.
    """
    return aggregate({
        "sleep": sleep_component(metric),
        "recovery": recovery_component(metric),
        "activity": activity_component(metric),
        "clinical": clinical_component(wellness),
        "consistency": consistency_component(streak),
    })


def compute_vitality_trend(
    metrics_by_date: Mapping[str, DailyMetric],
    wellness: float | None,
    logged_dates: Iterable[str],
    end_date: date | str,
    *,
    days: int = 7,
) -> list[VitalityTrendPoint]:
    """Daily scores for the ``days`` days before ``end_date`` plus the day itself.

    Oldest first. Each day uses its own metric and its own streak; the
    clinical input is shared because lab records do not vary per day.
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")
    end = parse_iso_date(end_date)
    dates = list(logged_dates)

    points: list[VitalityTrendPoint] = []
    for offset in range(days, -1, -1):
        day = end - timedelta(days=offset)
        day_str = day.isoformat()
        result = compute_vitality(
            metrics_by_date.get(day_str),
            wellness,
            current_streak(dates, day),
        )
        points.append(VitalityTrendPoint(date=day_str, score=result.score))
    return points
