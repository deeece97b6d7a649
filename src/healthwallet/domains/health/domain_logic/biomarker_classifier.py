"""Biomarker status classification, wellness score and health age.

All functions are deterministic and side-effect free. A reading without a
reference range is *unclassified*: it carries ``status=None`` and is left out
of every downstream score rather than being assumed optimal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from healthwallet.domains.health.domain_logic.component_scorers import round_half_up
from healthwallet.domains.health.domain_logic.health_models import (
    BiomarkerReading,
    BiomarkerStatus,
)

logger = logging.getLogger(__name__)

WELLNESS_MAX = 100
WELLNESS_PENALTY_PER_MARKER = 10

# Health age heuristic (not clinically validated):
#   offset = (PIVOT - wellness) * YEARS_PER_POINT, capped at MAX_OFFSET_YEARS
# A perfect panel takes 1.5 years off; an all-abnormal panel adds at most 10.
HEALTH_AGE_PIVOT = 90
HEALTH_AGE_YEARS_PER_POINT = 0.15
HEALTH_AGE_MAX_OFFSET_YEARS = 10
HEALTH_AGE_FLOOR = 18


class VerificationError(ValueError):
    """Raised when a human-verification edit is not allowed."""


def classify(value: float, min_value: float, max_value: float) -> BiomarkerStatus:
    """Classify a value against an inclusive reference range."""
    if value < min_value:
        return BiomarkerStatus.LOW
    if value > max_value:
        return BiomarkerStatus.HIGH
    return BiomarkerStatus.OPTIMAL


def classify_reading(reading: BiomarkerReading) -> BiomarkerReading:
    """Return the reading with ``status`` recomputed from value and range."""
    if reading.reference_range is None:
        status = None
    else:
        status = classify(reading.value, reading.reference_range.min, reading.reference_range.max)
    if status == reading.status:
        return reading
    return reading.model_copy(update={"status": status})


def classify_panel(readings: Iterable[BiomarkerReading]) -> list[BiomarkerReading]:
    """Classify every reading in a panel, preserving order.

    Verified readings keep their status: it is either the recomputed value
    from the edit or an explicit human override.
    """
    return [r if r.verified else classify_reading(r) for r in readings]


def decode_biomarkers(raw: Iterable[dict[str, Any]]) -> tuple[list[BiomarkerReading], int]:
    """Validate untyped extraction output into readings.

    Any provider-supplied ``status`` is discarded: status is always derived
    here. Entries that fail validation are dropped and counted.

    Returns:
        (classified readings, number of dropped entries)
    """
    readings: list[BiomarkerReading] = []
    dropped = 0
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            dropped += 1
            logger.warning("Dropping biomarker entry %d: not an object", index)
            continue
        payload = {k: v for k, v in entry.items() if k not in ("status", "verified")}
        try:
            reading = BiomarkerReading.model_validate(payload)
        except ValidationError as exc:
            dropped += 1
            logger.warning(
                "Dropping biomarker entry %d (%s): %d validation error(s)",
                index,
                entry.get("name", "?"),
                exc.error_count(),
            )
            continue
        readings.append(classify_reading(reading))
    return readings, dropped


def wellness_score(readings: Iterable[BiomarkerReading]) -> int:
    """Penalty score: 100 minus 10 per classified non-optimal marker.

    Unclassified readings are ignored. A panel with no classified readings
    scores 0, which downstream consumers treat as "no clinical data".
    """
    classified = [r for r in readings if r.status is not None]
    if not classified:
        return 0
    abnormal = sum(1 for r in classified if r.status != BiomarkerStatus.OPTIMAL)
    score = WELLNESS_MAX - WELLNESS_PENALTY_PER_MARKER * abnormal
    return max(0, min(WELLNESS_MAX, score))


def health_age(chronological_age: float, wellness: float) -> int:
    """Adjust chronological age by the wellness score.

    Monotonic non-increasing in ``wellness``; never below ``HEALTH_AGE_FLOOR``
    and never more than ``HEALTH_AGE_MAX_OFFSET_YEARS`` above the real age.
    """
    if chronological_age < 0:
        raise ValueError(f"chronological_age must be non-negative, got {chronological_age}")
    wellness = max(0.0, min(float(WELLNESS_MAX), float(wellness)))
    offset = (HEALTH_AGE_PIVOT - wellness) * HEALTH_AGE_YEARS_PER_POINT
    offset = min(offset, HEALTH_AGE_MAX_OFFSET_YEARS)
    return max(HEALTH_AGE_FLOOR, round_half_up(chronological_age + offset))


def apply_verification(
    reading: BiomarkerReading,
    *,
    value: float | None = None,
    unit: str | None = None,
    status: BiomarkerStatus | str | None = None,
) -> BiomarkerReading:
    """Apply the single allowed human-verification edit to a reading.

    Status is recomputed from the (possibly edited) value unless ``status``
    is given explicitly, in which case the human override wins.

    Raises:
        VerificationError: If the reading was already verified.
    """
    if reading.verified:
        raise VerificationError(f"Biomarker {reading.name!r} has already been verified")

    update: dict[str, Any] = {"verified": True}
    if value is not None:
        update["value"] = float(value)
    if unit is not None:
        update["unit"] = unit
    edited = reading.model_copy(update=update)

    if status is not None:
        return edited.model_copy(update={"status": BiomarkerStatus(status)})
    return classify_reading(edited)


def flagged(readings: Iterable[BiomarkerReading]) -> list[BiomarkerReading]:
    """Readings classified low or high."""
    return [
        r for r in readings
        if r.status in (BiomarkerStatus.LOW, BiomarkerStatus.HIGH)
    ]
