"""Turn extracted lab-report output into a classified, scored report."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from healthwallet.domains.health.domain_logic.biomarker_classifier import (
    decode_biomarkers,
    flagged,
    health_age,
    wellness_score,
)
from healthwallet.domains.health.domain_logic.correlation_engine import (
    detect_correlations,
    merge_correlations,
)
from healthwallet.domains.health.domain_logic.health_models import (
    BiomarkerReading,
    BiomarkerStatus,
    CorrelationInsight,
    LabReport,
    RecordStatus,
    Severity,
)
from healthwallet.domains.health.domain_logic.nutrient_mapping import supplement_protocol

logger = logging.getLogger(__name__)

NO_BIOMARKERS_MESSAGE = "No biomarkers found"
ALL_OPTIMAL_SUMMARY = "All biomarkers are within optimal range."


def decode_correlations(raw: Iterable[dict[str, Any] | CorrelationInsight]) -> list[CorrelationInsight]:
    """Validate provider-supplied correlations; malformed entries are dropped."""
    insights: list[CorrelationInsight] = []
    for entry in raw:
        if isinstance(entry, CorrelationInsight):
            insights.append(entry)
            continue
        try:
            insights.append(CorrelationInsight(
                markers=[str(m) for m in entry.get("markers") or []],
                insight=str(entry["insight"]),
                severity=Severity(entry.get("severity") or Severity.INFO),
                condition=entry.get("condition"),
            ))
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.warning("Dropping malformed correlation entry from extraction provider")
    return insights


def summarize(readings: Iterable[BiomarkerReading]) -> str:
    """One-paragraph summary naming low and elevated markers."""
    readings = list(readings)
    low = [r.name for r in readings if r.status == BiomarkerStatus.LOW]
    high = [r.name for r in readings if r.status == BiomarkerStatus.HIGH]
    parts = []
    if low:
        parts.append(f"Low levels detected: {', '.join(low)}.")
    if high:
        parts.append(f"Elevated levels detected: {', '.join(high)}.")
    return " ".join(parts) if parts else ALL_OPTIMAL_SUMMARY


def key_findings(readings: Iterable[BiomarkerReading]) -> list[str]:
    return [f"{r.name} is {r.status.value}" for r in flagged(readings)]


def build_report(
    readings: list[BiomarkerReading],
    *,
    chronological_age: float | None = None,
    extracted_correlations: Iterable[CorrelationInsight] = (),
    dropped_entries: int = 0,
) -> LabReport:
    """Score an already decoded and classified panel."""
    if not readings:
        return LabReport(
            biomarkers=[],
            wellness_score=0,
            health_age=None,
            correlations=list(extracted_correlations),
            key_findings=[],
            summary="",
            status=RecordStatus.FAILED,
            error_message=NO_BIOMARKERS_MESSAGE,
            dropped_entries=dropped_entries,
        )

    wellness = wellness_score(readings)
    age = health_age(chronological_age, wellness) if chronological_age is not None else None
    correlations = merge_correlations(extracted_correlations, detect_correlations(readings))

    return LabReport(
        biomarkers=readings,
        wellness_score=wellness,
        health_age=age,
        correlations=correlations,
        key_findings=key_findings(readings),
        summary=summarize(readings),
        status=RecordStatus.PENDING_REVIEW,
        dropped_entries=dropped_entries,
        details={"supplement_protocol": supplement_protocol(readings)},
    )


def process_lab_report(
    raw_biomarkers: Iterable[dict[str, Any]],
    *,
    chronological_age: float | None = None,
    extracted_correlations: Iterable[dict[str, Any] | CorrelationInsight] = (),
) -> LabReport:
    """Decode, classify and score one extracted lab report.

    The report is ``pending_review`` when at least one biomarker survived
    decoding, otherwise ``failed`` with "No biomarkers found".

    Raises:
        ValueError: If ``chronological_age`` is negative.
    """
    readings, dropped = decode_biomarkers(raw_biomarkers)
    report = build_report(
        readings,
        chronological_age=chronological_age,
        extracted_correlations=decode_correlations(extracted_correlations),
        dropped_entries=dropped,
    )
    logger.debug(
        "Processed lab report: %d biomarkers, %d dropped, status=%s",
        len(readings), dropped, report.status.value,
    )
    return report
