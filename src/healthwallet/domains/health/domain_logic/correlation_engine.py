"""Cross-biomarker correlation rules.

Each rule is a flat conjunction of (marker, status) predicates. A rule fires
when every predicate holds; a missing or unclassified marker simply makes the
rule not fire. Rules are evaluated in table order so output is deterministic.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from healthwallet.domains.health.domain_logic.health_models import (
    BiomarkerReading,
    BiomarkerStatus,
    CorrelationInsight,
    Severity,
)

LOW = BiomarkerStatus.LOW
HIGH = BiomarkerStatus.HIGH


@dataclass(frozen=True)
class MarkerPredicate:
    """Matches the first alias present in the panel against a status."""

    aliases: tuple[str, ...]
    status: BiomarkerStatus

    def find(self, panel: dict[str, BiomarkerReading]) -> BiomarkerReading | None:
        for alias in self.aliases:
            reading = panel.get(alias)
            if reading is not None:
                return reading
        return None

    def holds(self, panel: dict[str, BiomarkerReading]) -> bool:
        reading = self.find(panel)
        return reading is not None and reading.status == self.status


@dataclass(frozen=True)
class CorrelationRule:
    condition: str
    markers: tuple[str, ...]
    predicates: tuple[MarkerPredicate, ...]
    severity: Severity
    insight: str

    def matches(self, panel: dict[str, BiomarkerReading]) -> bool:
        return all(p.holds(panel) for p in self.predicates)

    def to_insight(self) -> CorrelationInsight:
        return CorrelationInsight(
            markers=list(self.markers),
            insight=self.insight,
            severity=self.severity,
            condition=self.condition,
        )


CORRELATION_RULES: list[CorrelationRule] = [
    CorrelationRule(
        condition="Iron Deficiency Anemia",
        markers=("Ferritin", "Hemoglobin"),
        predicates=(
            MarkerPredicate(("ferritin",), LOW),
            MarkerPredicate(("hemoglobin",), LOW),
        ),
        severity=Severity.WARNING,
        insight=(
            "Both iron storage (ferritin) and oxygen-carrying capacity (hemoglobin) "
            "are low. This pattern strongly suggests iron deficiency anemia."
        ),
    ),
    CorrelationRule(
        condition="Metabolic Syndrome",
        markers=("Glucose", "Triglycerides", "HDL"),
        predicates=(
            MarkerPredicate(("fasting glucose", "glucose"), HIGH),
            MarkerPredicate(("triglycerides",), HIGH),
            MarkerPredicate(("hdl", "hdl cholesterol"), LOW),
        ),
        severity=Severity.CRITICAL,
        insight=(
            "High blood sugar combined with high triglycerides and low HDL is a "
            "classic pattern of insulin resistance and metabolic syndrome."
        ),
    ),
    CorrelationRule(
        condition="Hypothyroidism",
        markers=("TSH", "Free T3"),
        predicates=(
            MarkerPredicate(("tsh",), HIGH),
            MarkerPredicate(("free t3",), LOW),
        ),
        severity=Severity.WARNING,
        insight=(
            "High TSH with low Free T3 suggests your thyroid is underperforming "
            "or you have poor T4 to T3 conversion."
        ),
    ),
    CorrelationRule(
        condition="Elevated Cardiovascular Risk",
        markers=("LDL Cholesterol", "CRP"),
        predicates=(
            MarkerPredicate(("ldl", "ldl cholesterol"), HIGH),
            MarkerPredicate(("crp", "c-reactive protein"), HIGH),
        ),
        severity=Severity.CRITICAL,
        insight=(
            "Elevated LDL combined with high inflammation (CRP) significantly "
            "increases cardiovascular risk."
        ),
    ),
    CorrelationRule(
        condition="B12 Deficiency / Methylation Issues",
        markers=("Vitamin B12", "Homocysteine"),
        predicates=(
            MarkerPredicate(("vitamin b12", "b12"), LOW),
            MarkerPredicate(("homocysteine",), HIGH),
        ),
        severity=Severity.WARNING,
        insight=(
            "Low B12 with elevated homocysteine indicates B12 deficiency "
            "affecting methylation pathways."
        ),
    ),
    CorrelationRule(
        condition="Chronic Inflammation",
        markers=("Vitamin D", "CRP"),
        predicates=(
            MarkerPredicate(("vitamin d", "25-hydroxy vitamin d"), LOW),
            MarkerPredicate(("crp", "c-reactive protein"), HIGH),
        ),
        severity=Severity.WARNING,
        insight=(
            "Low vitamin D alongside elevated CRP is commonly seen with "
            "low-grade chronic inflammation."
        ),
    ),
    CorrelationRule(
        condition="Adrenal Stress Pattern",
        markers=("Cortisol", "DHEA"),
        predicates=(
            MarkerPredicate(("cortisol",), HIGH),
            MarkerPredicate(("dhea", "dhea-s"), LOW),
        ),
        severity=Severity.WARNING,
        insight=(
            "High cortisol with low DHEA points to a sustained stress response "
            "outpacing the body's recovery hormones."
        ),
    ),
]


def _panel_index(readings: Iterable[BiomarkerReading]) -> dict[str, BiomarkerReading]:
    """Case-insensitive name -> reading; later duplicates win."""
    return {r.key: r for r in readings}


def detect_correlations(
    readings: Iterable[BiomarkerReading],
    rules: Sequence[CorrelationRule] = CORRELATION_RULES,
) -> list[CorrelationInsight]:
    """Run every rule against a classified panel, in rule order."""
    panel = _panel_index(readings)
    if not panel:
        return []
    return [rule.to_insight() for rule in rules if rule.matches(panel)]


def merge_correlations(
    extracted: Iterable[CorrelationInsight],
    detected: Iterable[CorrelationInsight],
) -> list[CorrelationInsight]:
    """Union provider-extracted insights with rule-detected ones.

    Extracted insights come first; a detected insight is added only when no
    extracted insight already names the same condition.
    """
    merged = list(extracted)
    conditions = {c.condition for c in merged if c.condition}
    for insight in detected:
        if insight.condition and insight.condition in conditions:
            continue
        merged.append(insight)
        if insight.condition:
            conditions.add(insight.condition)
    return merged
