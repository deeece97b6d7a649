"""Data models for the health persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from healthwallet.domains.health.domain_logic.health_models import (
    BiomarkerReading,
    CorrelationInsight,
    RecordStatus,
)


@dataclass
class LabRecord:
    """One uploaded lab report and its processed outcome.

    ``biomarkers``, ``correlations`` and ``report`` (summary, key findings,
    supplement protocol) are stored encrypted at rest.
    """

    id: str
    source_name: str
    status: RecordStatus
    biomarkers: list[BiomarkerReading] = field(default_factory=list)
    correlations: list[CorrelationInsight] = field(default_factory=list)
    report: dict[str, Any] = field(default_factory=dict)
    wellness_score: int | None = None
    health_age: int | None = None
    error_message: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_name": self.source_name,
            "status": self.status.value,
            "wellness_score": self.wellness_score,
            "health_age": self.health_age,
            "error_message": self.error_message,
            "biomarkers": [b.model_dump(mode="json") for b in self.biomarkers],
            "correlations": [c.as_dict() for c in self.correlations],
            **self.report,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class ShownOffer:
    """A retention offer already presented to the user."""

    id: str
    offer_type: str
    title: str
    reason_category: str | None = None
    created_at: str = ""
