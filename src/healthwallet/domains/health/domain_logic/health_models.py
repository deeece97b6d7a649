"""Health record models and domain constants for the scoring engine.

Boundary records (what collaborators hand the engine) are pydantic models so
every field the engine reads is validated to a concrete type on the way in.
Derived results are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

COMPONENT_KEYS = ["sleep", "recovery", "activity", "clinical", "consistency"]

# Base weights sum to 1.0. Unavailable components hand their share to the
# available ones in proportion to these values.
#   sleep (0.30)      : strongest day-to-day driver of how people feel
#   recovery (0.25)   : HRV / resting HR, physiological readiness
#   activity (0.20)   : steps, most volatile day-to-day
#   clinical (0.15)   : latest blood work, changes only per lab report
#   consistency (0.10): logging streak, engagement signal
COMPONENT_WEIGHTS = {
    "sleep": 0.30,
    "recovery": 0.25,
    "activity": 0.20,
    "clinical": 0.15,
    "consistency": 0.10,
}

NO_DATA_LABEL = "No data"


class BiomarkerStatus(str, Enum):
    LOW = "low"
    OPTIMAL = "optimal"
    HIGH = "high"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class RecordStatus(str, Enum):
    PROCESSING = "processing"
    PENDING_REVIEW = "pending_review"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidDateError(ValueError):
    """Raised when a date string is not an ISO ``YYYY-MM-DD`` calendar date."""


def parse_iso_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string, failing fast on anything else."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) != 10:
        raise InvalidDateError(f"Expected a YYYY-MM-DD date string, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidDateError(f"Invalid calendar date: {value!r}") from exc


# ---------------------------------------------------------------------------
# Boundary records
# ---------------------------------------------------------------------------

class ReferenceRange(BaseModel):
    """Inclusive lab reference range."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @model_validator(mode="after")
    def _check_order(self) -> ReferenceRange:
        if self.min > self.max:
            raise ValueError(f"reference range min {self.min} exceeds max {self.max}")
        return self


class BiomarkerReading(BaseModel):
    """One clinical measurement from an extracted lab report."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    value: float
    unit: str = ""
    reference_range: ReferenceRange | None = None
    status: BiomarkerStatus | None = None
    category: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    verified: bool = False

    @field_validator("confidence", mode="before")
    @classmethod
    def _default_confidence(cls, value: Any) -> Any:
        # Extraction providers send null when they have no trust signal.
        return 1.0 if value is None else value

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return self.name.strip().lower()


class DailyMetric(BaseModel):
    """One wearable-derived day. Every field is independently optional."""

    date: str
    steps: float | None = Field(default=None, ge=0)
    sleep_hours: float | None = Field(default=None, ge=0, le=24)
    hrv_avg_ms: float | None = Field(default=None, ge=0)
    resting_heart_rate: float | None = Field(default=None, ge=0)
    active_energy_kcal: float | None = Field(default=None, ge=0)
    weight_kg: float | None = Field(default=None, ge=0)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        parse_iso_date(value)
        return value


class QuickLog(BaseModel):
    """One subjective mood/energy entry per day."""

    date: str
    mood: int = Field(ge=1, le=5)
    energy: int = Field(ge=1, le=5)
    symptoms: list[str] = Field(default_factory=list, max_length=10)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        parse_iso_date(value)
        return value

    @field_validator("symptoms")
    @classmethod
    def _dedupe_symptoms(cls, value: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for symptom in value:
            cleaned = symptom.strip()
            if cleaned:
                seen.setdefault(cleaned, None)
        return list(seen)


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CorrelationInsight:
    """A cross-biomarker finding produced by a correlation rule."""

    markers: list[str]
    insight: str
    severity: Severity
    condition: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "markers": list(self.markers),
            "insight": self.insight,
            "severity": self.severity.value,
            "condition": self.condition,
        }


@dataclass(frozen=True)
class ComponentScore:
    """One vitality component as reported to consumers."""

    score: int
    weight: float
    value: str
    available: bool

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VitalityResult:
    """Composite vitality score plus per-component explanation."""

    score: int
    components: dict[str, ComponentScore]
    # True when no component had data; the score is then 0 by definition,
    # not a measurement.
    insufficient_data: bool = False

    @property
    def available_components(self) -> list[str]:
        return [key for key, comp in self.components.items() if comp.available]

    def as_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "insufficient_data": self.insufficient_data,
            "components": {key: comp.as_dict() for key, comp in self.components.items()},
        }


@dataclass(frozen=True)
class VitalityTrendPoint:
    date: str
    score: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LabReport:
    """Outcome of processing one extracted lab report."""

    biomarkers: list[BiomarkerReading]
    wellness_score: int
    health_age: int | None
    correlations: list[CorrelationInsight]
    key_findings: list[str]
    summary: str
    status: RecordStatus
    error_message: str | None = None
    dropped_entries: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "error_message": self.error_message,
            "wellness_score": self.wellness_score,
            "health_age": self.health_age,
            "summary": self.summary,
            "key_findings": list(self.key_findings),
            "biomarkers": [b.model_dump(mode="json") for b in self.biomarkers],
            "correlations": [c.as_dict() for c in self.correlations],
            "dropped_entries": self.dropped_entries,
            **self.details,
        }
