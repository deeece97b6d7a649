"""Lab extraction connectors: abstraction over whoever structures lab reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


class LabExtractionError(Exception):
    """Raised when a provider cannot turn a document into biomarker records."""


@dataclass
class LabExtraction:
    """Untyped provider output, validated later by the engine's decoders."""

    biomarkers: list[dict[str, Any]] = field(default_factory=list)
    correlations: list[dict[str, Any]] = field(default_factory=list)
    lab_provider: str | None = None
    record_date: str | None = None


@runtime_checkable
class LabExtractionProvider(Protocol):
    """Abstract interface for turning an uploaded lab document into records.

    Tools call this without knowing whether extraction is done by an AI
    service, a lab's structured export, or canned sample data.
    """

    async def extract(self, document: str) -> list[LabExtraction]:
        """One extraction per report found in the document.

        Raises:
            LabExtractionError: If the document cannot be read at all.
        """
        ...

    @property
    def provider_name(self) -> str:
        """Label stored on lab records: 'structured_json', 'sample', ..."""
        ...
