"""Concrete LabExtractionProvider implementations."""

from __future__ import annotations

import json
import logging
from typing import Any

from healthwallet.domains.health.connectors import LabExtraction, LabExtractionError
from healthwallet.domains.health.connectors.sample_data import get_sample_lab_panel

logger = logging.getLogger(__name__)


def _strip_code_fence(text: str) -> str:
    """Unwrap ```json ... ``` blocks that AI extractors like to emit."""
    text = text.strip()
    if "```json" in text:
        start = text.index("```json") + len("```json")
    elif "```" in text:
        start = text.index("```") + 3
    else:
        return text
    end = text.find("```", start)
    return text[start:end if end != -1 else None].strip()


def _to_extraction(report: dict[str, Any]) -> LabExtraction:
    biomarkers = report.get("biomarkers") or []
    correlations = report.get("correlations") or []
    return LabExtraction(
        biomarkers=list(biomarkers) if isinstance(biomarkers, list) else [],
        correlations=list(correlations) if isinstance(correlations, list) else [],
        lab_provider=report.get("lab_provider"),
        record_date=report.get("record_date"),
    )


class StructuredJsonProvider:
    """Reads documents that already carry structured biomarker JSON.

    Accepts either ``{"biomarkers": [...]}`` for a single report or
    ``{"reports": [{...}, ...]}`` for a multi-report document, optionally
    wrapped in a markdown code fence.
    """

    async def extract(self, document: str) -> list[LabExtraction]:
        try:
            parsed = json.loads(_strip_code_fence(document))
        except json.JSONDecodeError as exc:
            raise LabExtractionError(f"Document is not valid JSON: {exc.msg}") from exc
        if not isinstance(parsed, dict):
            raise LabExtractionError("Document must be a JSON object")

        if isinstance(parsed.get("reports"), list):
            reports = [r for r in parsed["reports"] if isinstance(r, dict)]
        elif "biomarkers" in parsed:
            reports = [parsed]
        else:
            reports = []

        logger.debug("Structured document contained %d report(s)", len(reports))
        return [_to_extraction(r) for r in reports]

    @property
    def provider_name(self) -> str:
        return "structured_json"


class SampleLabExtractionProvider:
    """Ignores the document and returns the sample panel. Always available."""

    async def extract(self, document: str) -> list[LabExtraction]:
        return [LabExtraction(biomarkers=get_sample_lab_panel(), lab_provider="Sample Lab")]

    @property
    def provider_name(self) -> str:
        return "sample"
