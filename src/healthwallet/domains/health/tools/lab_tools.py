"""MCP tools for lab reports: upload, human verification, insights.

Record lifecycle: ``upload_lab_report`` creates a record in
``pending_review`` (or ``failed`` when nothing could be extracted). Each
biomarker may be edited once with ``verify_biomarker``. ``complete_lab_record``
moves the record to ``completed``, which makes its wellness score the
clinical input of the Vitality Score.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from healthwallet.core.storage.models import LabRecord
from healthwallet.core.storage.repository import RepositoryError
from healthwallet.domains.health.connectors import LabExtractionError, LabExtractionProvider
from healthwallet.domains.health.domain_logic.biomarker_classifier import (
    VerificationError,
    apply_verification,
    flagged,
)
from healthwallet.domains.health.domain_logic.health_models import LabReport, RecordStatus
from healthwallet.domains.health.domain_logic.lab_processing import (
    build_report,
    decode_correlations,
    process_lab_report,
)
from healthwallet.domains.health.domain_logic.nutrient_mapping import (
    analyze_nutrient_needs,
    filter_by_diet,
    generate_meal_plan,
    supplement_protocol,
)

if TYPE_CHECKING:
    from healthwallet.core.audit.logger import AuditLogger
    from healthwallet.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)


def _record_from_report(
    report: LabReport,
    *,
    source_name: str,
    record_id: str = "",
    extracted_correlations: list[dict[str, Any]] | None = None,
    chronological_age: float | None = None,
) -> LabRecord:
    return LabRecord(
        id=record_id,
        source_name=source_name,
        status=report.status,
        biomarkers=report.biomarkers,
        correlations=report.correlations,
        report={
            "summary": report.summary,
            "key_findings": report.key_findings,
            "supplement_protocol": report.details.get("supplement_protocol", []),
            # Kept so verification can rebuild the report without losing them.
            "extracted_correlations": extracted_correlations or [],
            "chronological_age": chronological_age,
        },
        wellness_score=report.wellness_score,
        health_age=report.health_age,
        error_message=report.error_message,
    )


def register_lab_tools(
    mcp: FastMCP,
    repository: HealthRepository,
    extraction_provider: LabExtractionProvider,
    audit_logger: AuditLogger | None = None,
    *,
    default_diet: str = "omnivore",
) -> None:
    """Register lab report tools on the MCP server."""

    def _audit(tool_name: str, tool_input: Any, start_time: float, **kwargs: Any) -> None:
        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name=tool_name,
                tool_input=tool_input,
                duration_ms=(time.monotonic() - start_time) * 1000,
                **kwargs,
            )

    def _error(tool_name: str, tool_input: Any, start_time: float, exc: Exception, **kwargs: Any) -> str:
        _audit(tool_name, tool_input, start_time,
               status="failure", error_type=type(exc).__name__, **kwargs)
        return json.dumps({"status": "error", "message": str(exc)})

    @mcp.tool
    async def upload_lab_report(
        ctx: Context,
        document: str,
        chronological_age: float | None = None,
    ) -> str:
        """Extract, classify and store the lab reports in a document.

        One record is created per report found. Records with biomarkers land
        in ``pending_review``; a document with none yields a ``failed`` record.

        Args:
            document: The lab document content handed to the extraction provider.
            chronological_age: Your age in years, enables the health age estimate.
        """
        start_time = time.monotonic()
        tool_input = {"document_length": len(document), "has_age": chronological_age is not None}
        source_name = extraction_provider.provider_name

        try:
            extractions = await extraction_provider.extract(document)
        except LabExtractionError as exc:
            record = LabRecord(
                id="",
                source_name=source_name,
                status=RecordStatus.FAILED,
                error_message=str(exc),
            )
            rid = repository.save_lab_record(record)
            logger.warning("Lab extraction failed for record %s: %s", rid, exc)
            _audit("upload_lab_report", tool_input, start_time, record_id=rid,
                   status="failure", error_type=type(exc).__name__)
            return json.dumps({"status": "failed", "records": [record.as_dict()]})

        if not extractions:
            exc = LabExtractionError("No lab reports found in document")
            rid = repository.save_lab_record(LabRecord(
                id="", source_name=source_name,
                status=RecordStatus.FAILED, error_message=str(exc),
            ))
            return _error("upload_lab_report", tool_input, start_time, exc, record_id=rid)

        try:
            records = []
            for extraction in extractions:
                report = process_lab_report(
                    extraction.biomarkers,
                    chronological_age=chronological_age,
                    extracted_correlations=extraction.correlations,
                )
                extracted = [c.as_dict() for c in decode_correlations(extraction.correlations)]
                record = _record_from_report(
                    report,
                    source_name=extraction.lab_provider or source_name,
                    extracted_correlations=extracted,
                    chronological_age=chronological_age,
                )
                repository.save_lab_record(record)
                records.append(record)
        except ValueError as exc:
            return _error("upload_lab_report", tool_input, start_time, exc)

        _audit("upload_lab_report", tool_input, start_time,
               record_id=records[0].id,
               metadata={"records": len(records),
                         "statuses": [r.status.value for r in records]})
        return json.dumps({
            "status": "processed",
            "records": [r.as_dict() for r in records],
        })

    @mcp.tool
    async def verify_biomarker(
        ctx: Context,
        record_id: str,
        biomarker_name: str,
        value: float | None = None,
        unit: str | None = None,
        status: str | None = None,
    ) -> str:
        """Confirm or correct one extracted biomarker. Allowed once per marker.

        Status is recomputed from the corrected value unless you set it
        explicitly (low, optimal or high).

        Args:
            record_id: Lab record to edit (must be pending review).
            biomarker_name: Marker to verify, case-insensitive.
            value: Corrected value, if the extraction got it wrong.
            unit: Corrected unit.
            status: Explicit status override.
        """
        start_time = time.monotonic()
        tool_input = {"record_id": record_id, "biomarker": biomarker_name}

        try:
            record = repository.require_lab_record(record_id)
            if record.status != RecordStatus.PENDING_REVIEW:
                raise VerificationError(
                    f"Record {record_id} is {record.status.value}, not pending review"
                )
            key = biomarker_name.strip().lower()
            index = next(
                (i for i, b in enumerate(record.biomarkers) if b.key == key), None
            )
            if index is None:
                raise VerificationError(f"Unknown biomarker {biomarker_name!r} in record {record_id}")

            biomarkers = list(record.biomarkers)
            biomarkers[index] = apply_verification(
                biomarkers[index], value=value, unit=unit, status=status
            )
            report = build_report(
                biomarkers,
                chronological_age=record.report.get("chronological_age"),
                extracted_correlations=decode_correlations(
                    record.report.get("extracted_correlations") or []
                ),
            )
            updated = _record_from_report(
                report,
                source_name=record.source_name,
                record_id=record.id,
                extracted_correlations=record.report.get("extracted_correlations"),
                chronological_age=record.report.get("chronological_age"),
            )
            updated.created_at = record.created_at
            repository.save_lab_record(updated)
        except (RepositoryError, ValueError) as exc:
            return _error("verify_biomarker", tool_input, start_time, exc, record_id=record_id)

        _audit("verify_biomarker", tool_input, start_time, record_id=record_id)
        logger.info("Biomarker verified in record %s", record_id)
        return json.dumps({
            "status": "verified",
            "record_id": record_id,
            "biomarker": biomarkers[index].model_dump(mode="json"),
            "wellness_score": updated.wellness_score,
            "health_age": updated.health_age,
        })

    @mcp.tool
    async def complete_lab_record(
        ctx: Context,
        record_id: str,
    ) -> str:
        """Finish review of a lab record so it feeds the Vitality Score.

        Args:
            record_id: Lab record in ``pending_review``.
        """
        start_time = time.monotonic()
        tool_input = {"record_id": record_id}

        try:
            record = repository.require_lab_record(record_id)
            if record.status != RecordStatus.PENDING_REVIEW:
                raise ValueError(
                    f"Only records pending review can be completed; {record_id} is {record.status.value}"
                )
            record.status = RecordStatus.COMPLETED
            repository.save_lab_record(record)
        except (RepositoryError, ValueError) as exc:
            return _error("complete_lab_record", tool_input, start_time, exc, record_id=record_id)

        _audit("complete_lab_record", tool_input, start_time, record_id=record_id)
        return json.dumps({
            "status": "completed",
            "record_id": record_id,
            "wellness_score": record.wellness_score,
        })

    @mcp.tool
    async def biomarker_insights(
        ctx: Context,
        record_id: str = "",
        diet: str = "",
        allergies: list[str] | None = None,
        meal_plan_days: int = 0,
    ) -> str:
        """Out-of-range markers, cross-marker patterns, foods and supplements.

        These are wellness suggestions, not medical advice.

        Args:
            record_id: Lab record to analyze. Defaults to the latest completed one.
            diet: omnivore, vegetarian, vegan, keto, paleo or pescatarian.
            allergies: Food names to exclude (substring match).
            meal_plan_days: If > 0, also build a meal plan for this many days.
        """
        start_time = time.monotonic()
        diet = diet or default_diet
        tool_input = {"record_id": record_id, "diet": diet, "meal_plan_days": meal_plan_days}

        try:
            if record_id:
                record = repository.require_lab_record(record_id)
            else:
                record = repository.get_latest_completed_record()
                if record is None:
                    raise RepositoryError("No completed lab record yet. Upload and review a lab report first.")
            if meal_plan_days < 0:
                raise ValueError("meal_plan_days must be non-negative")
        except (RepositoryError, ValueError) as exc:
            return _error("biomarker_insights", tool_input, start_time, exc)

        analysis = analyze_nutrient_needs(record.biomarkers)
        foods = filter_by_diet(analysis.foods, diet, allergies or [])

        result: dict[str, Any] = {
            "status": "ok",
            "record_id": record.id,
            "wellness_score": record.wellness_score,
            "health_age": record.health_age,
            "flagged": [b.model_dump(mode="json") for b in flagged(record.biomarkers)],
            "correlations": [c.as_dict() for c in record.correlations],
            "nutrient_needs": [n.as_dict() for n in analysis.needs],
            "foods": [f.as_dict() for f in foods],
            "supplements": supplement_protocol(record.biomarkers),
            "disclaimer": "Wellness guidance only. Not a diagnosis.",
        }
        if meal_plan_days:
            result["meal_plan"] = generate_meal_plan(foods, days=meal_plan_days)

        _audit("biomarker_insights", tool_input, start_time, record_id=record.id,
               metadata={"foods": len(foods), "needs": len(analysis.needs)})
        return json.dumps(result)
