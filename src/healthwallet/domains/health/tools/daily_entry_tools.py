"""MCP tools for day-stamped inputs: wearable metrics and quick logs.

Both record types upsert per calendar date. Quick logs also drive the
logging streak that feeds the consistency component of the Vitality Score.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from healthwallet.domains.health.domain_logic.health_models import (
    DailyMetric,
    QuickLog,
    parse_iso_date,
)
from healthwallet.domains.health.domain_logic.streak import current_streak, streak_summary

if TYPE_CHECKING:
    from healthwallet.core.audit.logger import AuditLogger
    from healthwallet.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)

MAX_SYNC_BATCH = 90


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def register_daily_entry_tools(
    mcp: FastMCP,
    repository: HealthRepository,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register metric sync, quick log and streak tools on the MCP server."""

    def _audit(tool_name: str, tool_input: Any, start_time: float, **kwargs: Any) -> None:
        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name=tool_name,
                tool_input=tool_input,
                duration_ms=(time.monotonic() - start_time) * 1000,
                **kwargs,
            )

    @mcp.tool
    async def sync_daily_metrics(
        ctx: Context,
        metrics: list[dict[str, Any]],
        source: str = "wearable",
    ) -> str:
        """Upsert daily wearable metrics (up to 90 days per call).

        Each entry needs a ``date`` (YYYY-MM-DD) and any subset of: steps,
        sleep_hours, hrv_avg_ms, resting_heart_rate, active_energy_kcal,
        weight_kg. Omitted fields keep whatever was stored for that day.

        Args:
            metrics: List of per-day metric objects.
            source: Label for where the metrics came from.
        """
        start_time = time.monotonic()
        tool_input = {"dates": [m.get("date") for m in metrics if isinstance(m, dict)]}

        if not metrics or len(metrics) > MAX_SYNC_BATCH:
            _audit("sync_daily_metrics", tool_input, start_time,
                   status="failure", error_type="ValueError")
            return json.dumps({
                "status": "error",
                "message": f"metrics must contain between 1 and {MAX_SYNC_BATCH} entries.",
            })

        try:
            parsed = [DailyMetric.model_validate(m) for m in metrics]
        except ValueError as exc:
            _audit("sync_daily_metrics", tool_input, start_time,
                   status="failure", error_type=type(exc).__name__)
            return json.dumps({"status": "error", "message": f"Invalid metric: {exc}"})

        created = sum(1 for m in parsed if repository.upsert_daily_metric(m, source=source))
        _audit("sync_daily_metrics", tool_input, start_time,
               metadata={"total": len(parsed), "created": created})
        logger.info("Synced %d daily metrics (%d new) from %s", len(parsed), created, source)
        return json.dumps({
            "status": "synced",
            "upserted": created,
            "modified": len(parsed) - created,
            "total": len(parsed),
        })

    @mcp.tool
    async def log_quick_entry(
        ctx: Context,
        mood: int,
        energy: int,
        symptoms: list[str] | None = None,
        notes: str = "",
        entry_date: str = "",
    ) -> str:
        """Record today's mood and energy (1-5) plus optional symptoms and notes.

        Logging again on the same date replaces that day's entry.

        Args:
            mood: Mood from 1 (very low) to 5 (great).
            energy: Energy from 1 (exhausted) to 5 (energized).
            symptoms: Up to 10 short symptom labels.
            notes: Free text, max 500 characters. Stored encrypted.
            entry_date: Date of the entry (YYYY-MM-DD). Defaults to today.
        """
        start_time = time.monotonic()
        entry_date = entry_date or _today()
        tool_input = {"date": entry_date, "mood": mood, "energy": energy}

        try:
            log = QuickLog(
                date=entry_date,
                mood=mood,
                energy=energy,
                symptoms=symptoms or [],
                notes=notes or None,
            )
        except ValueError as exc:
            _audit("log_quick_entry", tool_input, start_time,
                   status="failure", error_type=type(exc).__name__)
            return json.dumps({"status": "error", "message": f"Invalid quick log: {exc}"})

        is_new = repository.upsert_quick_log(log)
        streak = current_streak(repository.get_logged_dates(until=log.date), log.date)

        _audit("log_quick_entry", tool_input, start_time, metadata={"is_new": is_new})
        logger.info("Quick log saved for %s (new=%s)", log.date, is_new)
        return json.dumps({
            "status": "saved",
            "date": log.date,
            "is_new": is_new,
            "streak": streak,
        })

    @mcp.tool
    async def log_streak(
        ctx: Context,
        as_of: str = "",
    ) -> str:
        """Current and longest quick-log streak.

        Args:
            as_of: Reference date (YYYY-MM-DD). Defaults to today.
        """
        start_time = time.monotonic()
        as_of = as_of or _today()

        try:
            reference: date = parse_iso_date(as_of)
            summary = streak_summary(repository.get_logged_dates(), reference)
        except ValueError as exc:
            _audit("log_streak", {"as_of": as_of}, start_time,
                   status="failure", error_type=type(exc).__name__)
            return json.dumps({"status": "error", "message": str(exc)})

        _audit("log_streak", {"as_of": as_of}, start_time)
        return json.dumps({"status": "ok", "as_of": reference.isoformat(), **summary})
