"""MCP tool for the daily Vitality Score and its recent trend.

Nothing here is cached: every call re-reads the raw records and recomputes,
so a late metric sync or a newly completed lab record is reflected at once.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from healthwallet.domains.health.domain_logic.health_models import parse_iso_date
from healthwallet.domains.health.domain_logic.streak import current_streak
from healthwallet.domains.health.domain_logic.vitality import (
    compute_vitality,
    compute_vitality_trend,
)

if TYPE_CHECKING:
    from healthwallet.core.audit.logger import AuditLogger
    from healthwallet.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)

MAX_TREND_DAYS = 90


def register_vitality_tools(
    mcp: FastMCP,
    repository: HealthRepository,
    audit_logger: AuditLogger | None = None,
    *,
    trend_days: int = 7,
    streak_lookback_days: int = 30,
) -> None:
    """Register the vitality score tool on the MCP server."""

    @mcp.tool
    async def vitality_score(
        ctx: Context,
        score_date: str = "",
        days: int | None = None,
    ) -> str:
        """Your 0-100 Vitality Score for a day, with breakdown and trend.

        Blends sleep, recovery (HRV / resting heart rate), activity, latest
        completed blood work and logging consistency. Components without data
        are left out and their weight is shared among the rest.

        Args:
            score_date: Day to score (YYYY-MM-DD). Defaults to today.
            days: Trend window in days before ``score_date`` (default from settings).
        """
        start_time = time.monotonic()
        score_date = score_date or datetime.now(timezone.utc).date().isoformat()
        window = trend_days if days is None else days
        tool_input = {"date": score_date, "days": window}

        try:
            if not 0 <= window <= MAX_TREND_DAYS:
                raise ValueError(f"days must be between 0 and {MAX_TREND_DAYS}")
            day = parse_iso_date(score_date)
            window_start = day - timedelta(days=window)

            metrics = repository.get_daily_metrics(
                since=window_start.isoformat(), until=day.isoformat()
            )
            latest = repository.get_latest_completed_record()
            wellness = latest.wellness_score if latest is not None else None
            # Enough history for the streak of the oldest trend day.
            logged_dates = repository.get_logged_dates(
                since=(window_start - timedelta(days=streak_lookback_days)).isoformat(),
                until=day.isoformat(),
            )

            today = compute_vitality(
                metrics.get(day.isoformat()),
                wellness,
                current_streak(logged_dates, day),
            )
            trend = compute_vitality_trend(metrics, wellness, logged_dates, day, days=window)
        except ValueError as exc:
            if audit_logger is not None:
                audit_logger.log_tool_call(
                    tool_name="vitality_score",
                    tool_input=tool_input,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            return json.dumps({"status": "error", "message": str(exc)})

        result: dict[str, Any] = {
            "status": "ok",
            "date": day.isoformat(),
            **today.as_dict(),
            "clinical_record_id": latest.id if latest is not None else None,
            "trend": [p.as_dict() for p in trend],
        }

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="vitality_score",
                tool_input=tool_input,
                duration_ms=(time.monotonic() - start_time) * 1000,
                metadata={"available_components": today.available_components},
            )
        return json.dumps(result)
