"""MCP tool for picking a retention offer when a user wants to cancel."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from healthwallet.domains.health.domain_logic.offer_engine import (
    REASON_CATEGORIES,
    PreviousOffer,
    select_offer,
)

if TYPE_CHECKING:
    from healthwallet.core.audit.logger import AuditLogger
    from healthwallet.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)


def register_retention_tools(
    mcp: FastMCP,
    repository: HealthRepository,
    audit_logger: AuditLogger | None = None,
    *,
    cooldown_days: int = 90,
) -> None:
    """Register the retention offer tool on the MCP server."""

    @mcp.tool
    async def retention_offer(
        ctx: Context,
        reason_category: str = "other",
    ) -> str:
        """Choose an offer for a cancellation reason and remember it was shown.

        An offer type shown within the cooldown window is not repeated; another
        type is offered instead, or none when every type is cooling down.

        Args:
            reason_category: price, usage, competition, features, technical,
                temporary or other. Unknown values are treated as other.
        """
        start_time = time.monotonic()
        now = datetime.now(timezone.utc)

        previous = [
            PreviousOffer(type=o.offer_type, created_at=datetime.fromisoformat(o.created_at))
            for o in repository.get_previous_offers()
        ]
        offer = select_offer(
            reason_category if reason_category in REASON_CATEGORIES else None,
            previous,
            now=now,
            cooldown_days=cooldown_days,
        )

        if offer is not None:
            repository.record_offer(
                offer.type,
                offer.title,
                reason_category=reason_category,
                created_at=now.isoformat(),
            )

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="retention_offer",
                tool_input={"reason_category": reason_category},
                duration_ms=(time.monotonic() - start_time) * 1000,
                metadata={"offer_type": offer.type if offer else None},
            )

        if offer is None:
            logger.info("No retention offer available (all types in cooldown)")
            return json.dumps({
                "status": "no_offer",
                "message": "No offer available right now.",
            })
        return json.dumps({"status": "offer", "offer": offer.as_dict()})
