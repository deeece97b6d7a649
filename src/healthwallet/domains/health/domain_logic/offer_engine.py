"""Retention offer selection: churn reason -> offer, with a cooldown filter.

Each reason category maps to one default offer. If an offer of the same type
was shown inside the cooldown window, the other offer types are scanned in
table order and the first one not in cooldown wins. The scan is bounded by
the table size, so when every type is in cooldown the result is None.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_DAYS = 90
FALLBACK_CATEGORY = "other"

REASON_CATEGORIES = (
    "price",
    "usage",
    "competition",
    "features",
    "technical",
    "temporary",
    "other",
)


@dataclass(frozen=True)
class RetentionOffer:
    type: str  # discount, pause, downgrade, extension
    title: str
    description: str
    details: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class PreviousOffer(BaseModel):
    """An offer already shown to the user."""

    model_config = ConfigDict(frozen=True)

    type: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps from storage are UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# Insertion order is the fallback scan order.
OFFER_MAP: dict[str, RetentionOffer] = {
    "price": RetentionOffer(
        type="discount",
        title="50% Off for 3 Months",
        description="We'd love to keep you! Enjoy HealthWallet Pro at half price for the next 3 months.",
        details={"discount_percent": 50, "duration_months": 3},
    ),
    "usage": RetentionOffer(
        type="extension",
        title="30 Days Free",
        description="Give us another chance! Here's 30 extra days to explore all Pro features.",
        details={"extension_days": 30},
    ),
    "temporary": RetentionOffer(
        type="pause",
        title="Pause Your Subscription",
        description="No worries! Pause your subscription for up to 3 months. We'll be here when you're ready.",
        details={"pause_months": 3},
    ),
    "features": RetentionOffer(
        type="extension",
        title="30 Days Free + Feature Request",
        description="Tell us what you need! Get 30 free days while we work on improvements.",
        details={"extension_days": 30},
    ),
    "competition": RetentionOffer(
        type="discount",
        title="30% Off for 6 Months",
        description="Stay with us at a lower price. 30% off for the next 6 months.",
        details={"discount_percent": 30, "duration_months": 6},
    ),
    "technical": RetentionOffer(
        type="extension",
        title="30 Days Free While We Fix It",
        description="We're sorry for the trouble. Here's 30 free days while our team addresses the issue.",
        details={"extension_days": 30},
    ),
    "other": RetentionOffer(
        type="discount",
        title="25% Off for 3 Months",
        description="We'd hate to see you go. How about 25% off for the next 3 months?",
        details={"discount_percent": 25, "duration_months": 3},
    ),
}


def _types_in_cooldown(
    previous_offers: Iterable[PreviousOffer],
    now: datetime,
    cooldown_days: int,
) -> set[str]:
    window = timedelta(days=cooldown_days)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return {
        prev.type for prev in previous_offers
        if now - prev.created_at < window
    }


def select_offer(
    reason_category: str | None,
    previous_offers: Iterable[PreviousOffer],
    *,
    now: datetime,
    cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
    offers: dict[str, RetentionOffer] = OFFER_MAP,
) -> RetentionOffer | None:
    """Pick the retention offer for a cancellation reason.

    Args:
        reason_category: Churn reason; None or unknown falls back to "other".
        previous_offers: Offers already shown to this user.
        now: Reference time for the cooldown window.
        cooldown_days: An offer type shown less than this many days ago is
            not offered again.

    Returns:
        The selected offer, or None when every offer type is in cooldown.
    """
    if cooldown_days < 0:
        raise ValueError(f"cooldown_days must be non-negative, got {cooldown_days}")

    category = reason_category or FALLBACK_CATEGORY
    offer = offers.get(category) or offers[FALLBACK_CATEGORY]
    cooling = _types_in_cooldown(previous_offers, now, cooldown_days)

    if offer.type not in cooling:
        return offer

    for candidate in offers.values():
        if candidate.type != offer.type and candidate.type not in cooling:
            logger.debug(
                "Offer type %s in cooldown, falling back to %s",
                offer.type, candidate.type,
            )
            return candidate

    logger.debug("All offer types in cooldown for category %s", category)
    return None


def get_offer_configs() -> dict[str, RetentionOffer]:
    """A copy of the offer table, safe for callers to mutate."""
    return copy.deepcopy(OFFER_MAP)
