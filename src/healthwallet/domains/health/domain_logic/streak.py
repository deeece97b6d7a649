"""Logging streak calculation over a set of ``YYYY-MM-DD`` date strings."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from healthwallet.domains.health.domain_logic.health_models import parse_iso_date

_ONE_DAY = timedelta(days=1)


def _parse_all(logged_dates: Iterable[str]) -> set[date]:
    # Validate everything up front so a bad entry can never be skipped
    # silently by an early stop in the walk below.
    return {parse_iso_date(d) for d in logged_dates}


def current_streak(logged_dates: Iterable[str], from_date: date | str) -> int:
    """Consecutive logged days ending at ``from_date`` (0 if it is a gap).

    Raises:
        InvalidDateError: If any date string (or ``from_date``) is malformed.
    """
    days = _parse_all(logged_dates)
    cursor = parse_iso_date(from_date)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= _ONE_DAY
    return streak


def longest_streak(logged_dates: Iterable[str]) -> int:
    """Longest run of consecutive calendar days; 0 for an empty set."""
    days = sorted(_parse_all(logged_dates))
    if not days:
        return 0

    longest = run = 1
    for prev, curr in zip(days, days[1:]):
        if curr - prev == _ONE_DAY:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def streak_summary(logged_dates: Iterable[str], today: date | str) -> dict[str, int]:
    """Current and longest streak in one pass over the input."""
    dates = list(logged_dates)
    return {
        "current_streak": current_streak(dates, today),
        "longest_streak": longest_streak(dates),
    }
