"""
streakboard.engine.clock — UTC day helpers
===========================================

Every engine operation resolves ``now`` once at its entry point and passes
it down, so the streak day, the challenge day and the ledger timestamps of
one operation always agree.  Calendar days are UTC days.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta


def resolve_now(now: datetime | None = None) -> datetime:
    """Return *now* as an aware UTC datetime, defaulting to the wall clock."""
    if now is None:
        return datetime.now(UTC)
    return ensure_utc(now)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_day(value: datetime) -> date:
    return ensure_utc(value).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` UTC bounds of *day*."""
    start = datetime.combine(day, time.min, tzinfo=UTC)
    return start, start + timedelta(days=1)


def on_day(value: datetime | None, day: date) -> bool:
    """True when *value* falls on the UTC calendar *day*."""
    if value is None:
        return False
    return utc_day(value) == day
