"""
streakboard.engine.scoring — Completion Point Calculation
==========================================================

Pure calculation of how many points an assignment or custom-task
completion is worth.  No database I/O; point values come in through a
:class:`PointsTable` built from the ``settings`` table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from streakboard.constants import EARLY_THRESHOLD, STREAK_BONUS_MIN_STREAK
from streakboard.database.models import LedgerReason
from streakboard.engine.clock import ensure_utc


@dataclass(frozen=True, slots=True)
class PointsTable:
    """Tunable point values for assignment completions."""

    no_due_date: int = 10
    early_submission: int = 20
    on_time: int = 10
    late_submission: int = 2
    streak_bonus: int = 5


@dataclass(frozen=True, slots=True)
class CompletionAward:
    """Ledger deltas produced by one assignment completion.

    ``streak_bonus`` is 0 when the user is not on a qualifying streak.
    Both values already include the XP multiplier.
    """

    base_points: int
    reason: LedgerReason
    streak_bonus: int = 0
    multiplier_active: bool = False

    @property
    def total(self) -> int:
        return self.base_points + self.streak_bonus


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def timing_points(
    due_at: datetime | None,
    submitted_at: datetime,
    table: PointsTable = PointsTable(),
) -> tuple[int, LedgerReason]:
    """Base points and reason for a submission at *submitted_at*.

    * no due date → ``no_due_date`` points tagged ``on_time``
    * 24 h or more before due → ``early_submission``
    * before due → ``on_time``
    * at or after due → ``late_submission``
    """
    if due_at is None:
        return table.no_due_date, LedgerReason.ON_TIME
    lead = ensure_utc(due_at) - ensure_utc(submitted_at)
    if lead >= EARLY_THRESHOLD:
        return table.early_submission, LedgerReason.EARLY_SUBMISSION
    if lead.total_seconds() > 0:
        return table.on_time, LedgerReason.ON_TIME
    return table.late_submission, LedgerReason.LATE_SUBMISSION


def is_multiplier_day(xp_multiplier_day: int | None, now: datetime) -> bool:
    """True when *now* falls on the user's chosen double-points weekday."""
    if xp_multiplier_day is None:
        return False
    return ensure_utc(now).weekday() == xp_multiplier_day


def apply_multiplier(points: int, active: bool) -> int:
    return points * 2 if active else points


def score_assignment(
    *,
    due_at: datetime | None,
    submitted_at: datetime,
    streak_count: int,
    xp_multiplier_day: int | None,
    now: datetime,
    table: PointsTable = PointsTable(),
) -> CompletionAward:
    """Compute the award for an assignment completion.

    *streak_count* is the user's streak after this completion has been
    applied to it.
    """
    base, reason = timing_points(due_at, submitted_at, table)
    bonus = table.streak_bonus if streak_count >= STREAK_BONUS_MIN_STREAK else 0
    doubled = is_multiplier_day(xp_multiplier_day, now)
    return CompletionAward(
        base_points=apply_multiplier(base, doubled),
        reason=reason,
        streak_bonus=apply_multiplier(bonus, doubled),
        multiplier_active=doubled,
    )
