"""
streakboard.engine.achievements — Achievement Check Pipeline
=============================================================

Handler-registry implementation for achievement evaluation.  Each
:class:`AchievementKey` maps to a pure predicate that receives an
:class:`AchievementContext` snapshot of the user's aggregate statistics.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from streakboard.constants import (
    EARLY_THRESHOLD,
    NIGHT_OWL_HOURS,
    PERFECT_WEEK_WINDOW,
    SPEED_RUN_THRESHOLD,
)
from streakboard.database.models import AchievementKey, AssignmentStatus
from streakboard.engine.clock import ensure_utc

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Achievement Context — passed to every predicate
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AchievementContext:
    """Snapshot of user statistics passed to predicates.

    Parameters
    ----------
    submissions : Assignments with a submission timestamp.
    early_submissions : Submissions made 24 h or more before the due date.
    speed_runs : Submissions made 48 h or more before the due date.
    night_submissions : Submissions made 00:00–03:59 UTC.
    recent_missing : Missing assignments due within the trailing 7 days
        (or later).
    streak_count : Current streak.
    total_points : Running total, bumped by each bonus awarded in a pass.
    completed_tasks : Completed custom tasks.
    completed_challenges : Completed daily challenges, all time.
    shield_ever_used : A streak shield has been consumed at least once.
    """

    submissions: int = 0
    early_submissions: int = 0
    speed_runs: int = 0
    night_submissions: int = 0
    recent_missing: int = 0
    streak_count: int = 0
    total_points: int = 0
    completed_tasks: int = 0
    completed_challenges: int = 0
    shield_ever_used: bool = False


def build_context(
    assignments: Iterable,
    *,
    now: datetime,
    streak_count: int,
    total_points: int,
    completed_tasks: int,
    completed_challenges: int,
    shield_ever_used: bool,
) -> AchievementContext:
    """Aggregate assignment rows into an :class:`AchievementContext`.

    *assignments* only needs ``due_at``, ``submitted_at`` and ``status``
    attributes.
    """
    window_start = ensure_utc(now) - PERFECT_WEEK_WINDOW
    submissions = early = speed = night = missing = 0

    for a in assignments:
        due = ensure_utc(a.due_at) if a.due_at is not None else None
        if a.status == AssignmentStatus.MISSING and due is not None and due >= window_start:
            missing += 1
        if a.submitted_at is None:
            continue
        submitted = ensure_utc(a.submitted_at)
        submissions += 1
        if submitted.hour in NIGHT_OWL_HOURS:
            night += 1
        if due is not None:
            lead = due - submitted
            if lead >= EARLY_THRESHOLD:
                early += 1
            if lead >= SPEED_RUN_THRESHOLD:
                speed += 1

    return AchievementContext(
        submissions=submissions,
        early_submissions=early,
        speed_runs=speed,
        night_submissions=night,
        recent_missing=missing,
        streak_count=streak_count,
        total_points=total_points,
        completed_tasks=completed_tasks,
        completed_challenges=completed_challenges,
        shield_ever_used=shield_ever_used,
    )


# ---------------------------------------------------------------------------
# Predicates — pure functions ctx → bool
# ---------------------------------------------------------------------------

def _check_first_blood(ctx: AchievementContext) -> bool:
    return ctx.submissions >= 1


def _check_night_owl(ctx: AchievementContext) -> bool:
    return ctx.night_submissions >= 1


def _check_speed_runner(ctx: AchievementContext) -> bool:
    return ctx.speed_runs >= 1


def _check_perfect_week(ctx: AchievementContext) -> bool:
    """No recent missing work, and at least one submission ever."""
    return ctx.recent_missing == 0 and ctx.submissions >= 1


def _check_on_fire(ctx: AchievementContext) -> bool:
    return ctx.streak_count >= 7


def _check_unstoppable(ctx: AchievementContext) -> bool:
    return ctx.streak_count >= 14


def _check_centurion(ctx: AchievementContext) -> bool:
    return ctx.total_points >= 100


def _check_overachiever(ctx: AchievementContext) -> bool:
    return ctx.total_points >= 500


def _check_early_bird(ctx: AchievementContext) -> bool:
    return ctx.early_submissions >= 5


def _check_grinder(ctx: AchievementContext) -> bool:
    return ctx.completed_tasks >= 10


def _check_challenge_accepted(ctx: AchievementContext) -> bool:
    return ctx.completed_challenges >= 5


def _check_legend(ctx: AchievementContext) -> bool:
    return ctx.total_points >= 1000


def _check_shield_bearer(ctx: AchievementContext) -> bool:
    return ctx.shield_ever_used


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------
ACHIEVEMENT_HANDLERS: dict[str, Callable[[AchievementContext], bool]] = {
    AchievementKey.FIRST_BLOOD: _check_first_blood,
    AchievementKey.NIGHT_OWL: _check_night_owl,
    AchievementKey.SPEED_RUNNER: _check_speed_runner,
    AchievementKey.PERFECT_WEEK: _check_perfect_week,
    AchievementKey.ON_FIRE: _check_on_fire,
    AchievementKey.UNSTOPPABLE: _check_unstoppable,
    AchievementKey.CENTURION: _check_centurion,
    AchievementKey.OVERACHIEVER: _check_overachiever,
    AchievementKey.EARLY_BIRD: _check_early_bird,
    AchievementKey.GRINDER: _check_grinder,
    AchievementKey.CHALLENGE_ACCEPTED: _check_challenge_accepted,
    AchievementKey.LEGEND: _check_legend,
    AchievementKey.SHIELD_BEARER: _check_shield_bearer,
}


# ---------------------------------------------------------------------------
# Main check function
# ---------------------------------------------------------------------------
def evaluate_unlocks(
    ctx: AchievementContext,
    catalog: Sequence[tuple[str, int]],
    already_unlocked: set[str],
) -> list[str]:
    """Return the keys newly unlocked by *ctx*, in catalog order.

    Parameters
    ----------
    ctx : Statistics snapshot taken at the start of the pass.
    catalog : ``(key, bonus_points)`` pairs in evaluation order.
    already_unlocked : Keys the user already holds.

    Each unlock adds its bonus to ``ctx.total_points`` before the next
    predicate runs, so one pass can cascade (a bonus that crosses 100
    points unlocks ``centurion``).  The catalog is re-walked until a walk
    unlocks nothing, so a bonus late in the catalog still reaches the
    point thresholds listed before it.
    """
    held = set(already_unlocked)
    newly: list[str] = []

    progressed = True
    while progressed:
        progressed = False
        for key, bonus in catalog:
            if key in held:
                continue
            handler = ACHIEVEMENT_HANDLERS.get(key)
            if handler is None:
                continue
            if handler(ctx):
                held.add(key)
                newly.append(key)
                ctx = replace(ctx, total_points=ctx.total_points + bonus)
                progressed = True

    for key, _bonus in catalog:
        if key not in ACHIEVEMENT_HANDLERS:
            logger.warning("No predicate registered for achievement %r", key)

    return newly
