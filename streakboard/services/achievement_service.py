"""
streakboard.services.achievement_service — Achievement unlocks
===============================================================

Recomputes a user's statistics from raw rows (assignments, tasks,
challenge history, streak events), runs the predicate registry in
:mod:`streakboard.engine.achievements` and persists each new unlock with
its bonus ledger entry.

Unlocks are never revoked; the ``(user_id, achievement_id)`` primary key
backs that up at the database level.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from streakboard.database.engine import get_session
from streakboard.database.models import (
    Achievement,
    Assignment,
    CustomTask,
    LedgerReason,
    TaskStatus,
    User,
    UserAchievement,
    UserDailyChallenge,
)
from streakboard.engine.achievements import AchievementContext, build_context, evaluate_unlocks
from streakboard.engine.clock import resolve_now
from streakboard.services.ledger_service import add_points
from streakboard.services.locks import user_lock
from streakboard.services.streak_service import shield_ever_used
from streakboard.services.user_service import require_user

logger = logging.getLogger(__name__)


def gather_context(session: Session, user: User, now: datetime) -> AchievementContext:
    """Full scan of the user's raw state into an :class:`AchievementContext`."""
    assignments = session.scalars(
        select(Assignment).where(Assignment.user_id == user.id)
    ).all()
    completed_tasks = session.scalar(
        select(func.count()).select_from(CustomTask).where(
            CustomTask.user_id == user.id,
            CustomTask.status == TaskStatus.COMPLETED.value,
        )
    ) or 0
    completed_challenges = session.scalar(
        select(func.count()).select_from(UserDailyChallenge).where(
            UserDailyChallenge.user_id == user.id,
            UserDailyChallenge.completed.is_(True),
        )
    ) or 0
    return build_context(
        assignments,
        now=now,
        streak_count=user.streak_count or 0,
        total_points=user.total_points or 0,
        completed_tasks=completed_tasks,
        completed_challenges=completed_challenges,
        shield_ever_used=shield_ever_used(session, user),
    )


def achievement_to_dict(ach: Achievement) -> dict:
    return {
        "key": ach.key,
        "name": ach.name,
        "description": ach.description,
        "icon": ach.icon,
        "color": ach.color,
        "bonus_points": ach.bonus_points,
    }


def check_and_award(session: Session, user: User, now: datetime | None = None) -> list[dict]:
    """Unlock every achievement whose predicate now holds.

    Returns the newly unlocked achievements.  Safe to call repeatedly.
    """
    now = resolve_now(now)
    catalog = session.scalars(select(Achievement).order_by(Achievement.id)).all()
    by_key = {a.key: a for a in catalog}
    held_ids = set(session.scalars(
        select(UserAchievement.achievement_id).where(UserAchievement.user_id == user.id)
    ).all())
    held_keys = {a.key for a in catalog if a.id in held_ids}

    ctx = gather_context(session, user, now)
    newly = evaluate_unlocks(ctx, [(a.key, a.bonus_points) for a in catalog], held_keys)

    unlocked: list[dict] = []
    for key in newly:
        ach = by_key[key]
        session.add(UserAchievement(
            user_id=user.id,
            achievement_id=ach.id,
            unlocked_at=now,
            seen=False,
        ))
        if ach.bonus_points:
            add_points(session, user, ach.bonus_points, LedgerReason.ACHIEVEMENT, now=now)
        unlocked.append(achievement_to_dict(ach))
        logger.info(
            "Achievement unlocked: %s (+%d) for user %s",
            ach.key, ach.bonus_points, user.external_id,
        )

    session.flush()
    return unlocked


def check_achievements(engine: Engine, external_id: str, now: datetime | None = None) -> list[dict]:
    """Locked, transactional entry point used by the recompute queue."""
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        return check_and_award(session, user, now)


# ---------------------------------------------------------------------------
# Reads / seen flags
# ---------------------------------------------------------------------------

def get_unseen_achievements(engine: Engine, external_id: str) -> list[dict]:
    with get_session(engine) as session:
        user = require_user(session, external_id)
        rows = session.execute(
            select(UserAchievement, Achievement)
            .join(Achievement, Achievement.id == UserAchievement.achievement_id)
            .where(UserAchievement.user_id == user.id, UserAchievement.seen.is_(False))
            .order_by(UserAchievement.unlocked_at)
        ).all()
        return [
            {
                "unlocked_at": ua.unlocked_at.isoformat() if ua.unlocked_at else None,
                "achievement": achievement_to_dict(ach),
            }
            for ua, ach in rows
        ]


def mark_achievements_seen(engine: Engine, external_id: str) -> int:
    """Flip every unseen unlock to seen.  Returns how many changed."""
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        unseen = session.scalars(
            select(UserAchievement).where(
                UserAchievement.user_id == user.id, UserAchievement.seen.is_(False),
            )
        ).all()
        for ua in unseen:
            ua.seen = True
        return len(unseen)


def get_user_achievements(engine: Engine, external_id: str) -> list[dict]:
    """The full catalog, each entry flagged with the user's unlock state."""
    with get_session(engine) as session:
        user = require_user(session, external_id)
        unlocked = {
            ua.achievement_id: ua
            for ua in session.scalars(
                select(UserAchievement).where(UserAchievement.user_id == user.id)
            ).all()
        }
        result = []
        for ach in session.scalars(select(Achievement).order_by(Achievement.id)).all():
            ua = unlocked.get(ach.id)
            entry = achievement_to_dict(ach)
            entry["unlocked"] = ua is not None
            entry["unlocked_at"] = (
                ua.unlocked_at.isoformat() if ua is not None and ua.unlocked_at else None
            )
            result.append(entry)
        return result
