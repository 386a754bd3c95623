"""
streakboard.services.streak_service — Streak persistence
=========================================================

Loads a user's streak state, runs the pure state machine in
:mod:`streakboard.engine.streaks` and writes the result back together
with ``streak_events`` rows for consumed shields and milestone grants.

Runs inside the caller's session: a completion's ledger write and its
streak update commit together.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from streakboard.database.models import StreakEvent, StreakEventKind, User
from streakboard.engine.clock import resolve_now, utc_day
from streakboard.engine.streaks import StreakState, StreakTransition, advance_streak

logger = logging.getLogger(__name__)


def reached_milestones(session: Session, user: User) -> frozenset[int]:
    rows = session.scalars(
        select(StreakEvent.milestone).where(
            StreakEvent.user_id == user.id,
            StreakEvent.kind == StreakEventKind.SHIELD_MILESTONE.value,
        )
    ).all()
    return frozenset(m for m in rows if m is not None)


def shield_ever_used(session: Session, user: User) -> bool:
    return session.scalar(
        select(StreakEvent.id).where(
            StreakEvent.user_id == user.id,
            StreakEvent.kind == StreakEventKind.SHIELD_USED.value,
        ).limit(1)
    ) is not None


def update_streak(session: Session, user: User, now: datetime | None = None) -> StreakTransition:
    """Apply an activity at *now* to *user*'s streak.

    Calling it again on the same UTC day is a no-op.
    """
    now = resolve_now(now)
    today = utc_day(now)
    state = StreakState(
        streak=user.streak_count or 0,
        longest=user.longest_streak or 0,
        last_activity=user.last_activity_date,
        shields=user.streak_shields or 0,
    )
    transition = advance_streak(state, today, reached_milestones(session, user))
    if not transition.changed:
        return transition

    new = transition.state
    user.streak_count = new.streak
    user.longest_streak = new.longest
    user.last_activity_date = new.last_activity
    user.streak_shields = new.shields

    if transition.shield_used:
        session.add(StreakEvent(
            user_id=user.id,
            kind=StreakEventKind.SHIELD_USED.value,
            occurred_on=today,
            created_at=now,
        ))
        logger.info(
            "Shield consumed for user %s; streak held at %d (%d left)",
            user.external_id, new.streak, new.shields,
        )
    for milestone in transition.milestones_granted:
        session.add(StreakEvent(
            user_id=user.id,
            kind=StreakEventKind.SHIELD_MILESTONE.value,
            milestone=milestone,
            occurred_on=today,
            created_at=now,
        ))
        logger.info(
            "Streak milestone %d reached by user %s; shield granted (%d held)",
            milestone, user.external_id, new.shields,
        )

    session.flush()
    return transition
