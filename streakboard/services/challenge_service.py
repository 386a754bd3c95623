"""
streakboard.services.challenge_service — Daily challenges
==========================================================

Generation
    Idempotent per user per UTC day.  When the day already holds its full
    set nothing happens; otherwise partial leftovers are deleted and
    ``min(challenges_per_day, pool size)`` challenges are drawn by roulette
    sampling, with challenges shown in the trailing week down-weighted.

Progress
    For each of today's rows not yet bonus-awarded, progress is recomputed
    from the day's raw activity.  The first transition to completed awards
    the bonus through the ledger and sets ``bonus_awarded``.  Types without
    a progress rule and rows whose pool item was deleted are skipped.
"""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from streakboard.database.engine import get_session
from streakboard.database.models import (
    Assignment,
    ChallengePoolItem,
    CustomTask,
    LedgerReason,
    PointsLedgerEntry,
    User,
    UserDailyChallenge,
)
from streakboard.database.seed import seed_challenge_pool as _seed_pool
from streakboard.engine.challenges import (
    anti_repeat_weights,
    build_day_activity,
    compute_progress,
    roulette_sample,
)
from streakboard.engine.clock import resolve_now, utc_day
from streakboard.services.ledger_service import add_points
from streakboard.services.locks import user_lock
from streakboard.services.user_service import get_or_create_user, require_user

logger = logging.getLogger(__name__)

CHALLENGES_PER_DAY = 3
ANTI_REPEAT_DAYS = 7
ANTI_REPEAT_WEIGHT = 0.2


def seed_challenge_pool(engine: Engine) -> int:
    """Insert the default challenge pool when it is empty.  Returns rows added."""
    with get_session(engine) as session:
        added = _seed_pool(session)
    if added:
        logger.info("Seeded %d daily challenges", added)
    return added


def _rows_for_day(session: Session, user: User, day: date) -> list[UserDailyChallenge]:
    return list(session.scalars(
        select(UserDailyChallenge)
        .where(UserDailyChallenge.user_id == user.id, UserDailyChallenge.challenge_date == day)
        .order_by(UserDailyChallenge.id)
    ).all())


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate_for_user(
    session: Session,
    user: User,
    today: date,
    *,
    rng: random.Random | None = None,
    per_day: int = CHALLENGES_PER_DAY,
    repeat_days: int = ANTI_REPEAT_DAYS,
    repeat_weight: float = ANTI_REPEAT_WEIGHT,
) -> list[UserDailyChallenge]:
    pool = session.scalars(select(ChallengePoolItem).order_by(ChallengePoolItem.id)).all()
    wanted = min(per_day, len(pool))
    existing = _rows_for_day(session, user, today)
    if wanted == 0 or len(existing) >= wanted:
        return existing

    if existing:
        logger.warning(
            "Discarding %d partial challenge rows for user %s on %s",
            len(existing), user.external_id, today,
        )
        session.execute(
            delete(UserDailyChallenge).where(
                UserDailyChallenge.user_id == user.id,
                UserDailyChallenge.challenge_date == today,
            )
        )

    recent = set(session.scalars(
        select(UserDailyChallenge.challenge_id).where(
            UserDailyChallenge.user_id == user.id,
            UserDailyChallenge.challenge_date >= today - timedelta(days=repeat_days),
            UserDailyChallenge.challenge_date < today,
        )
    ).all())
    weights = anti_repeat_weights([item.id for item in pool], recent, repeat_weight)
    picked = roulette_sample(pool, weights, wanted, rng)

    rows = [
        UserDailyChallenge(
            user_id=user.id,
            challenge_id=item.id,
            challenge_date=today,
            progress=0,
            completed=False,
            bonus_awarded=False,
        )
        for item in picked
    ]
    session.add_all(rows)
    session.flush()
    logger.info(
        "Generated %d challenges for user %s on %s: %s",
        len(rows), user.external_id, today, [item.id for item in picked],
    )
    return rows


def generate_daily_challenges(
    engine: Engine,
    external_id: str,
    now: datetime | None = None,
    *,
    rng: random.Random | None = None,
    per_day: int = CHALLENGES_PER_DAY,
    repeat_days: int = ANTI_REPEAT_DAYS,
    repeat_weight: float = ANTI_REPEAT_WEIGHT,
) -> list[dict]:
    """Make sure today's challenges exist and return them."""
    now = resolve_now(now)
    today = utc_day(now)
    with user_lock(external_id), get_session(engine) as session:
        user = get_or_create_user(session, external_id)
        generate_for_user(
            session, user, today,
            rng=rng, per_day=per_day,
            repeat_days=repeat_days, repeat_weight=repeat_weight,
        )
        return _describe(session, _rows_for_day(session, user, today))


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def recompute_progress(session: Session, user: User, now: datetime | None = None) -> int:
    """Recompute today's challenge progress.  Returns bonus points awarded."""
    now = resolve_now(now)
    today = utc_day(now)
    rows = [r for r in _rows_for_day(session, user, today) if not r.bonus_awarded]
    if not rows:
        return 0

    activity = build_day_activity(
        assignments=session.scalars(
            select(Assignment).where(Assignment.user_id == user.id)
        ).all(),
        ledger_entries=session.scalars(
            select(PointsLedgerEntry).where(PointsLedgerEntry.user_id == user.id)
        ).all(),
        tasks=session.scalars(
            select(CustomTask).where(CustomTask.user_id == user.id)
        ).all(),
        streak_count=user.streak_count or 0,
        today=today,
    )

    awarded = 0
    for row in rows:
        item = session.get(ChallengePoolItem, row.challenge_id)
        if item is None:
            logger.warning(
                "Skipping dangling challenge %d for user %s", row.challenge_id, user.external_id,
            )
            continue
        progress = compute_progress(item.type, activity)
        if progress is None:
            continue

        row.progress = progress
        if progress >= item.target_value:
            row.completed = True
        if row.completed and not row.bonus_awarded:
            row.bonus_awarded = True
            add_points(session, user, item.bonus_points, LedgerReason.DAILY_CHALLENGE, now=now)
            awarded += item.bonus_points
            logger.info(
                "Daily challenge %r completed by user %s (+%d)",
                item.title, user.external_id, item.bonus_points,
            )

    session.flush()
    return awarded


def update_challenge_progress(
    engine: Engine, external_id: str, now: datetime | None = None,
) -> dict:
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        awarded = recompute_progress(session, user, now)
        return {"total_bonus_awarded": awarded}


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def _describe(session: Session, rows: list[UserDailyChallenge]) -> list[dict]:
    result = []
    for row in rows:
        item = session.get(ChallengePoolItem, row.challenge_id)
        if item is None:
            continue
        result.append({
            "id": row.id,
            "date": row.challenge_date.isoformat(),
            "progress": row.progress,
            "completed": row.completed,
            "bonus_awarded": row.bonus_awarded,
            "challenge": {
                "id": item.id,
                "title": item.title,
                "description": item.description,
                "type": item.type,
                "target_value": item.target_value,
                "bonus_points": item.bonus_points,
                "difficulty": item.difficulty,
            },
        })
    return result


def get_daily_challenges(engine: Engine, external_id: str, now: datetime | None = None) -> list[dict]:
    today = utc_day(resolve_now(now))
    with get_session(engine) as session:
        user = require_user(session, external_id)
        return _describe(session, _rows_for_day(session, user, today))
