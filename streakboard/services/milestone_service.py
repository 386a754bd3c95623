"""
streakboard.services.milestone_service — Milestone reward rolls
================================================================

Every time a completion pushes a user's total across a multiple of
``rewards.milestone_step`` (50 by default), a reward is rolled:

* rarity roll 0–100: below ``common_chance`` → common, below
  ``common_chance + rare_chance`` → rare, otherwise legendary;
* one active reward of that rarity is picked uniformly;
* the :class:`UserReward` starts unrevealed until the user opens it.

A rarity with no active rewards yields nothing.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from streakboard.database.engine import get_session
from streakboard.database.models import Reward, RewardRarity, User, UserReward
from streakboard.engine.clock import resolve_now
from streakboard.services.errors import RewardNotFound
from streakboard.services.locks import user_lock
from streakboard.services.settings_service import get_int_setting
from streakboard.services.user_service import require_user

logger = logging.getLogger(__name__)


def milestones_crossed(before: int, after: int, step: int) -> int:
    """Number of *step* multiples crossed going from *before* to *after*."""
    if step <= 0 or after <= before:
        return 0
    return max(0, after // step - max(before, 0) // step)


def roll_rarity(roll: float, common_chance: int = 60, rare_chance: int = 30) -> RewardRarity:
    if roll < common_chance:
        return RewardRarity.COMMON
    if roll < common_chance + rare_chance:
        return RewardRarity.RARE
    return RewardRarity.LEGENDARY


def roll_milestone_reward(
    session: Session,
    user: User,
    points_before: int,
    points_after: int,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> UserReward | None:
    """Roll one reward if a milestone was crossed.  Returns the new row."""
    step = get_int_setting(session, "rewards.milestone_step")
    if not milestones_crossed(points_before, points_after, step):
        return None

    rng = rng or random.Random()
    rarity = roll_rarity(
        rng.random() * 100,
        get_int_setting(session, "rewards.common_chance"),
        get_int_setting(session, "rewards.rare_chance"),
    )
    candidates = session.scalars(
        select(Reward)
        .where(Reward.rarity == rarity.value, Reward.is_active.is_(True))
        .order_by(Reward.id)
    ).all()
    if not candidates:
        logger.warning("No active %s rewards to hand out", rarity.value)
        return None

    reward = rng.choice(candidates)
    user_reward = UserReward(
        user_id=user.id,
        reward_id=reward.id,
        is_revealed=False,
        earned_at=resolve_now(now),
    )
    session.add(user_reward)
    session.flush()
    logger.info(
        "User %s crossed a %d-point milestone → %s reward %r",
        user.external_id, step, rarity.value, reward.name,
    )
    return user_reward


def user_reward_to_dict(ur: UserReward) -> dict:
    return {
        "id": ur.id,
        "is_revealed": ur.is_revealed,
        "earned_at": ur.earned_at.isoformat() if ur.earned_at else None,
        "reward": {
            "id": ur.reward.id,
            "name": ur.reward.name,
            "description": ur.reward.description,
            "rarity": ur.reward.rarity,
            "type": ur.reward.type,
        },
    }


def get_user_rewards(engine: Engine, external_id: str) -> list[dict]:
    with get_session(engine) as session:
        user = require_user(session, external_id)
        rows = session.scalars(
            select(UserReward)
            .where(UserReward.user_id == user.id)
            .order_by(UserReward.earned_at.desc(), UserReward.id.desc())
        ).all()
        return [user_reward_to_dict(ur) for ur in rows]


def reveal_reward(engine: Engine, external_id: str, user_reward_id: int) -> dict:
    """Mark one of the user's rewards as revealed."""
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        ur = session.get(UserReward, user_reward_id)
        if ur is None or ur.user_id != user.id:
            raise RewardNotFound()
        ur.is_revealed = True
        return user_reward_to_dict(ur)
