"""
tests/test_rewards.py — Milestone reward rolls
===============================================
"""

from __future__ import annotations

import random

import pytest
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from streakboard.database.models import Reward, RewardRarity, UserReward
from streakboard.services import milestone_service, task_service
from streakboard.services.errors import RewardNotFound
from streakboard.services.milestone_service import milestones_crossed, roll_rarity


class TestMilestoneMath:
    @pytest.mark.parametrize("before, after, crossed", [
        (0, 49, 0),
        (0, 50, 1),
        (49, 51, 1),
        (50, 99, 0),
        (40, 160, 3),
        (60, 40, 0),
    ])
    def test_crossings(self, before, after, crossed):
        assert milestones_crossed(before, after, 50) == crossed

    def test_zero_step(self):
        assert milestones_crossed(0, 500, 0) == 0

    @pytest.mark.parametrize("roll, rarity", [
        (0, RewardRarity.COMMON),
        (59.9, RewardRarity.COMMON),
        (60, RewardRarity.RARE),
        (89.9, RewardRarity.RARE),
        (90, RewardRarity.LEGENDARY),
    ])
    def test_rarity_bands(self, roll, rarity):
        assert roll_rarity(roll) == rarity


class TestRewardRolls:
    def _complete(self, engine, now, points, rng=None):
        task = task_service.create_task(
            engine, "student-1", title="Big project", category="academic", points_value=points,
        )
        return task_service.complete_task(engine, "student-1", task["id"], now, rng=rng)

    def test_crossing_fifty_rolls_unrevealed_reward(self, db_engine, now):
        self._complete(db_engine, now, 30)
        result = self._complete(db_engine, now, 30, rng=random.Random(5))
        assert result["reward"] is not None
        assert result["reward"]["is_revealed"] is False

        rewards = milestone_service.get_user_rewards(db_engine, "student-1")
        assert len(rewards) == 1

    def test_no_crossing_no_reward(self, db_engine, now):
        result = self._complete(db_engine, now, 40)
        assert result["reward"] is None

    def test_rarity_without_active_rewards(self, db_engine, now):
        with Session(db_engine) as session:
            session.execute(update(Reward).values(is_active=False))
            session.commit()
        result = self._complete(db_engine, now, 60)
        assert result["reward"] is None

    def test_reveal(self, db_engine, now):
        result = self._complete(db_engine, now, 55, rng=random.Random(1))
        revealed = milestone_service.reveal_reward(db_engine, "student-1", result["reward"]["id"])
        assert revealed["is_revealed"] is True
        with Session(db_engine) as session:
            assert session.scalar(select(UserReward.is_revealed)) is True

    def test_reveal_foreign_reward(self, db_engine, now):
        result = self._complete(db_engine, now, 55)
        task_service.create_task(db_engine, "student-2", title="x", category="club", points_value=1)
        with pytest.raises(RewardNotFound):
            milestone_service.reveal_reward(db_engine, "student-2", result["reward"]["id"])
