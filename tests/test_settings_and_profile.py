"""
tests/test_settings_and_profile.py — Gameplay settings, seeding & profiles
===========================================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from streakboard.constants import level_for_points
from streakboard.database.models import Achievement, Reward, Setting
from streakboard.database.seed import seed_all
from streakboard.services import assignment_service, settings_service, user_service
from streakboard.services.errors import ValidationFailed


class TestSeeding:
    def test_seed_is_idempotent(self, db_engine):
        seed_all(db_engine)
        with Session(db_engine) as session:
            assert session.scalar(select(func.count()).select_from(Achievement)) == 13
            assert session.scalar(select(func.count()).select_from(Reward)) == 12
            assert session.get(Setting, "points.early_submission") is not None


class TestSettings:
    def test_setting_changes_point_values(self, db_engine, now):
        settings_service.upsert_setting(
            db_engine, key="points.early_submission", value=35, category="points",
        )
        created = assignment_service.ingest_assignment(
            db_engine, "student-1",
            course_external_id="c-1", course_name="History",
            assignment_external_id="a-1", title="Essay",
            due_at=now + timedelta(days=2), now=now,
        )
        result = assignment_service.complete_assignment(
            db_engine, "student-1", created["assignment"]["id"], now,
        )
        assert result["points_awarded"] == 35

    def test_missing_row_falls_back_to_default(self, db_engine):
        with Session(db_engine) as session:
            session.delete(session.get(Setting, "points.on_time"))
            session.commit()
        with Session(db_engine) as session:
            assert settings_service.load_points_table(session).on_time == 10

    def test_listing(self, db_engine):
        keys = [s["key"] for s in settings_service.get_all_settings(db_engine)]
        assert "rewards.milestone_step" in keys


class TestProfile:
    def test_profile_created_on_first_visit(self, db_engine):
        profile = user_service.get_profile(db_engine, "student-1", "Ada")
        assert profile["display_name"] == "Ada"
        assert profile["total_points"] == 0
        assert profile["level"]["level"] == 1

    def test_multiplier_day(self, db_engine):
        assert user_service.set_xp_multiplier_day(db_engine, "student-1", 4)["xp_multiplier_day"] == 4
        assert user_service.set_xp_multiplier_day(db_engine, "student-1", None)["xp_multiplier_day"] is None

    @pytest.mark.parametrize("weekday", [-1, 7])
    def test_multiplier_day_range(self, db_engine, weekday):
        with pytest.raises(ValidationFailed):
            user_service.set_xp_multiplier_day(db_engine, "student-1", weekday)

    def test_level_ladder(self):
        assert level_for_points(0)["level"] == 1
        top = level_for_points(10**6)
        assert top["next_min"] is None
        assert top["progress"] == 100
