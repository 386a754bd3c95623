"""
tests/test_scoring.py — Completion point calculation
=====================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from streakboard.database.models import LedgerReason
from streakboard.engine.scoring import (
    PointsTable,
    apply_multiplier,
    is_multiplier_day,
    score_assignment,
    timing_points,
)


class TestTimingPoints:
    def test_no_due_date(self, now):
        assert timing_points(None, now) == (10, LedgerReason.ON_TIME)

    @pytest.mark.parametrize("lead_hours, expected", [
        (30, (20, LedgerReason.EARLY_SUBMISSION)),
        (24, (20, LedgerReason.EARLY_SUBMISSION)),
        (23, (10, LedgerReason.ON_TIME)),
        (0, (2, LedgerReason.LATE_SUBMISSION)),
        (-5, (2, LedgerReason.LATE_SUBMISSION)),
    ])
    def test_lead_time_tiers(self, now, lead_hours, expected):
        assert timing_points(now + timedelta(hours=lead_hours), now) == expected

    def test_naive_due_date_treated_as_utc(self, now):
        naive_due = (now + timedelta(hours=30)).replace(tzinfo=None)
        assert timing_points(naive_due, now)[1] == LedgerReason.EARLY_SUBMISSION

    def test_custom_table(self, now):
        table = PointsTable(early_submission=50)
        assert timing_points(now + timedelta(days=3), now, table)[0] == 50


class TestMultiplier:
    def test_matching_weekday(self, now):
        assert is_multiplier_day(now.weekday(), now)

    def test_other_weekday(self, now):
        assert not is_multiplier_day((now.weekday() + 1) % 7, now)

    def test_unset(self, now):
        assert not is_multiplier_day(None, now)

    def test_apply(self):
        assert apply_multiplier(7, True) == 14
        assert apply_multiplier(7, False) == 7


class TestScoreAssignment:
    def test_early_with_streak_bonus(self, now):
        award = score_assignment(
            due_at=now + timedelta(hours=30), submitted_at=now,
            streak_count=3, xp_multiplier_day=None, now=now,
        )
        assert award.base_points == 20
        assert award.reason == LedgerReason.EARLY_SUBMISSION
        assert award.streak_bonus == 5
        assert award.total == 25

    def test_short_streak_gets_no_bonus(self, now):
        award = score_assignment(
            due_at=None, submitted_at=now, streak_count=2, xp_multiplier_day=None, now=now,
        )
        assert award.streak_bonus == 0
        assert award.total == 10

    def test_multiplier_doubles_base_and_bonus(self, now):
        award = score_assignment(
            due_at=now + timedelta(hours=2), submitted_at=now,
            streak_count=5, xp_multiplier_day=now.weekday(), now=now,
        )
        assert award.multiplier_active
        assert award.base_points == 20
        assert award.streak_bonus == 10
