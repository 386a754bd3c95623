"""
tests/test_ledger.py — Points ledger invariants
================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from streakboard.database.models import CustomTask, LedgerReason, PointsLedgerEntry, User
from streakboard.services.errors import ValidationFailed
from streakboard.services.ledger_service import (
    add_points,
    get_points_history,
    ledger_sum,
    remove_points,
)


def _make_user(session, external_id="student-1", total=0) -> User:
    user = User(external_id=external_id, total_points=total, streak_count=0,
                longest_streak=0, streak_shields=0)
    session.add(user)
    session.flush()
    return user


def _make_task(session, user, points=10) -> CustomTask:
    task = CustomTask(user_id=user.id, title="Task", category="academic",
                      points_value=points, status="pending")
    session.add(task)
    session.flush()
    return task


class TestAddPoints:
    def test_total_tracks_ledger(self, db_session, now):
        user = _make_user(db_session)
        add_points(db_session, user, 20, LedgerReason.EARLY_SUBMISSION, now=now)
        add_points(db_session, user, 5, LedgerReason.STREAK_BONUS, now=now)
        add_points(db_session, user, 15, LedgerReason.ACHIEVEMENT, now=now)
        assert user.total_points == 40
        assert ledger_sum(db_session, user) == 40

    def test_unknown_reason_rejected(self, db_session, now):
        user = _make_user(db_session)
        with pytest.raises(ValueError):
            add_points(db_session, user, 5, "bribery", now=now)


class TestRemovePoints:
    def test_removes_only_the_source(self, db_session, now):
        user = _make_user(db_session)
        task_a = _make_task(db_session, user)
        task_b = _make_task(db_session, user)
        add_points(db_session, user, 10, LedgerReason.CUSTOM_TASK, custom_task_id=task_a.id, now=now)
        add_points(db_session, user, 30, LedgerReason.CUSTOM_TASK, custom_task_id=task_b.id, now=now)

        removed = remove_points(db_session, user, custom_task_id=task_a.id)

        assert removed == 10
        assert user.total_points == 30
        left = db_session.scalars(select(PointsLedgerEntry.custom_task_id)).all()
        assert left == [task_b.id]

    def test_floors_total_at_zero(self, db_session, now):
        user = _make_user(db_session)
        task = _make_task(db_session, user)
        add_points(db_session, user, 50, LedgerReason.CUSTOM_TASK, custom_task_id=task.id, now=now)
        user.total_points = 20  # drifted below the ledger

        remove_points(db_session, user, custom_task_id=task.id)
        assert user.total_points == 0

    @pytest.mark.parametrize("refs", [{}, {"assignment_id": 1, "custom_task_id": 2}])
    def test_requires_exactly_one_reference(self, db_session, refs):
        user = _make_user(db_session)
        with pytest.raises(ValidationFailed):
            remove_points(db_session, user, **refs)

    def test_nothing_to_remove(self, db_session):
        user = _make_user(db_session, total=12)
        assert remove_points(db_session, user, custom_task_id=999) == 0
        assert user.total_points == 12


class TestHistory:
    def test_newest_first(self, db_engine, db_session, now):
        user = _make_user(db_session)
        add_points(db_session, user, 1, LedgerReason.ON_TIME, now=now - timedelta(hours=2))
        add_points(db_session, user, 2, LedgerReason.ON_TIME, now=now)
        db_session.commit()

        history = get_points_history(db_engine, "student-1")
        assert [e["delta"] for e in history] == [2, 1]
