"""
tests/test_streaks.py — Streak state machine & shield bookkeeping
==================================================================
"""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from streakboard.database.models import StreakEvent, StreakEventKind, User
from streakboard.engine.clock import utc_day
from streakboard.engine.streaks import StreakState, advance_streak
from streakboard.services import task_service

TODAY = date(2026, 3, 11)


def _make_user(engine, external_id="student-1", **fields) -> None:
    with Session(engine) as session:
        session.add(User(
            external_id=external_id,
            display_name="Student",
            total_points=fields.pop("total_points", 0),
            streak_count=fields.pop("streak_count", 0),
            longest_streak=fields.pop("longest_streak", 0),
            streak_shields=fields.pop("streak_shields", 0),
            **fields,
        ))
        session.commit()


def _load_user(engine, external_id="student-1") -> User:
    with Session(engine, expire_on_commit=False) as session:
        return session.scalar(select(User).where(User.external_id == external_id))


def _complete_new_task(engine, now, external_id="student-1"):
    task = task_service.create_task(
        engine, external_id, title="Read chapter", category="academic", points_value=5,
    )
    return task_service.complete_task(engine, external_id, task["id"], now)


# ===========================================================================
# Pure transition function
# ===========================================================================
class TestAdvanceStreak:
    def test_first_activity_starts_at_one(self):
        t = advance_streak(StreakState(), TODAY)
        assert t.state.streak == 1
        assert t.state.longest == 1
        assert t.state.last_activity == TODAY
        assert t.changed

    def test_same_day_is_noop(self):
        state = StreakState(streak=4, longest=4, last_activity=TODAY, shields=1)
        t = advance_streak(state, TODAY)
        assert t.state == state
        assert not t.changed

    def test_consecutive_day_increments(self):
        t = advance_streak(StreakState(5, 5, TODAY - timedelta(days=1), 0), TODAY)
        assert t.state.streak == 6
        assert t.state.shields == 0
        assert not t.shield_used

    def test_gap_consumes_shield(self):
        t = advance_streak(StreakState(10, 12, TODAY - timedelta(days=3), 1), TODAY)
        assert t.state.streak == 10
        assert t.state.shields == 0
        assert t.shield_used
        assert t.state.longest == 12

    def test_gap_without_shield_resets(self):
        t = advance_streak(StreakState(10, 10, TODAY - timedelta(days=3), 0), TODAY)
        assert t.state.streak == 1
        assert t.state.longest == 10
        assert not t.shield_used

    def test_reaching_milestone_grants_shield(self):
        t = advance_streak(StreakState(6, 6, TODAY - timedelta(days=1), 0), TODAY)
        assert t.state.streak == 7
        assert t.state.shields == 1
        assert t.milestones_granted == (7,)

    def test_milestone_already_reached_grants_nothing(self):
        t = advance_streak(
            StreakState(6, 20, TODAY - timedelta(days=1), 0), TODAY, frozenset({7}),
        )
        assert t.state.shields == 0
        assert t.milestones_granted == ()

    def test_shields_are_capped(self):
        t = advance_streak(StreakState(13, 13, TODAY - timedelta(days=1), 3), TODAY)
        assert t.state.streak == 14
        assert t.state.shields == 3
        assert t.milestones_granted == ()

    def test_clock_going_backwards_resets(self):
        t = advance_streak(StreakState(5, 5, TODAY + timedelta(days=1), 2), TODAY)
        assert t.state.streak == 1
        assert t.state.shields == 2


# ===========================================================================
# Persisted through a completion
# ===========================================================================
class TestStreakThroughCompletion:
    def test_yesterday_activity_extends_streak(self, db_engine, now):
        _make_user(
            db_engine, streak_count=5, longest_streak=5,
            last_activity_date=utc_day(now) - timedelta(days=1),
        )
        result = _complete_new_task(db_engine, now)
        user = _load_user(db_engine)
        assert result["streak_count"] == 6
        assert user.streak_count == 6
        assert user.streak_shields == 0
        assert user.last_activity_date == utc_day(now)

    def test_shield_holds_streak_and_records_event(self, db_engine, now):
        _make_user(
            db_engine, streak_count=10, longest_streak=10, streak_shields=1,
            last_activity_date=utc_day(now) - timedelta(days=3),
        )
        result = _complete_new_task(db_engine, now)
        user = _load_user(db_engine)
        assert result["shield_used"] is True
        assert user.streak_count == 10
        assert user.streak_shields == 0
        with Session(db_engine) as session:
            events = session.scalars(
                select(StreakEvent).where(StreakEvent.kind == StreakEventKind.SHIELD_USED.value)
            ).all()
        assert len(events) == 1
        assert events[0].occurred_on == utc_day(now)

    def test_gap_without_shield_resets_to_one(self, db_engine, now):
        _make_user(
            db_engine, streak_count=10, longest_streak=10, streak_shields=0,
            last_activity_date=utc_day(now) - timedelta(days=3),
        )
        _complete_new_task(db_engine, now)
        user = _load_user(db_engine)
        assert user.streak_count == 1
        assert user.longest_streak == 10

    def test_second_completion_same_day_does_not_increment(self, db_engine, now):
        _make_user(db_engine, streak_count=2, longest_streak=2,
                   last_activity_date=utc_day(now) - timedelta(days=1))
        _complete_new_task(db_engine, now)
        _complete_new_task(db_engine, now + timedelta(hours=2))
        assert _load_user(db_engine).streak_count == 3

    def test_milestone_marker_written_once(self, db_engine, now):
        _make_user(db_engine, streak_count=6, longest_streak=6,
                   last_activity_date=utc_day(now) - timedelta(days=1))
        _complete_new_task(db_engine, now)
        user = _load_user(db_engine)
        assert user.streak_shields == 1
        with Session(db_engine) as session:
            milestones = session.scalars(
                select(StreakEvent.milestone).where(
                    StreakEvent.kind == StreakEventKind.SHIELD_MILESTONE.value,
                )
            ).all()
        assert milestones == [7]

    def test_uncomplete_leaves_streak(self, db_engine, now):
        _make_user(db_engine, streak_count=5, longest_streak=5,
                   last_activity_date=utc_day(now) - timedelta(days=1))
        task = task_service.create_task(
            db_engine, "student-1", title="Lab prep", category="academic", points_value=10,
        )
        task_service.complete_task(db_engine, "student-1", task["id"], now)
        task_service.uncomplete_task(db_engine, "student-1", task["id"])
        assert _load_user(db_engine).streak_count == 6
