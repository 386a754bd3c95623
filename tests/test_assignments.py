"""
tests/test_assignments.py — Assignment completion, sync ingest & urgent panel
==============================================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from streakboard.database.models import PointsLedgerEntry, User
from streakboard.engine.clock import utc_day
from streakboard.services import assignment_service, task_service
from streakboard.services.errors import AlreadyCompleted, NotCompleted, NotOwner, ValidationFailed


def _make_user(engine, external_id="student-1", **fields) -> None:
    with Session(engine) as session:
        session.add(User(
            external_id=external_id,
            total_points=fields.pop("total_points", 0),
            streak_count=fields.pop("streak_count", 0),
            longest_streak=fields.pop("longest_streak", 0),
            streak_shields=0,
            **fields,
        ))
        session.commit()


def _ingest(engine, now, external_id="student-1", ext="a-1", **kw) -> dict:
    return assignment_service.ingest_assignment(
        engine, external_id,
        course_external_id=kw.pop("course", "c-1"),
        course_name="Linear Algebra",
        course_code="MATH 221",
        assignment_external_id=ext,
        title=kw.pop("title", "Problem set"),
        now=now,
        **kw,
    )


def _ledger(engine, external_id="student-1") -> list[tuple[int, str]]:
    with Session(engine) as session:
        user = session.scalar(select(User).where(User.external_id == external_id))
        rows = session.scalars(
            select(PointsLedgerEntry)
            .where(PointsLedgerEntry.user_id == user.id)
            .order_by(PointsLedgerEntry.id)
        ).all()
        return [(r.delta, r.reason) for r in rows]


def _total(engine, external_id="student-1") -> int:
    with Session(engine) as session:
        return session.scalar(select(User.total_points).where(User.external_id == external_id))


# ===========================================================================
# Manual completion
# ===========================================================================
class TestCompleteAssignment:
    def test_early_submission_with_streak_bonus(self, db_engine, now):
        """Due in 30 h, streak 3 → +20 early and +5 streak bonus."""
        _make_user(db_engine, streak_count=3, longest_streak=3,
                   last_activity_date=utc_day(now) - timedelta(days=1))
        created = _ingest(db_engine, now, due_at=now + timedelta(hours=30))
        before = _total(db_engine)

        result = assignment_service.complete_assignment(
            db_engine, "student-1", created["assignment"]["id"], now,
        )

        assert _ledger(db_engine) == [(20, "early_submission"), (5, "streak_bonus")]
        assert _total(db_engine) - before == 25
        assert result["points_awarded"] == 25
        assert result["streak_count"] == 4
        assert result["assignment"]["manually_completed"] is True

    def test_third_consecutive_day_earns_streak_bonus(self, db_engine, now):
        _make_user(db_engine, streak_count=2, longest_streak=2,
                   last_activity_date=utc_day(now) - timedelta(days=1))
        created = _ingest(db_engine, now, due_at=now + timedelta(hours=30))

        result = assignment_service.complete_assignment(
            db_engine, "student-1", created["assignment"]["id"], now,
        )

        assert result["streak_count"] == 3
        assert result["points_awarded"] == 25
        assert _ledger(db_engine) == [(20, "early_submission"), (5, "streak_bonus")]

    def test_reset_streak_gets_no_bonus(self, db_engine, now):
        _make_user(db_engine, streak_count=5, longest_streak=5,
                   last_activity_date=utc_day(now) - timedelta(days=5))
        created = _ingest(db_engine, now, due_at=now + timedelta(hours=30))

        result = assignment_service.complete_assignment(
            db_engine, "student-1", created["assignment"]["id"], now,
        )

        assert result["streak_count"] == 1
        assert result["points_awarded"] == 20
        assert _ledger(db_engine) == [(20, "early_submission")]

    def test_late_submission(self, db_engine, now):
        created = _ingest(db_engine, now, due_at=now - timedelta(hours=1))
        assignment_service.complete_assignment(db_engine, "student-1", created["assignment"]["id"], now)
        assert _ledger(db_engine) == [(2, "late_submission")]

    def test_twice_raises(self, db_engine, now):
        created = _ingest(db_engine, now)
        aid = created["assignment"]["id"]
        assignment_service.complete_assignment(db_engine, "student-1", aid, now)
        with pytest.raises(AlreadyCompleted):
            assignment_service.complete_assignment(db_engine, "student-1", aid, now)
        assert len(_ledger(db_engine)) == 1

    def test_other_users_assignment(self, db_engine, now):
        created = _ingest(db_engine, now)
        _make_user(db_engine, "student-2")
        with pytest.raises(NotOwner):
            assignment_service.complete_assignment(
                db_engine, "student-2", created["assignment"]["id"], now,
            )

    def test_multiplier_day_doubles(self, db_engine, now):
        _make_user(db_engine, xp_multiplier_day=now.weekday())
        created = _ingest(db_engine, now)
        result = assignment_service.complete_assignment(
            db_engine, "student-1", created["assignment"]["id"], now,
        )
        assert result["multiplier_active"] is True
        assert _ledger(db_engine) == [(20, "on_time")]


class TestUncompleteAssignment:
    def test_round_trip_restores_total(self, db_engine, now):
        _make_user(db_engine, total_points=37)
        created = _ingest(db_engine, now, due_at=now + timedelta(days=3))
        aid = created["assignment"]["id"]
        assignment_service.complete_assignment(db_engine, "student-1", aid, now)

        result = assignment_service.uncomplete_assignment(db_engine, "student-1", aid)

        assert result["points_removed"] == 20
        assert _total(db_engine) == 37
        assert _ledger(db_engine) == []

    def test_synced_submission_cannot_be_unticked(self, db_engine, now):
        _ingest(db_engine, now)
        synced = _ingest(db_engine, now, status="submitted", submitted_at=now)
        with pytest.raises(NotCompleted):
            assignment_service.uncomplete_assignment(
                db_engine, "student-1", synced["assignment"]["id"],
            )


# ===========================================================================
# Sync ingest
# ===========================================================================
class TestIngestAssignment:
    def test_new_pending_row(self, db_engine, now):
        result = _ingest(db_engine, now, due_at=now + timedelta(days=2))
        assert result["created"] is True
        assert result["credit"] is None
        assert result["assignment"]["course"]["code"] == "MATH 221"
        assert result["assignment"]["status"] == "pending"

    def test_pending_to_submitted_credits_once(self, db_engine, now):
        _ingest(db_engine, now, due_at=now + timedelta(days=2))
        first = _ingest(db_engine, now, status="submitted", submitted_at=now,
                        due_at=now + timedelta(days=2))
        again = _ingest(db_engine, now, status="submitted", submitted_at=now,
                        due_at=now + timedelta(days=2))

        assert first["credit"]["points_awarded"] == 20
        assert again["credit"] is None
        assert _ledger(db_engine) == [(20, "early_submission")]

    def test_synced_credit_uses_updated_streak(self, db_engine, now):
        _make_user(db_engine, streak_count=2, longest_streak=2,
                   last_activity_date=utc_day(now) - timedelta(days=1))
        _ingest(db_engine, now, due_at=now + timedelta(days=2))
        result = _ingest(db_engine, now, status="submitted", submitted_at=now,
                         due_at=now + timedelta(days=2))
        assert result["credit"]["streak_count"] == 3
        assert result["credit"]["points_awarded"] == 25

    def test_first_seen_as_submitted_is_not_credited(self, db_engine, now):
        result = _ingest(db_engine, now, status="submitted", submitted_at=now)
        assert result["created"] is True
        assert result["credit"] is None
        assert _ledger(db_engine) == []

    def test_submitted_is_never_downgraded(self, db_engine, now):
        _ingest(db_engine, now)
        _ingest(db_engine, now, status="submitted", submitted_at=now)
        result = _ingest(db_engine, now, status="pending")
        assert result["assignment"]["status"] == "submitted"

    def test_credit_timed_by_upstream_submission(self, db_engine, now):
        due = now - timedelta(days=1)
        _ingest(db_engine, now - timedelta(days=3), due_at=due)
        result = _ingest(db_engine, now, status="submitted",
                         submitted_at=due - timedelta(days=2), due_at=due)
        assert result["credit"]["reason"] == "early_submission"

    def test_unknown_status(self, db_engine, now):
        with pytest.raises(ValidationFailed):
            _ingest(db_engine, now, status="graded-ish")

    def test_course_renamed_on_push(self, db_engine, now):
        _ingest(db_engine, now)
        result = assignment_service.ingest_assignment(
            db_engine, "student-1",
            course_external_id="c-1", course_name="Linear Algebra II", course_code="MATH 222",
            assignment_external_id="a-1", title="Problem set", now=now,
        )
        assert result["created"] is False
        assert result["assignment"]["course"]["name"] == "Linear Algebra II"


# ===========================================================================
# Urgent panel
# ===========================================================================
class TestUrgentPanel:
    def test_assignments_and_tasks_share_ordering(self, db_engine, now):
        a = _ingest(db_engine, now)["assignment"]
        t = task_service.create_task(
            db_engine, "student-1", title="Email advisor", category="personal", points_value=3,
        )
        assignment_service.toggle_assignment_urgent(db_engine, "student-1", a["id"])
        task_service.toggle_task_urgent(db_engine, "student-1", t["id"])

        items = assignment_service.get_urgent_items(db_engine, "student-1")
        assert [(i["kind"], i["id"]) for i in items] == [("assignment", a["id"]), ("task", t["id"])]

        assignment_service.reorder_urgent(
            db_engine, "student-1", [("task", t["id"]), ("assignment", a["id"])],
        )
        items = assignment_service.get_urgent_items(db_engine, "student-1")
        assert [i["kind"] for i in items] == ["task", "assignment"]
        assert [i["urgent_order"] for i in items] == [0.0, 1.0]

    def test_toggle_off_clears_order(self, db_engine, now):
        a = _ingest(db_engine, now)["assignment"]
        assignment_service.toggle_assignment_urgent(db_engine, "student-1", a["id"])
        result = assignment_service.toggle_assignment_urgent(db_engine, "student-1", a["id"])
        assert result["is_urgent"] is False
        assert result["urgent_order"] is None
        assert assignment_service.get_urgent_items(db_engine, "student-1") == []

    def test_reorder_rejects_unknown_kind(self, db_engine, now):
        _ingest(db_engine, now)
        with pytest.raises(ValidationFailed):
            assignment_service.reorder_urgent(db_engine, "student-1", [("quiz", 1)])
