"""
tests/test_reconciliation.py — Ledger vs. total reconciliation
===============================================================
"""

from __future__ import annotations

import threading

from sqlalchemy import event, func, select
from sqlalchemy.orm import Session

from streakboard.database.models import PointsLedgerEntry, User
from streakboard.services import task_service
from streakboard.services.reconciliation_service import reconcile_points


def _drift(engine, external_id, total) -> None:
    with Session(engine) as session:
        user = session.scalar(select(User).where(User.external_id == external_id))
        user.total_points = total
        session.commit()


def _total(engine, external_id) -> int:
    with Session(engine) as session:
        return session.scalar(select(User.total_points).where(User.external_id == external_id))


class TestReconcilePoints:
    def _award(self, engine, external_id, points, now):
        task = task_service.create_task(
            engine, external_id, title="Task", category="work", points_value=points,
        )
        task_service.complete_task(engine, external_id, task["id"], now)

    def test_all_match(self, db_engine, now):
        self._award(db_engine, "u1", 10, now)
        result = reconcile_points(db_engine)
        assert result["checked"] == 1
        assert result["corrected"] == 0
        assert result["corrections"] == []

    def test_corrects_drift(self, db_engine, now):
        self._award(db_engine, "u1", 10, now)
        self._award(db_engine, "u2", 20, now)
        _drift(db_engine, "u2", 999)

        result = reconcile_points(db_engine)

        assert result["corrected"] == 1
        assert result["corrections"][0]["external_id"] == "u2"
        assert result["corrections"][0]["diff"] == 20 - 999
        assert _total(db_engine, "u2") == 20
        assert _total(db_engine, "u1") == 10

    def test_dry_run_reports_without_fixing(self, db_engine, now):
        self._award(db_engine, "u1", 10, now)
        _drift(db_engine, "u1", 3)
        result = reconcile_points(db_engine, fix=False)
        assert result["corrected"] == 0
        assert len(result["corrections"]) == 1
        assert _total(db_engine, "u1") == 3

    def test_completion_during_reconcile_waits_for_user_lock(self, db_engine, now):
        """A completion racing the ledger-sum read must not be overwritten."""
        self._award(db_engine, "u1", 10, now)
        pending = task_service.create_task(
            db_engine, "u1", title="Second", category="work", points_value=10,
        )
        done = threading.Event()
        finished_during_reconcile: list[bool] = []

        def _complete():
            task_service.complete_task(db_engine, "u1", pending["id"], now)
            done.set()

        worker = threading.Thread(target=_complete)

        def _interleave(conn, cursor, statement, parameters, context, executemany):
            if "sum(points_ledger.delta)" in statement.lower() and not finished_during_reconcile:
                worker.start()
                finished_during_reconcile.append(done.wait(timeout=0.3))

        event.listen(db_engine, "before_cursor_execute", _interleave)
        try:
            reconcile_points(db_engine)
        finally:
            event.remove(db_engine, "before_cursor_execute", _interleave)
        worker.join(timeout=5)

        assert finished_during_reconcile == [False]
        assert done.is_set()
        with Session(db_engine) as session:
            user = session.scalar(select(User).where(User.external_id == "u1"))
            ledger = session.scalar(
                select(func.sum(PointsLedgerEntry.delta)).where(PointsLedgerEntry.user_id == user.id)
            )
        assert user.total_points == ledger == 20
