"""
streakboard.services.ledger_service — Points Ledger
====================================================

The ledger is the single source of truth for a user's points.  Every
write goes through here so the entry and ``users.total_points`` change in
the same session and therefore the same transaction.

Entries are never updated.  Undoing a completion deletes the entries that
reference its source assignment or task; no negative correction is ever
written.  The removal floors the total at zero.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from streakboard.database.engine import get_session
from streakboard.database.models import LedgerReason, PointsLedgerEntry, User
from streakboard.engine.clock import resolve_now
from streakboard.services.errors import ValidationFailed
from streakboard.services.user_service import require_user

logger = logging.getLogger(__name__)


def add_points(
    session: Session,
    user: User,
    delta: int,
    reason: LedgerReason,
    *,
    assignment_id: int | None = None,
    custom_task_id: int | None = None,
    now: datetime | None = None,
) -> PointsLedgerEntry:
    """Insert a ledger entry and bump the user's total by *delta*."""
    entry = PointsLedgerEntry(
        user_id=user.id,
        delta=delta,
        reason=LedgerReason(reason).value,
        assignment_id=assignment_id,
        custom_task_id=custom_task_id,
        created_at=resolve_now(now),
    )
    session.add(entry)
    user.total_points = (user.total_points or 0) + delta
    session.flush()
    logger.debug(
        "Ledger %+d (%s) for user %s → total %d",
        delta, entry.reason, user.external_id, user.total_points,
    )
    return entry


def remove_points(
    session: Session,
    user: User,
    *,
    assignment_id: int | None = None,
    custom_task_id: int | None = None,
) -> int:
    """Delete every entry tied to one source and lower the total.

    Exactly one of *assignment_id* / *custom_task_id* must be given.
    Returns the summed delta of the removed entries.
    """
    if (assignment_id is None) == (custom_task_id is None):
        raise ValidationFailed("remove_points needs exactly one source reference")

    if assignment_id is not None:
        source = PointsLedgerEntry.assignment_id == assignment_id
    else:
        source = PointsLedgerEntry.custom_task_id == custom_task_id

    where = (PointsLedgerEntry.user_id == user.id, source)
    deltas = session.scalars(select(PointsLedgerEntry.delta).where(*where)).all()
    removed = sum(deltas)
    session.execute(delete(PointsLedgerEntry).where(*where))

    user.total_points = max(0, (user.total_points or 0) - removed)
    session.flush()
    if deltas:
        logger.info(
            "Removed %d ledger entries (%+d) for user %s → total %d",
            len(deltas), -removed, user.external_id, user.total_points,
        )
    return removed


def ledger_sum(session: Session, user: User) -> int:
    deltas = session.scalars(
        select(PointsLedgerEntry.delta).where(PointsLedgerEntry.user_id == user.id)
    ).all()
    return sum(deltas)


def entry_to_dict(entry: PointsLedgerEntry) -> dict:
    return {
        "id": entry.id,
        "delta": entry.delta,
        "reason": entry.reason,
        "assignment_id": entry.assignment_id,
        "custom_task_id": entry.custom_task_id,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


def get_points_history(engine: Engine, external_id: str) -> list[dict]:
    """Return the user's ledger entries, newest first."""
    with get_session(engine) as session:
        user = require_user(session, external_id)
        entries = session.scalars(
            select(PointsLedgerEntry)
            .where(PointsLedgerEntry.user_id == user.id)
            .order_by(PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc())
        ).all()
        return [entry_to_dict(e) for e in entries]
