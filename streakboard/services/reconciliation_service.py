"""
streakboard.services.reconciliation_service — Points reconciliation
====================================================================

Periodic job that validates every user's denormalized ``total_points``
against the sum of their ``points_ledger`` deltas and corrects drift.

How it works:
    1. List every user.
    2. Per user, under :func:`user_lock`, ``SUM(delta)`` from ``points_ledger``
       and compare against ``users.total_points`` in the same session.
    3. On mismatch, overwrite the total with the ledger sum (floored at 0).
    4. Log all corrections for audit.

Drift is expected after a removal that hit the zero floor; everything
else points at a write that bypassed :mod:`ledger_service`.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, func, select

from streakboard.database.engine import get_session
from streakboard.database.models import PointsLedgerEntry, User
from streakboard.services.locks import user_lock

logger = logging.getLogger(__name__)


def reconcile_points(engine: Engine, *, fix: bool = True) -> dict:
    """Validate user totals against the ledger and, when *fix*, repair them.

    Returns ``{"checked": N, "corrected": M, "corrections": [...], "timestamp": ...}``.
    """
    corrections: list[dict] = []

    with get_session(engine) as session:
        users = session.execute(select(User.id, User.external_id).order_by(User.id)).all()

    for user_id, external_id in users:
        with user_lock(external_id), get_session(engine) as session:
            user = session.get(User, user_id)
            if user is None:
                continue
            ledger_total = session.scalar(
                select(func.coalesce(func.sum(PointsLedgerEntry.delta), 0))
                .where(PointsLedgerEntry.user_id == user.id)
            )
            actual = max(0, int(ledger_total))
            stored = user.total_points or 0
            if stored == actual:
                continue
            corrections.append({
                "user_id": user.id,
                "external_id": user.external_id,
                "stored": stored,
                "actual": actual,
                "diff": actual - stored,
            })
            if fix:
                user.total_points = actual
    checked = len(users)

    if corrections:
        logger.warning(
            "Points reconciliation: %s %d/%d totals: %s",
            "corrected" if fix else "found drift in",
            len(corrections), checked, corrections,
        )
    else:
        logger.info("Points reconciliation: all %d totals match", checked)

    return {
        "checked": checked,
        "corrected": len(corrections) if fix else 0,
        "corrections": corrections,
        "timestamp": datetime.now(UTC).isoformat(),
    }
