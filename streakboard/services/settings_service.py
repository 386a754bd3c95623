"""
streakboard.services.settings_service — Gameplay settings access
=================================================================

Typed read/write access to the ``settings`` table.  Point values and the
milestone reward step are read here with their seeded defaults as
fallbacks, so a missing row never breaks a completion.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from streakboard.database.engine import get_session
from streakboard.database.models import Setting
from streakboard.database.seed import DEFAULT_SETTINGS
from streakboard.engine.scoring import PointsTable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_setting_value(session: Session, key: str, default=None):
    """Read a single setting's parsed value from an existing session.

    Parameters
    ----------
    session : Session
        An open SQLAlchemy session.
    key : str
        The setting key to look up.
    default
        Returned when the key does not exist.  When omitted, the seeded
        default for *key* is used.

    Returns
    -------
    The JSON-decoded value, or *default*.
    """
    if default is None and key in DEFAULT_SETTINGS:
        default = DEFAULT_SETTINGS[key][0]
    row = session.get(Setting, key)
    if row is None:
        return default
    try:
        return json.loads(row.value_json)
    except (json.JSONDecodeError, TypeError):
        return row.value_json


def get_int_setting(session: Session, key: str) -> int:
    value = get_setting_value(session, key)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Setting %r is not an integer (%r); using default", key, value)
        return int(DEFAULT_SETTINGS[key][0])


def load_points_table(session: Session) -> PointsTable:
    """Build the assignment :class:`PointsTable` from current settings."""
    return PointsTable(
        no_due_date=get_int_setting(session, "points.no_due_date"),
        early_submission=get_int_setting(session, "points.early_submission"),
        on_time=get_int_setting(session, "points.on_time"),
        late_submission=get_int_setting(session, "points.late_submission"),
        streak_bonus=get_int_setting(session, "points.streak_bonus"),
    )


def get_all_settings(engine) -> list[dict]:
    """Fetch every setting, ordered by category then key."""
    with get_session(engine) as session:
        rows = session.scalars(
            select(Setting).order_by(Setting.category, Setting.key)
        ).all()
        return [
            {
                "key": r.key,
                "value": json.loads(r.value_json),
                "category": r.category,
                "description": r.description,
            }
            for r in rows
        ]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def upsert_setting(
    engine,
    *,
    key: str,
    value: Any,
    category: str = "general",
    description: str | None = None,
) -> dict:
    """Insert or update a single setting."""
    value_json = json.dumps(value)
    with get_session(engine) as session:
        existing = session.get(Setting, key)
        if existing:
            existing.value_json = value_json
            if category:
                existing.category = category
            if description is not None:
                existing.description = description
        else:
            existing = Setting(
                key=key,
                value_json=value_json,
                category=category,
                description=description,
            )
            session.add(existing)
        result = {
            "key": existing.key,
            "value": value,
            "category": existing.category,
            "description": existing.description,
        }

    logger.info("Setting %s updated", key)
    return result
