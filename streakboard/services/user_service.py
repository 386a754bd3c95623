"""
streakboard.services.user_service — User lookup & profile
==========================================================

Users are created lazily the first time an external identity is seen.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from streakboard.constants import level_for_points
from streakboard.database.engine import get_session
from streakboard.database.models import User
from streakboard.services.errors import UserNotFound, ValidationFailed
from streakboard.services.locks import user_lock

logger = logging.getLogger(__name__)


def get_or_create_user(
    session: Session, external_id: str, display_name: str | None = None,
) -> User:
    """Fetch or insert the User row for *external_id*."""
    user = session.scalar(select(User).where(User.external_id == external_id))
    if user is None:
        user = User(
            external_id=external_id,
            display_name=display_name,
            total_points=0,
            streak_count=0,
            longest_streak=0,
            streak_shields=0,
        )
        session.add(user)
        session.flush()
        logger.info("Created user %s", external_id)
    elif display_name and user.display_name != display_name:
        user.display_name = display_name
    return user


def require_user(session: Session, external_id: str) -> User:
    """Fetch the User row or raise :class:`UserNotFound`."""
    user = session.scalar(select(User).where(User.external_id == external_id))
    if user is None:
        raise UserNotFound(f"User not found: {external_id}")
    return user


def user_summary(user: User) -> dict:
    return {
        "external_id": user.external_id,
        "display_name": user.display_name,
        "total_points": user.total_points,
        "streak_count": user.streak_count,
        "longest_streak": user.longest_streak,
        "last_activity_date": (
            user.last_activity_date.isoformat() if user.last_activity_date else None
        ),
        "streak_shields": user.streak_shields,
        "xp_multiplier_day": user.xp_multiplier_day,
        "level": level_for_points(user.total_points),
    }


def get_profile(engine: Engine, external_id: str, display_name: str | None = None) -> dict:
    with user_lock(external_id), get_session(engine) as session:
        user = get_or_create_user(session, external_id, display_name)
        return user_summary(user)


def set_xp_multiplier_day(engine: Engine, external_id: str, weekday: int | None) -> dict:
    """Choose the weekday (0=Mon … 6=Sun) on which earned points double."""
    if weekday is not None and not 0 <= weekday <= 6:
        raise ValidationFailed("weekday must be between 0 (Monday) and 6 (Sunday)")
    with user_lock(external_id), get_session(engine) as session:
        user = get_or_create_user(session, external_id)
        user.xp_multiplier_day = weekday
        return user_summary(user)
