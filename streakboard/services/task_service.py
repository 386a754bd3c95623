"""
streakboard.services.task_service — Custom tasks
=================================================

User-authored tasks worth a fixed ``points_value`` (1–100).  Completion
runs through the same ledger and streak machinery as assignments; the
award is doubled on the user's XP multiplier day.

Un-completion deletes the task's ledger entries (total floored at zero)
but leaves the streak as it is.
"""

from __future__ import annotations

import logging
import random
from datetime import UTC, datetime

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from streakboard.constants import (
    TASK_DESCRIPTION_MAX,
    TASK_POINTS_MAX,
    TASK_POINTS_MIN,
    TASK_TITLE_MAX,
)
from streakboard.database.engine import get_session
from streakboard.database.models import (
    Assignment,
    CustomTask,
    LedgerReason,
    TaskCategory,
    TaskStatus,
    User,
)
from streakboard.engine.clock import ensure_utc, resolve_now
from streakboard.engine.scoring import apply_multiplier, is_multiplier_day
from streakboard.services.errors import (
    AlreadyCompleted,
    NotCompleted,
    NotOwner,
    TaskNotFound,
    ValidationFailed,
)
from streakboard.services.ledger_service import add_points, remove_points
from streakboard.services.locks import user_lock
from streakboard.services.milestone_service import roll_milestone_reward, user_reward_to_dict
from streakboard.services.streak_service import update_streak
from streakboard.services.user_service import get_or_create_user, require_user

logger = logging.getLogger(__name__)

_UNSET = object()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _clean_title(title: str) -> str:
    title = (title or "").strip()
    if not 1 <= len(title) <= TASK_TITLE_MAX:
        raise ValidationFailed(f"title must be 1–{TASK_TITLE_MAX} characters")
    return title


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    if len(description) > TASK_DESCRIPTION_MAX:
        raise ValidationFailed(f"description must be at most {TASK_DESCRIPTION_MAX} characters")
    return description


def _clean_category(category: str) -> str:
    try:
        return TaskCategory(category).value
    except ValueError:
        allowed = ", ".join(c.value for c in TaskCategory)
        raise ValidationFailed(f"category must be one of: {allowed}") from None


def _clean_points(points_value: int) -> int:
    if isinstance(points_value, bool) or not isinstance(points_value, int):
        raise ValidationFailed("points_value must be an integer")
    if not TASK_POINTS_MIN <= points_value <= TASK_POINTS_MAX:
        raise ValidationFailed(
            f"points_value must be between {TASK_POINTS_MIN} and {TASK_POINTS_MAX}"
        )
    return points_value


def _owned_task(session: Session, user: User, task_id: int) -> CustomTask:
    task = session.get(CustomTask, task_id)
    if task is None:
        raise TaskNotFound()
    if task.user_id != user.id:
        raise NotOwner("Task does not belong to user")
    return task


def task_to_dict(task: CustomTask) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "category": task.category,
        "points_value": task.points_value,
        "due_at": task.due_at.isoformat() if task.due_at else None,
        "status": task.status,
        "completed_at": task.completed_at.isoformat() if task.completed_at else None,
        "is_urgent": task.is_urgent,
        "urgent_order": task.urgent_order,
    }


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def create_task(
    engine: Engine,
    external_id: str,
    *,
    title: str,
    category: str,
    points_value: int,
    description: str | None = None,
    due_at: datetime | None = None,
) -> dict:
    task = CustomTask(
        title=_clean_title(title),
        description=_clean_description(description),
        category=_clean_category(category),
        points_value=_clean_points(points_value),
        due_at=ensure_utc(due_at) if due_at else None,
        status=TaskStatus.PENDING.value,
        is_urgent=False,
    )
    with user_lock(external_id), get_session(engine) as session:
        user = get_or_create_user(session, external_id)
        task.user_id = user.id
        session.add(task)
        session.flush()
        return task_to_dict(task)


def update_task(
    engine: Engine,
    external_id: str,
    task_id: int,
    *,
    title=_UNSET,
    description=_UNSET,
    category=_UNSET,
    points_value=_UNSET,
    due_at=_UNSET,
) -> dict:
    """Patch the given fields.  Points of an already-completed task are not
    re-awarded."""
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        task = _owned_task(session, user, task_id)
        if title is not _UNSET:
            task.title = _clean_title(title)
        if description is not _UNSET:
            task.description = _clean_description(description)
        if category is not _UNSET:
            task.category = _clean_category(category)
        if points_value is not _UNSET:
            task.points_value = _clean_points(points_value)
        if due_at is not _UNSET:
            task.due_at = ensure_utc(due_at) if due_at else None
        return task_to_dict(task)


def delete_task(engine: Engine, external_id: str, task_id: int) -> dict:
    """Delete a task, first removing its points if it was completed."""
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        task = _owned_task(session, user, task_id)
        removed = 0
        if task.status == TaskStatus.COMPLETED:
            removed = remove_points(session, user, custom_task_id=task.id)
        session.delete(task)
        return {"deleted": True, "points_removed": removed, "total_points": user.total_points}


def _sort_key(task: CustomTask):
    """Pending first by due date (undated last), then completed newest first."""
    if task.status != TaskStatus.COMPLETED:
        due = ensure_utc(task.due_at) if task.due_at else None
        return (0, due is None, due.timestamp() if due else 0.0)
    done = ensure_utc(task.completed_at) if task.completed_at else datetime.min.replace(tzinfo=UTC)
    return (1, False, -done.timestamp())


def list_tasks(engine: Engine, external_id: str) -> list[dict]:
    with get_session(engine) as session:
        user = require_user(session, external_id)
        tasks = session.scalars(select(CustomTask).where(CustomTask.user_id == user.id)).all()
        return [task_to_dict(t) for t in sorted(tasks, key=_sort_key)]


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

def complete_task(
    engine: Engine,
    external_id: str,
    task_id: int,
    now: datetime | None = None,
    *,
    rng: random.Random | None = None,
) -> dict:
    now = resolve_now(now)
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        task = _owned_task(session, user, task_id)
        if task.status == TaskStatus.COMPLETED:
            raise AlreadyCompleted("Task already completed")

        task.status = TaskStatus.COMPLETED.value
        task.completed_at = now

        doubled = is_multiplier_day(user.xp_multiplier_day, now)
        points = apply_multiplier(task.points_value, doubled)
        before = user.total_points or 0
        add_points(session, user, points, LedgerReason.CUSTOM_TASK, custom_task_id=task.id, now=now)
        transition = update_streak(session, user, now)
        reward = roll_milestone_reward(session, user, before, user.total_points, rng=rng, now=now)

        logger.info(
            "Task %d completed by user %s (+%d%s)",
            task.id, external_id, points, ", 2x" if doubled else "",
        )
        return {
            "points_awarded": points,
            "multiplier_active": doubled,
            "total_points": user.total_points,
            "streak_count": user.streak_count,
            "shield_used": transition.shield_used,
            "reward": user_reward_to_dict(reward) if reward else None,
        }


def uncomplete_task(engine: Engine, external_id: str, task_id: int) -> dict:
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        task = _owned_task(session, user, task_id)
        if task.status != TaskStatus.COMPLETED:
            raise NotCompleted("Task is not completed")

        removed = remove_points(session, user, custom_task_id=task.id)
        task.status = TaskStatus.PENDING.value
        task.completed_at = None
        return {"points_removed": removed, "total_points": user.total_points}


# ---------------------------------------------------------------------------
# Urgent flag
# ---------------------------------------------------------------------------

def next_urgent_order(session: Session, user: User) -> float:
    """Slot after the current last urgent item, assignments and tasks alike."""
    highest = [
        session.scalar(select(func.max(model.urgent_order)).where(
            model.user_id == user.id, model.is_urgent.is_(True),
        ))
        for model in (Assignment, CustomTask)
    ]
    present = [h for h in highest if h is not None]
    return (max(present) if present else 0.0) + 1.0


def toggle_task_urgent(engine: Engine, external_id: str, task_id: int) -> dict:
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        task = _owned_task(session, user, task_id)
        if task.is_urgent:
            task.is_urgent = False
            task.urgent_order = None
        else:
            task.urgent_order = next_urgent_order(session, user)
            task.is_urgent = True
        return task_to_dict(task)
