"""
streakboard.services.assignment_service — Assignment completion & sync
=======================================================================

Two ways an assignment becomes submitted:

* **Manual tick-off** (:func:`complete_assignment`): the user marks it done;
  points are timed against ``now`` and the row is flagged
  ``manually_completed`` so it can be ticked off again later.
* **Upstream sync** (:func:`ingest_assignment`): the sync service pushes the
  row.  A transition from pending to submitted for an assignment with no
  ledger entries yet awards points timed by the upstream ``submitted_at``.
  A submitted row is never downgraded back to pending by a later push.

Both paths update the streak, then write the ledger, then roll a milestone
reward, in one transaction.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from streakboard.database.engine import get_session
from streakboard.database.models import (
    Assignment,
    AssignmentStatus,
    Course,
    CustomTask,
    LedgerReason,
    PointsLedgerEntry,
    User,
)
from streakboard.engine.clock import ensure_utc, resolve_now
from streakboard.engine.scoring import score_assignment
from streakboard.services.errors import (
    AlreadyCompleted,
    AssignmentNotFound,
    NotCompleted,
    NotOwner,
    TaskNotFound,
    ValidationFailed,
)
from streakboard.services.ledger_service import add_points, remove_points
from streakboard.services.locks import user_lock
from streakboard.services.milestone_service import roll_milestone_reward, user_reward_to_dict
from streakboard.services.settings_service import load_points_table
from streakboard.services.streak_service import update_streak
from streakboard.services.task_service import next_urgent_order, task_to_dict
from streakboard.services.user_service import get_or_create_user, require_user

logger = logging.getLogger(__name__)


def _owned_assignment(session: Session, user: User, assignment_id: int) -> Assignment:
    assignment = session.get(Assignment, assignment_id)
    if assignment is None:
        raise AssignmentNotFound()
    if assignment.user_id != user.id:
        raise NotOwner("Assignment does not belong to user")
    return assignment


def assignment_to_dict(a: Assignment) -> dict:
    return {
        "id": a.id,
        "external_id": a.external_id,
        "title": a.title,
        "course": {"id": a.course.id, "name": a.course.name, "code": a.course.code},
        "due_at": a.due_at.isoformat() if a.due_at else None,
        "submitted_at": a.submitted_at.isoformat() if a.submitted_at else None,
        "status": a.status,
        "manually_completed": a.manually_completed,
        "is_urgent": a.is_urgent,
        "urgent_order": a.urgent_order,
    }


def _is_credited(session: Session, assignment: Assignment) -> bool:
    return session.scalar(
        select(PointsLedgerEntry.id)
        .where(PointsLedgerEntry.assignment_id == assignment.id)
        .limit(1)
    ) is not None


def _credit_submission(
    session: Session,
    user: User,
    assignment: Assignment,
    *,
    submitted_at: datetime,
    now: datetime,
    rng: random.Random | None,
) -> dict:
    """Streak → ledger → milestone reward for one submission.

    The streak bonus is judged on the streak as updated by this submission.
    """
    transition = update_streak(session, user, now)
    award = score_assignment(
        due_at=assignment.due_at,
        submitted_at=submitted_at,
        streak_count=user.streak_count or 0,
        xp_multiplier_day=user.xp_multiplier_day,
        now=now,
        table=load_points_table(session),
    )
    before = user.total_points or 0
    add_points(session, user, award.base_points, award.reason, assignment_id=assignment.id, now=now)
    if award.streak_bonus:
        add_points(
            session, user, award.streak_bonus, LedgerReason.STREAK_BONUS,
            assignment_id=assignment.id, now=now,
        )
    reward = roll_milestone_reward(session, user, before, user.total_points, rng=rng, now=now)

    logger.info(
        "Assignment %d credited for user %s: %s +%d (streak bonus %d)",
        assignment.id, user.external_id, award.reason, award.base_points, award.streak_bonus,
    )
    return {
        "points_awarded": award.total,
        "reason": award.reason.value,
        "multiplier_active": award.multiplier_active,
        "total_points": user.total_points,
        "streak_count": user.streak_count,
        "shield_used": transition.shield_used,
        "reward": user_reward_to_dict(reward) if reward else None,
    }


# ---------------------------------------------------------------------------
# Manual tick-off
# ---------------------------------------------------------------------------

def complete_assignment(
    engine: Engine,
    external_id: str,
    assignment_id: int,
    now: datetime | None = None,
    *,
    rng: random.Random | None = None,
) -> dict:
    now = resolve_now(now)
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        assignment = _owned_assignment(session, user, assignment_id)
        if assignment.status == AssignmentStatus.SUBMITTED:
            raise AlreadyCompleted("Assignment is already submitted")

        assignment.status = AssignmentStatus.SUBMITTED.value
        assignment.submitted_at = now
        assignment.manually_completed = True
        result = _credit_submission(
            session, user, assignment, submitted_at=now, now=now, rng=rng,
        )
        result["assignment"] = assignment_to_dict(assignment)
        return result


def uncomplete_assignment(engine: Engine, external_id: str, assignment_id: int) -> dict:
    """Undo a manual tick-off.  Upstream-submitted work cannot be undone."""
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        assignment = _owned_assignment(session, user, assignment_id)
        if not assignment.manually_completed:
            raise NotCompleted("Only manually completed assignments can be unticked")

        removed = remove_points(session, user, assignment_id=assignment.id)
        assignment.status = AssignmentStatus.PENDING.value
        assignment.manually_completed = False
        assignment.submitted_at = None
        return {"points_removed": removed, "total_points": user.total_points}


# ---------------------------------------------------------------------------
# Upstream sync
# ---------------------------------------------------------------------------

def _upsert_course(session: Session, user: User, external_id: str, name: str, code: str) -> Course:
    course = session.scalar(
        select(Course).where(Course.user_id == user.id, Course.external_id == external_id)
    )
    if course is None:
        course = Course(user_id=user.id, external_id=external_id, name=name, code=code)
        session.add(course)
        session.flush()
    else:
        course.name = name
        course.code = code
    return course


def ingest_assignment(
    engine: Engine,
    external_id: str,
    *,
    course_external_id: str,
    course_name: str,
    assignment_external_id: str,
    title: str,
    course_code: str = "",
    due_at: datetime | None = None,
    submitted_at: datetime | None = None,
    status: str = AssignmentStatus.PENDING.value,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> dict:
    """Upsert one assignment pushed by the sync service.

    Returns ``{"assignment": ..., "created": bool, "credit": dict | None}``
    where ``credit`` is set when this push awarded points.
    """
    try:
        incoming = AssignmentStatus(status)
    except ValueError:
        raise ValidationFailed(f"unknown assignment status: {status!r}") from None
    now = resolve_now(now)

    with user_lock(external_id), get_session(engine) as session:
        user = get_or_create_user(session, external_id)
        course = _upsert_course(session, user, course_external_id, course_name, course_code)
        assignment = session.scalar(
            select(Assignment).where(
                Assignment.user_id == user.id,
                Assignment.external_id == assignment_external_id,
            )
        )
        created = assignment is None
        previous = None if created else assignment.status
        if created:
            assignment = Assignment(
                user_id=user.id,
                course_id=course.id,
                external_id=assignment_external_id,
                title=title,
                status=incoming.value,
                manually_completed=False,
                is_urgent=False,
            )
            session.add(assignment)
        assignment.course_id = course.id
        assignment.title = title
        assignment.due_at = ensure_utc(due_at) if due_at else None

        if incoming == AssignmentStatus.SUBMITTED:
            assignment.status = AssignmentStatus.SUBMITTED.value
            if assignment.submitted_at is None:
                assignment.submitted_at = ensure_utc(submitted_at) if submitted_at else now
        elif previous != AssignmentStatus.SUBMITTED:
            assignment.status = incoming.value
        session.flush()

        credit = None
        if (
            previous == AssignmentStatus.PENDING
            and incoming == AssignmentStatus.SUBMITTED
            and not _is_credited(session, assignment)
        ):
            credit = _credit_submission(
                session, user, assignment,
                submitted_at=assignment.submitted_at, now=now, rng=rng,
            )

        return {
            "assignment": assignment_to_dict(assignment),
            "created": created,
            "credit": credit,
        }


def list_assignments(engine: Engine, external_id: str) -> list[dict]:
    with get_session(engine) as session:
        user = require_user(session, external_id)
        rows = session.scalars(
            select(Assignment)
            .where(Assignment.user_id == user.id)
            .order_by(Assignment.due_at.is_(None), Assignment.due_at, Assignment.id)
        ).all()
        return [assignment_to_dict(a) for a in rows]


# ---------------------------------------------------------------------------
# Urgent panel — assignments and custom tasks share one ordering
# ---------------------------------------------------------------------------

def toggle_assignment_urgent(engine: Engine, external_id: str, assignment_id: int) -> dict:
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        assignment = _owned_assignment(session, user, assignment_id)
        if assignment.is_urgent:
            assignment.is_urgent = False
            assignment.urgent_order = None
        else:
            assignment.urgent_order = next_urgent_order(session, user)
            assignment.is_urgent = True
        return assignment_to_dict(assignment)


def get_urgent_items(engine: Engine, external_id: str) -> list[dict]:
    """Urgent assignments and tasks, merged by ``urgent_order``."""
    with get_session(engine) as session:
        user = require_user(session, external_id)
        items = [
            {"kind": "assignment", **assignment_to_dict(a)}
            for a in session.scalars(
                select(Assignment).where(Assignment.user_id == user.id, Assignment.is_urgent.is_(True))
            ).all()
        ]
        items += [
            {"kind": "task", **task_to_dict(t)}
            for t in session.scalars(
                select(CustomTask).where(CustomTask.user_id == user.id, CustomTask.is_urgent.is_(True))
            ).all()
        ]
        items.sort(key=lambda item: (item["urgent_order"] or 0.0, item["kind"], item["id"]))
        return items


def reorder_urgent(engine: Engine, external_id: str, ordering: list[tuple[str, int]]) -> int:
    """Assign ``urgent_order`` 0..N-1 following *ordering* of ``(kind, id)``."""
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        for index, (kind, item_id) in enumerate(ordering):
            if kind == "assignment":
                row = _owned_assignment(session, user, item_id)
            elif kind == "task":
                row = session.get(CustomTask, item_id)
                if row is None:
                    raise TaskNotFound()
                if row.user_id != user.id:
                    raise NotOwner("Task does not belong to user")
            else:
                raise ValidationFailed(f"unknown urgent item kind: {kind!r}")
            row.urgent_order = float(index)
        return len(ordering)
