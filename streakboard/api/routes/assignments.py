"""
streakboard.api.routes.assignments — Assignments, sync ingest & urgent panel
=============================================================================

``POST /assignments/sync`` is the entry point for the course-platform sync
service: it pushes a batch of assignments for the caller and any
pending-to-submitted transition is credited exactly once.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from streakboard.api.deps import get_current_user, get_engine, schedule_recompute
from streakboard.database.models import AssignmentStatus
from streakboard.engine.clock import resolve_now
from streakboard.services import assignment_service

router = APIRouter(tags=["assignments"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SyncedAssignment(BaseModel):
    course_external_id: str
    course_name: str
    course_code: str = ""
    external_id: str
    title: str
    due_at: datetime | None = None
    submitted_at: datetime | None = None
    status: AssignmentStatus = AssignmentStatus.PENDING


class SyncBatch(BaseModel):
    assignments: list[SyncedAssignment] = Field(default_factory=list)


class UrgentItemRef(BaseModel):
    kind: Literal["assignment", "task"]
    id: int


class UrgentOrder(BaseModel):
    items: list[UrgentItemRef]


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------
@router.get("/assignments")
def list_assignments(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"assignments": assignment_service.list_assignments(engine, user)}


@router.post("/assignments/{assignment_id}/complete")
def complete_assignment(
    assignment_id: int,
    request: Request,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    now = resolve_now()
    result = assignment_service.complete_assignment(engine, user, assignment_id, now)
    schedule_recompute(request, engine, user, now)
    return result


@router.post("/assignments/{assignment_id}/uncomplete")
def uncomplete_assignment(
    assignment_id: int,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return assignment_service.uncomplete_assignment(engine, user, assignment_id)


@router.post("/assignments/{assignment_id}/urgent")
def toggle_urgent(
    assignment_id: int,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return assignment_service.toggle_assignment_urgent(engine, user, assignment_id)


@router.post("/assignments/sync")
def sync_assignments(
    body: SyncBatch,
    request: Request,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    now = resolve_now()
    created = credited = points = 0
    for item in body.assignments:
        result = assignment_service.ingest_assignment(
            engine, user,
            course_external_id=item.course_external_id,
            course_name=item.course_name,
            course_code=item.course_code,
            assignment_external_id=item.external_id,
            title=item.title,
            due_at=item.due_at,
            submitted_at=item.submitted_at,
            status=item.status.value,
            now=now,
        )
        created += int(result["created"])
        if result["credit"]:
            credited += 1
            points += result["credit"]["points_awarded"]
    if body.assignments:
        schedule_recompute(request, engine, user, now)
    logger.info(
        "Sync for %s: %d assignments, %d new, %d credited (+%d)",
        user, len(body.assignments), created, credited, points,
    )
    return {
        "received": len(body.assignments),
        "created": created,
        "credited": credited,
        "points_awarded": points,
    }


# ---------------------------------------------------------------------------
# Urgent panel
# ---------------------------------------------------------------------------
@router.get("/urgent")
def urgent_items(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"items": assignment_service.get_urgent_items(engine, user)}


@router.put("/urgent/order")
def reorder_urgent(
    body: UrgentOrder,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    count = assignment_service.reorder_urgent(
        engine, user, [(ref.kind, ref.id) for ref in body.items],
    )
    return {"reordered": count}
