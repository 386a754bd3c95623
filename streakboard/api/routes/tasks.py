"""
streakboard.api.routes.tasks — Custom task CRUD & completion
=============================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from streakboard.api.deps import get_current_user, get_engine, schedule_recompute
from streakboard.constants import TASK_POINTS_MAX, TASK_POINTS_MIN
from streakboard.engine.clock import resolve_now
from streakboard.services import task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class TaskCreate(BaseModel):
    title: str
    category: str
    points_value: int = Field(ge=TASK_POINTS_MIN, le=TASK_POINTS_MAX)
    description: str | None = None
    due_at: datetime | None = None


class TaskUpdate(BaseModel):
    title: str | None = None
    category: str | None = None
    points_value: int | None = Field(default=None, ge=TASK_POINTS_MIN, le=TASK_POINTS_MAX)
    description: str | None = None
    due_at: datetime | None = None


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------
@router.get("")
def list_tasks(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"tasks": task_service.list_tasks(engine, user)}


@router.post("", status_code=201)
def create_task(
    body: TaskCreate,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return task_service.create_task(
        engine, user,
        title=body.title,
        category=body.category,
        points_value=body.points_value,
        description=body.description,
        due_at=body.due_at,
    )


@router.patch("/{task_id}")
def update_task(
    task_id: int,
    body: TaskUpdate,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """Only fields present in the request body are changed."""
    changes = body.model_dump(exclude_unset=True)
    return task_service.update_task(engine, user, task_id, **changes)


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    request: Request,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    result = task_service.delete_task(engine, user, task_id)
    schedule_recompute(request, engine, user)
    return result


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------
@router.post("/{task_id}/complete")
def complete_task(
    task_id: int,
    request: Request,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    now = resolve_now()
    result = task_service.complete_task(engine, user, task_id, now)
    schedule_recompute(request, engine, user, now)
    return result


@router.post("/{task_id}/uncomplete")
def uncomplete_task(
    task_id: int,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return task_service.uncomplete_task(engine, user, task_id)


@router.post("/{task_id}/urgent")
def toggle_urgent(
    task_id: int,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return task_service.toggle_task_urgent(engine, user, task_id)
