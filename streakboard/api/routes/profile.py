"""
streakboard.api.routes.profile — Caller profile, XP multiplier & ledger
========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from streakboard.api.deps import get_current_user, get_engine
from streakboard.services import ledger_service, user_service

router = APIRouter(prefix="/me", tags=["profile"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MultiplierDay(BaseModel):
    weekday: int | None = Field(default=None, ge=0, le=6)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("")
def get_me(
    display_name: str | None = None,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """Profile of the caller; creates the user row on first visit."""
    return user_service.get_profile(engine, user, display_name)


@router.put("/multiplier")
def set_multiplier(
    body: MultiplierDay,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return user_service.set_xp_multiplier_day(engine, user, body.weekday)


@router.get("/points")
def points_history(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"entries": ledger_service.get_points_history(engine, user)}
