"""
streakboard.api.routes.achievements — Achievement catalog & unlock toasts
==========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from streakboard.api.deps import get_current_user, get_engine
from streakboard.services import achievement_service

router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.get("")
def list_achievements(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """Full catalog with the caller's unlock state."""
    return {"achievements": achievement_service.get_user_achievements(engine, user)}


@router.get("/unseen")
def unseen_achievements(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"achievements": achievement_service.get_unseen_achievements(engine, user)}


@router.post("/seen")
def mark_seen(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"marked": achievement_service.mark_achievements_seen(engine, user)}


@router.post("/check")
def check_now(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"unlocked": achievement_service.check_achievements(engine, user)}
