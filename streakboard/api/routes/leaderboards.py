"""
streakboard.api.routes.leaderboards — Private invite-code leaderboards
=======================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from streakboard.api.deps import get_current_user, get_engine
from streakboard.services import leaderboard_service

router = APIRouter(prefix="/leaderboards", tags=["leaderboards"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class LeaderboardCreate(BaseModel):
    name: str


class LeaderboardJoin(BaseModel):
    invite_code: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("")
def my_leaderboards(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"leaderboards": leaderboard_service.list_my_leaderboards(engine, user)}


@router.post("", status_code=201)
def create_leaderboard(
    body: LeaderboardCreate,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return leaderboard_service.create_leaderboard(engine, user, body.name)


@router.post("/join")
def join_leaderboard(
    body: LeaderboardJoin,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return leaderboard_service.join_leaderboard(engine, user, body.invite_code)


@router.get("/invite/{invite_code}")
def preview_invite(
    invite_code: str,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return leaderboard_service.get_leaderboard_by_invite(engine, invite_code)


@router.get("/{leaderboard_id}")
def rankings(
    leaderboard_id: int,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return leaderboard_service.get_leaderboard_rankings(engine, leaderboard_id)


@router.delete("/{leaderboard_id}/membership")
def leave_leaderboard(
    leaderboard_id: int,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    leaderboard_service.leave_leaderboard(engine, user, leaderboard_id)
    return {"left": True}
