"""
streakboard.api.routes.rewards — Milestone reward inventory
============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from streakboard.api.deps import get_current_user, get_engine
from streakboard.services import milestone_service

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("")
def list_rewards(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"rewards": milestone_service.get_user_rewards(engine, user)}


@router.post("/{user_reward_id}/reveal")
def reveal(
    user_reward_id: int,
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return milestone_service.reveal_reward(engine, user, user_reward_id)
