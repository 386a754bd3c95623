"""
streakboard.api.routes.challenges — Daily challenges
=====================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from streakboard.api.deps import get_config, get_current_user, get_engine
from streakboard.config import StreakboardConfig
from streakboard.services import challenge_service

router = APIRouter(prefix="/challenges", tags=["challenges"])


@router.get("/today")
def todays_challenges(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
    cfg: StreakboardConfig = Depends(get_config),
):
    """Today's challenges, generated on first request of the UTC day."""
    challenges = challenge_service.generate_daily_challenges(
        engine, user,
        per_day=cfg.challenges_per_day,
        repeat_days=cfg.anti_repeat_days,
        repeat_weight=cfg.anti_repeat_weight,
    )
    return {"challenges": challenges}


@router.post("/progress")
def refresh_progress(
    user: str = Depends(get_current_user),
    engine=Depends(get_engine),
):
    result = challenge_service.update_challenge_progress(engine, user)
    result["challenges"] = challenge_service.get_daily_challenges(engine, user)
    return result
