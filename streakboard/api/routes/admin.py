"""
streakboard.api.routes.admin — Gameplay settings & maintenance
===============================================================
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from streakboard.api.deps import get_current_admin, get_engine
from streakboard.services import settings_service
from streakboard.services.reconciliation_service import reconcile_points

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SettingUpdate(BaseModel):
    key: str
    value: Any
    category: str | None = None
    description: str | None = None


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
@router.get("/settings")
def get_all_settings(
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    return {"settings": settings_service.get_all_settings(engine)}


@router.put("/settings")
def update_settings(
    body: list[SettingUpdate],
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    updated = [
        settings_service.upsert_setting(
            engine,
            key=s.key,
            value=s.value,
            category=s.category or "general",
            description=s.description,
        )
        for s in body
    ]
    logger.info("Admin %s updated %d settings", admin.get("sub"), len(updated))
    return {"updated": updated}


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@router.post("/reconcile")
def reconcile(
    fix: bool = True,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    return reconcile_points(engine, fix=fix)
