"""
streakboard.api.deps — FastAPI dependency injection
====================================================
"""

from __future__ import annotations

import os
from datetime import datetime
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from streakboard.config import StreakboardConfig, load_config
from streakboard.database.engine import create_db_engine
from streakboard.services.recompute_queue import recompute_user

_WEAK_SECRETS = frozenset({
    "streakboard-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> StreakboardConfig:
    return load_config()


def _decode_bearer(authorization: str | None) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has no subject")
    return payload


def get_current_claims(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer JWT and return its claims.  Raises 401 if invalid."""
    return _decode_bearer(authorization)


def get_current_user(claims: Annotated[dict, Depends(get_current_claims)]) -> str:
    """External user id (the JWT ``sub``) of the caller."""
    return str(claims["sub"])


def get_current_admin(claims: Annotated[dict, Depends(get_current_claims)]) -> dict:
    """Validate JWT and return admin payload. Raises 403 if not admin."""
    if not claims.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return claims


def schedule_recompute(
    request: Request, engine: Engine, external_id: str, now: datetime | None = None,
) -> None:
    """Queue achievement/challenge recomputation for *external_id*.

    *now* is the triggering operation's clock, so a completion just before
    midnight is scored against that day's challenges.

    Falls back to running it inline when the background queue is not
    running (no lifespan, e.g. a bare TestClient).
    """
    queue = getattr(request.app.state, "recompute", None)
    if queue is not None and queue.running:
        queue.submit(external_id, now)
    else:
        recompute_user(engine, external_id, now)
