"""
streakboard.api.main — FastAPI application entry point
=======================================================

Run with::

    uvicorn streakboard.api.main:app --reload --port 8000
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from streakboard.api.deps import get_config, get_engine  # noqa: E402
from streakboard.api.routes.achievements import router as achievements_router  # noqa: E402
from streakboard.api.routes.admin import router as admin_router  # noqa: E402
from streakboard.api.routes.assignments import router as assignments_router  # noqa: E402
from streakboard.api.routes.challenges import router as challenges_router  # noqa: E402
from streakboard.api.routes.leaderboards import router as leaderboards_router  # noqa: E402
from streakboard.api.routes.profile import router as profile_router  # noqa: E402
from streakboard.api.routes.rewards import router as rewards_router  # noqa: E402
from streakboard.api.routes.tasks import router as tasks_router  # noqa: E402
from streakboard.database.engine import init_db, run_db  # noqa: E402
from streakboard.services.errors import StreakboardError  # noqa: E402
from streakboard.services.reconciliation_service import reconcile_points  # noqa: E402
from streakboard.services.recompute_queue import RecomputeQueue  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


async def _reconcile_loop(engine, interval_hours: int) -> None:
    """Periodic ledger/total reconciliation."""
    while True:
        await asyncio.sleep(interval_hours * 3600)
        try:
            await run_db(reconcile_points, engine)
        except Exception:
            logger.exception("Points reconciliation failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — schema, recompute queue, reconcile job."""
    cfg = get_config()
    engine = get_engine()
    await run_db(init_db, engine)

    queue = RecomputeQueue(engine)
    queue.start(asyncio.get_running_loop())
    app.state.recompute = queue

    reconcile_task = asyncio.create_task(
        _reconcile_loop(engine, cfg.reconcile_interval_hours), name="reconcile-points",
    )
    logger.info("%s API started — engine ready (%s)", cfg.app_name, engine.url.database)
    yield
    reconcile_task.cancel()
    await queue.join()
    queue.stop()
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="Streakboard API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StreakboardError)
async def _domain_error(request: Request, exc: StreakboardError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Mount routers
app.include_router(profile_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(assignments_router, prefix="/api")
app.include_router(achievements_router, prefix="/api")
app.include_router(challenges_router, prefix="/api")
app.include_router(leaderboards_router, prefix="/api")
app.include_router(rewards_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
