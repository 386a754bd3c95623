"""
streakboard.services.recompute_queue — Per-user ordered recomputation
======================================================================

Achievement evaluation and daily-challenge progress are full scans of a
user's rows.  They run here, off the request path: completions call
:meth:`RecomputeQueue.submit` and return immediately, and a background
task drains one :class:`asyncio.Queue` per user in submission order.

Jobs for the same user never overlap; different users drain
concurrently.  Each job runs through :func:`run_db` so the event loop is
never blocked by SQLAlchemy.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from sqlalchemy import Engine

from streakboard.database.engine import get_session, run_db
from streakboard.engine.clock import resolve_now
from streakboard.services.achievement_service import check_and_award
from streakboard.services.challenge_service import recompute_progress
from streakboard.services.errors import UserNotFound
from streakboard.services.locks import user_lock
from streakboard.services.user_service import require_user

logger = logging.getLogger(__name__)


def recompute_user(engine: Engine, external_id: str, now: datetime | None = None) -> dict:
    """Challenge progress, then achievements, in one transaction.

    Challenges go first so a fifth completed challenge is visible to
    ``challenge_accepted`` in the same run; the achievement pass then sees
    the challenge bonuses in the running total.
    """
    now = resolve_now(now)
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        bonus = recompute_progress(session, user, now)
        unlocked = check_and_award(session, user, now)
        return {"challenge_bonus": bonus, "achievements": unlocked}


class RecomputeQueue:
    """Per-user FIFO of recompute jobs drained by background tasks."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._queues: dict[str, asyncio.Queue[datetime | None]] = {}
        self._workers: dict[str, asyncio.Task] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def running(self) -> bool:
        return self._loop is not None

    def submit(self, external_id: str, now: datetime | None = None) -> None:
        """Enqueue a recompute for *external_id*.  Never blocks.

        Safe to call from worker threads (sync FastAPI routes); the job is
        handed to the event loop thread.
        """
        if self._loop is None:
            raise RuntimeError("RecomputeQueue.start() has not been called")
        self._loop.call_soon_threadsafe(self._enqueue, external_id, now)

    def _enqueue(self, external_id: str, now: datetime | None) -> None:
        if self._loop is None:
            return
        queue = self._queues.get(external_id)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[external_id] = queue
        queue.put_nowait(now)
        worker = self._workers.get(external_id)
        if worker is None or worker.done():
            self._workers[external_id] = self._loop.create_task(
                self._drain(external_id, queue), name=f"recompute-{external_id}",
            )

    async def _drain(self, external_id: str, queue: asyncio.Queue) -> None:
        while not queue.empty():
            now = queue.get_nowait()
            try:
                result = await run_db(recompute_user, self.engine, external_id, now)
                if result["achievements"] or result["challenge_bonus"]:
                    logger.info(
                        "Recompute for %s: %d achievements, +%d challenge bonus",
                        external_id, len(result["achievements"]), result["challenge_bonus"],
                    )
            except UserNotFound:
                logger.warning("Recompute skipped: user %s no longer exists", external_id)
            except Exception:
                logger.exception("Recompute failed for user %s", external_id)
            finally:
                queue.task_done()
        # idle: forget this user until the next submit
        if self._queues.get(external_id) is queue and queue.empty():
            del self._queues[external_id]
            self._workers.pop(external_id, None)

    async def join(self) -> None:
        """Wait until every queued job has finished."""
        await asyncio.sleep(0)  # let pending submit() callbacks land
        for queue in list(self._queues.values()):
            await queue.join()

    def stop(self) -> None:
        """Cancel all drain tasks."""
        for task in self._workers.values():
            task.cancel()
        self._workers.clear()
        self._queues.clear()
        self._loop = None
