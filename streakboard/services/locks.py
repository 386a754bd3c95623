"""
streakboard.services.locks — Per-user mutation locks
=====================================================

Completions for the same user read-modify-write ``total_points``,
``last_activity_date`` and ``streak_shields``.  Every mutating service
function runs under :func:`user_lock` so two requests for one user never
interleave; different users proceed in parallel.

Locks are re-entrant: a completion that triggers an achievement pass in
the same thread does not deadlock.  The registry holds them weakly, so a
user's lock is dropped once nobody is holding or waiting on it.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager


class UserLockRegistry:
    """Thread-safe registry of one :class:`threading.RLock` per user."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.RLock] = (
            weakref.WeakValueDictionary()
        )

    def get(self, external_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(external_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[external_id] = lock
            return lock

    @contextmanager
    def hold(self, external_id: str) -> Iterator[None]:
        lock = self.get(external_id)
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_registry = UserLockRegistry()


def user_lock(external_id: str):
    """Context manager serializing mutations for *external_id*."""
    return _registry.hold(external_id)
