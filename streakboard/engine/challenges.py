"""
streakboard.engine.challenges — Daily Challenge Sampling & Progress
====================================================================

Pure helpers for the daily challenge engine:

* :func:`roulette_sample` — weighted sampling without replacement.
* :func:`anti_repeat_weights` — soft penalty for recently shown challenges.
* :func:`build_day_activity` / :func:`compute_progress` — per-type progress
  against one UTC day's raw activity.

No database I/O.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import TypeVar

from streakboard.constants import EARLY_THRESHOLD
from streakboard.database.models import ChallengeType, TaskStatus
from streakboard.engine.clock import ensure_utc, on_day

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------
def anti_repeat_weights(
    candidate_ids: Sequence[int],
    recent_ids: set[int],
    repeat_weight: float = 0.2,
) -> list[float]:
    """Weight 1.0 per candidate, *repeat_weight* for ones shown recently."""
    return [repeat_weight if cid in recent_ids else 1.0 for cid in candidate_ids]


def roulette_sample(
    items: Sequence[T],
    weights: Sequence[float],
    n: int,
    rng: random.Random | None = None,
) -> list[T]:
    """Draw ``min(n, len(items))`` items without replacement.

    Each draw picks a uniform value over the remaining total weight and
    walks the items until the cumulative weight exceeds it; the chosen
    item is removed before the next draw.
    """
    if len(items) != len(weights):
        raise ValueError("items and weights must be the same length")
    rng = rng or random.Random()
    remaining = list(zip(items, weights))
    chosen: list[T] = []

    while remaining and len(chosen) < n:
        total = sum(w for _item, w in remaining)
        target = rng.random() * total
        cumulative = 0.0
        index = len(remaining) - 1  # float round-off lands on the last item
        for i, (_item, weight) in enumerate(remaining):
            cumulative += weight
            if cumulative > target:
                index = i
                break
        chosen.append(remaining.pop(index)[0])

    return chosen


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class DayActivity:
    """Same-day activity counts for one user on one UTC day."""

    submitted: int = 0
    early_submitted: int = 0
    streak_count: int = 0
    points_earned: int = 0
    tasks_completed: int = 0


def build_day_activity(
    *,
    assignments: Iterable,
    ledger_entries: Iterable,
    tasks: Iterable,
    streak_count: int,
    today: date,
) -> DayActivity:
    """Count *today*'s activity from raw rows.

    ``points_earned`` sums only positive ledger deltas created today.
    """
    submitted = early = 0
    for a in assignments:
        if not on_day(a.submitted_at, today):
            continue
        submitted += 1
        if a.due_at is not None:
            if ensure_utc(a.due_at) - ensure_utc(a.submitted_at) >= EARLY_THRESHOLD:
                early += 1

    points = sum(
        e.delta for e in ledger_entries
        if e.delta > 0 and on_day(e.created_at, today)
    )
    tasks_done = sum(
        1 for t in tasks
        if t.status == TaskStatus.COMPLETED and on_day(t.completed_at, today)
    )
    return DayActivity(
        submitted=submitted,
        early_submitted=early,
        streak_count=streak_count,
        points_earned=points,
        tasks_completed=tasks_done,
    )


PROGRESS_RULES: dict[str, Callable[[DayActivity], int]] = {
    ChallengeType.SUBMIT_N: lambda act: act.submitted,
    ChallengeType.EARLY_SUBMIT: lambda act: act.early_submitted,
    ChallengeType.STREAK: lambda act: act.streak_count,
    ChallengeType.POINTS: lambda act: act.points_earned,
    ChallengeType.CUSTOM_TASK: lambda act: act.tasks_completed,
    # CLEAR_WEEK, COURSE_SWEEP and DAILY_RUN have no progress rule
}


def compute_progress(challenge_type: str, activity: DayActivity) -> int | None:
    """Progress for *challenge_type*, or ``None`` when it has no rule."""
    rule = PROGRESS_RULES.get(challenge_type)
    if rule is None:
        return None
    return rule(activity)
