"""
streakboard.engine.streaks — Streak & Shield State Machine
===========================================================

Pure transition function for a user's daily-activity streak.  The service
layer (:mod:`streakboard.services.streak_service`) loads the current state,
calls :func:`advance_streak` and persists the result plus any events.

Transition for an activity on ``today``:

1. No prior activity → streak = 1.
2. Already active today → nothing changes.
3. Last active yesterday → streak + 1.
4. Gap of 2+ days → consume a shield and keep the streak, or reset to 1
   when no shield is left.
5. ``longest = max(longest, streak)``.
6. Reaching 7, 14 or 30 for the first time grants a shield (cap 3).
7. ``last_activity = today``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date

from streakboard.constants import MAX_SHIELDS, SHIELD_MILESTONES


@dataclass(frozen=True, slots=True)
class StreakState:
    streak: int = 0
    longest: int = 0
    last_activity: date | None = None
    shields: int = 0


@dataclass(frozen=True, slots=True)
class StreakTransition:
    """Outcome of one :func:`advance_streak` call."""

    state: StreakState
    changed: bool = False
    shield_used: bool = False
    milestones_granted: tuple[int, ...] = field(default_factory=tuple)


def advance_streak(
    state: StreakState,
    today: date,
    reached_milestones: frozenset[int] = frozenset(),
) -> StreakTransition:
    """Apply an activity on *today* to *state*.

    Parameters
    ----------
    state : Current persisted streak state.
    today : The UTC calendar day of the activity.
    reached_milestones : Milestones already marked for this user; a
        milestone grants a shield only the first time it is reached.
    """
    if state.last_activity == today:
        return StreakTransition(state=state)

    shields = state.shields
    shield_used = False

    if state.last_activity is None:
        streak = 1
    else:
        gap = (today - state.last_activity).days
        if gap == 1:
            streak = state.streak + 1
        elif gap > 1 and shields > 0:
            shields -= 1
            shield_used = True
            streak = max(state.streak, 1)
        else:
            # gap > 1 without a shield, or a clock that went backwards
            streak = 1

    granted: list[int] = []
    for milestone in SHIELD_MILESTONES:
        if (
            streak == milestone
            and milestone not in reached_milestones
            and shields < MAX_SHIELDS
        ):
            shields += 1
            granted.append(milestone)

    new_state = replace(
        state,
        streak=streak,
        longest=max(state.longest, streak),
        last_activity=today,
        shields=min(shields, MAX_SHIELDS),
    )
    return StreakTransition(
        state=new_state,
        changed=True,
        shield_used=shield_used,
        milestones_granted=tuple(granted),
    )
