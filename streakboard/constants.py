"""
streakboard.constants — Shared Constants & Helpers
===================================================

Single source of truth for timing thresholds, the level ladder and the
invite-code alphabet.  Import from here instead of duplicating in services
and routes.
"""

from __future__ import annotations

from datetime import timedelta

# ---------------------------------------------------------------------------
# Submission timing thresholds
# ---------------------------------------------------------------------------
EARLY_THRESHOLD = timedelta(hours=24)
SPEED_RUN_THRESHOLD = timedelta(hours=48)
PERFECT_WEEK_WINDOW = timedelta(days=7)

NIGHT_OWL_HOURS = range(0, 4)  # 00:00–03:59 UTC

# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------
MAX_SHIELDS = 3
SHIELD_MILESTONES: tuple[int, ...] = (7, 14, 30)
STREAK_BONUS_MIN_STREAK = 3

# ---------------------------------------------------------------------------
# Custom tasks
# ---------------------------------------------------------------------------
TASK_TITLE_MAX = 200
TASK_DESCRIPTION_MAX = 2000
TASK_POINTS_MIN = 1
TASK_POINTS_MAX = 100

# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------
# No 0/O or 1/I: codes get read aloud and typed by hand.
INVITE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 8
INVITE_CODE_MAX_RETRIES = 10
LEADERBOARD_NAME_MAX = 100


# ---------------------------------------------------------------------------
# Level ladder — (minimum points, title), ascending
# ---------------------------------------------------------------------------
LEVELS: list[tuple[int, str]] = [
    (0, "Freshman"),
    (100, "Sophomore"),
    (250, "Junior"),
    (500, "Senior"),
    (1000, "Graduate"),
    (2000, "PhD Student"),
    (3500, "Professor"),
]


def level_for_points(points: int) -> dict:
    """Resolve the level reached at *points* and progress toward the next.

    Returns ``{"level", "title", "current_min", "next_min", "progress"}``
    where ``progress`` is a 0–100 percentage (100 at the top level).
    """
    index = 0
    for i, (threshold, _title) in enumerate(LEVELS):
        if points >= threshold:
            index = i
    current_min, title = LEVELS[index]
    if index + 1 < len(LEVELS):
        next_min = LEVELS[index + 1][0]
        progress = int((points - current_min) * 100 / (next_min - current_min))
    else:
        next_min = None
        progress = 100
    return {
        "level": index + 1,
        "title": title,
        "current_min": current_min,
        "next_min": next_min,
        "progress": max(0, min(100, progress)),
    }
