"""
streakboard.database.seed — Catalog & Default Settings Seeder
==============================================================

Baseline rows seeded on first startup so the engine is immediately usable:
gameplay settings, the achievement catalog, the daily challenge pool and
the milestone reward catalog.

Idempotent — settings, achievements and rewards are inserted only when
their key/name is missing; the challenge pool only when it is empty.
Rows edited later are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from streakboard.database.models import (
    Achievement,
    AchievementKey,
    ChallengePoolItem,
    ChallengeType,
    Difficulty,
    Reward,
    RewardRarity,
    RewardType,
    Setting,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "points.no_due_date": (10, "points", "Points for completing work with no due date"),
    "points.early_submission": (
        20, "points", "Points for a submission at least 24 hours before the due date",
    ),
    "points.on_time": (10, "points", "Points for a submission before the due date"),
    "points.late_submission": (2, "points", "Points for a submission after the due date"),
    "points.streak_bonus": (
        5, "points", "Extra points per assignment completion while on a 3+ day streak",
    ),
    "rewards.milestone_step": (
        50, "rewards", "Every crossed multiple of this many points rolls a reward",
    ),
    "rewards.common_chance": (60, "rewards", "Percent chance a milestone roll is common"),
    "rewards.rare_chance": (30, "rewards", "Percent chance a milestone roll is rare"),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Achievement catalogue — (key, name, description, icon, color, bonus)
# ---------------------------------------------------------------------------
ACHIEVEMENT_CATALOG: list[tuple[AchievementKey, str, str, str, str, int]] = [
    (AchievementKey.FIRST_BLOOD, "First Blood",
     "Submit your very first assignment.", "Star", "yellow", 10),
    (AchievementKey.NIGHT_OWL, "Night Owl",
     "Submit an assignment between midnight and 4 AM.", "Moon", "blue", 15),
    (AchievementKey.SPEED_RUNNER, "Speed Runner",
     "Submit an assignment 48+ hours before the deadline.", "Zap", "yellow", 20),
    (AchievementKey.PERFECT_WEEK, "Perfect Week",
     "Go 7 days without any missing assignments.", "Shield", "green", 30),
    (AchievementKey.ON_FIRE, "On Fire",
     "Maintain a 7-day activity streak.", "Flame", "orange", 25),
    (AchievementKey.UNSTOPPABLE, "Unstoppable",
     "Maintain a 14-day activity streak.", "Flame", "red", 40),
    (AchievementKey.CENTURION, "Centurion",
     "Earn 100 total points.", "Trophy", "yellow", 20),
    (AchievementKey.OVERACHIEVER, "Overachiever",
     "Earn 500 total points.", "Crown", "purple", 50),
    (AchievementKey.EARLY_BIRD, "Early Bird",
     "Submit 5 assignments early.", "Sun", "amber", 25),
    (AchievementKey.GRINDER, "Grinder",
     "Complete 10 custom tasks.", "Dumbbell", "blue", 30),
    (AchievementKey.CHALLENGE_ACCEPTED, "Challenge Accepted",
     "Complete 5 daily challenges.", "Target", "purple", 35),
    (AchievementKey.LEGEND, "Legend",
     "Reach Level 5 (1000 points).", "Crown", "gold", 100),
    (AchievementKey.SHIELD_BEARER, "Shield Bearer",
     "Use a streak shield to protect your streak.", "Shield", "purple", 20),
]


# ---------------------------------------------------------------------------
# Daily challenge pool — (title, description, type, target, bonus, difficulty)
# ---------------------------------------------------------------------------
CHALLENGE_POOL: list[tuple[str, str, ChallengeType, int, int, Difficulty]] = [
    # Easy
    ("Submit 1 assignment today", "Submit or tick off any assignment.",
     ChallengeType.SUBMIT_N, 1, 5, Difficulty.EASY),
    ("Keep your streak alive", "Make sure your daily streak is active.",
     ChallengeType.STREAK, 1, 5, Difficulty.EASY),
    ("Complete 1 custom task", "Tick off any task from your task list.",
     ChallengeType.CUSTOM_TASK, 1, 8, Difficulty.EASY),
    ("Earn 10 points today", "Collect at least 10 points in a single day.",
     ChallengeType.POINTS, 10, 8, Difficulty.EASY),
    ("Submit an assignment early", "Submit any assignment well before its deadline.",
     ChallengeType.EARLY_SUBMIT, 1, 10, Difficulty.EASY),
    ("Earn 15 points today", "Collect at least 15 points today.",
     ChallengeType.POINTS, 15, 8, Difficulty.EASY),
    ("Maintain a 2-day streak", "Keep your streak going for 2 days.",
     ChallengeType.STREAK, 2, 8, Difficulty.EASY),
    # Medium
    ("Submit 2 assignments today", "Complete two assignments in one day.",
     ChallengeType.SUBMIT_N, 2, 15, Difficulty.MEDIUM),
    ("Earn 20 points today", "Rack up 20 points before midnight.",
     ChallengeType.POINTS, 20, 15, Difficulty.MEDIUM),
    ("Complete 2 custom tasks", "Knock out two tasks from your list.",
     ChallengeType.CUSTOM_TASK, 2, 15, Difficulty.MEDIUM),
    ("Maintain a 3-day streak", "Keep the momentum with a 3-day streak.",
     ChallengeType.STREAK, 3, 15, Difficulty.MEDIUM),
    ("Earn 25 points today", "Push yourself to 25 points today.",
     ChallengeType.POINTS, 25, 20, Difficulty.MEDIUM),
    ("Submit 3 assignments today", "A productive day: three submissions.",
     ChallengeType.SUBMIT_N, 3, 20, Difficulty.MEDIUM),
    ("Submit an assignment 24hrs early", "Turn something in a full day before it is due.",
     ChallengeType.EARLY_SUBMIT, 1, 20, Difficulty.MEDIUM),
    # Hard
    ("Submit 4 assignments today", "Four submissions in a single day.",
     ChallengeType.SUBMIT_N, 4, 25, Difficulty.HARD),
    ("Earn 30 points today", "Earn 30 points before the day ends.",
     ChallengeType.POINTS, 30, 25, Difficulty.HARD),
    ("Complete 4 custom tasks", "Clear four personal tasks today.",
     ChallengeType.CUSTOM_TASK, 4, 25, Difficulty.HARD),
    ("Maintain a 7-day streak", "One full week without breaking the chain.",
     ChallengeType.STREAK, 7, 30, Difficulty.HARD),
    ("Submit 2 assignments early", "Get ahead with two early submissions today.",
     ChallengeType.EARLY_SUBMIT, 2, 30, Difficulty.HARD),
    ("Earn 50 points today", "The ultimate grind: 50 points in one day.",
     ChallengeType.POINTS, 50, 35, Difficulty.HARD),
]


# ---------------------------------------------------------------------------
# Milestone reward catalogue — (name, description, rarity, type)
# ---------------------------------------------------------------------------
DEFAULT_REWARDS: list[tuple[str, str, RewardRarity, RewardType]] = [
    ("Theme Customization", "Unlock custom color themes for your dashboard",
     RewardRarity.COMMON, RewardType.VIRTUAL),
    ("Sparkle Effect", "Add sparkles to your dashboard animations",
     RewardRarity.COMMON, RewardType.VIRTUAL),
    ("Study Badge", "Display a study badge on your profile",
     RewardRarity.COMMON, RewardType.VIRTUAL),
    ("Star Sticker", "A shiny star sticker for your achievements",
     RewardRarity.COMMON, RewardType.VIRTUAL),
    ("Trophy Badge", "Display a golden trophy on your profile",
     RewardRarity.RARE, RewardType.VIRTUAL),
    ("Avatar Frame", "Premium avatar frame with animated borders",
     RewardRarity.RARE, RewardType.VIRTUAL),
    ("Precision Badge", "Shows your dedication to timely submissions",
     RewardRarity.RARE, RewardType.VIRTUAL),
    ("Diamond Effect", "Add diamond sparkles to your completed assignments",
     RewardRarity.RARE, RewardType.VIRTUAL),
    ("Crown Icon", "Show off with a legendary golden crown",
     RewardRarity.LEGENDARY, RewardType.VIRTUAL),
    ("Star Power", "Legendary star effect with particle animations",
     RewardRarity.LEGENDARY, RewardType.VIRTUAL),
    ("Flame Aura", "Legendary flame effect surrounding your profile",
     RewardRarity.LEGENDARY, RewardType.VIRTUAL),
    ("Lightning Strike", "Epic lightning animation for your achievements",
     RewardRarity.LEGENDARY, RewardType.VIRTUAL),
]


# ---------------------------------------------------------------------------
# Seeders — each works inside a caller-owned session
# ---------------------------------------------------------------------------
def seed_default_settings(session: Session) -> int:
    """Insert default settings that don't yet exist.  Returns rows added."""
    inserted = 0
    for key, (value, category, desc) in DEFAULT_SETTINGS.items():
        if session.get(Setting, key) is None:
            session.add(Setting(
                key=key,
                value_json=json.dumps(value),
                category=category,
                description=desc,
            ))
            inserted += 1
    return inserted


def seed_achievements(session: Session) -> int:
    """Insert catalog achievements whose key is missing."""
    existing = set(session.scalars(select(Achievement.key)).all())
    inserted = 0
    for key, name, desc, icon, color, bonus in ACHIEVEMENT_CATALOG:
        if key.value in existing:
            continue
        session.add(Achievement(
            key=key.value,
            name=name,
            description=desc,
            icon=icon,
            color=color,
            bonus_points=bonus,
        ))
        inserted += 1
    return inserted


def seed_challenge_pool(session: Session) -> int:
    """Insert the default challenge pool if the pool is empty."""
    count = session.scalar(select(func.count()).select_from(ChallengePoolItem)) or 0
    if count:
        return 0
    for title, desc, ctype, target, bonus, difficulty in CHALLENGE_POOL:
        session.add(ChallengePoolItem(
            title=title,
            description=desc,
            type=ctype.value,
            target_value=target,
            bonus_points=bonus,
            difficulty=difficulty.value,
        ))
    return len(CHALLENGE_POOL)


def seed_rewards(session: Session) -> int:
    """Insert catalog rewards whose name is missing."""
    existing = set(session.scalars(select(Reward.name)).all())
    inserted = 0
    for name, desc, rarity, rtype in DEFAULT_REWARDS:
        if name in existing:
            continue
        session.add(Reward(
            name=name,
            description=desc,
            rarity=rarity.value,
            type=rtype.value,
            is_active=True,
        ))
        inserted += 1
    return inserted


def seed_all(engine: Engine) -> None:
    """Run every seeder in one transaction.  Safe to call repeatedly."""
    session = Session(engine)
    try:
        counts = {
            "settings": seed_default_settings(session),
            "achievements": seed_achievements(session),
            "challenges": seed_challenge_pool(session),
            "rewards": seed_rewards(session),
        }
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    added = {name: n for name, n in counts.items() if n}
    if added:
        logger.info("Seeded catalog rows: %s", added)
