"""
streakboard.database.models — SQLAlchemy 2.0 Data Models
=========================================================

Tables:
- users                 — Student profiles keyed by identity-provider id
- courses               — Courses pushed by the upstream sync service
- assignments           — Course work with due/submission timestamps
- custom_tasks          — User-authored tasks with fixed point values
- points_ledger         — Append-only signed point deltas (source of truth)
- streak_events         — Append-only streak event log (shields, milestones)
- achievements          — Fixed achievement catalog
- user_achievements     — Unlocked achievements (one per user+achievement)
- challenge_pool        — Daily challenge catalog
- user_daily_challenges — Three challenges per user per day
- leaderboards          — Invite-coded private groups
- leaderboard_members   — Group membership
- rewards               — Milestone reward catalog
- user_rewards          — Rewards rolled for a user
- settings              — Gameplay tuning key/value store
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Streakboard ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class LedgerReason(enum.StrEnum):
    """Why a points ledger entry exists."""
    EARLY_SUBMISSION = "early_submission"
    ON_TIME = "on_time"
    LATE_SUBMISSION = "late_submission"
    STREAK_BONUS = "streak_bonus"
    CUSTOM_TASK = "custom_task"
    ACHIEVEMENT = "achievement"
    DAILY_CHALLENGE = "daily_challenge"


class StreakEventKind(enum.StrEnum):
    """Events recorded by the streak tracker."""
    SHIELD_USED = "shield_used"
    SHIELD_MILESTONE = "shield_milestone"


class AssignmentStatus(enum.StrEnum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    MISSING = "missing"


class TaskStatus(enum.StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class TaskCategory(enum.StrEnum):
    ACADEMIC = "academic"
    CLUB = "club"
    WORK = "work"
    PERSONAL = "personal"


class AchievementKey(enum.StrEnum):
    """The fixed achievement catalog."""
    FIRST_BLOOD = "first_blood"
    NIGHT_OWL = "night_owl"
    SPEED_RUNNER = "speed_runner"
    PERFECT_WEEK = "perfect_week"
    ON_FIRE = "on_fire"
    UNSTOPPABLE = "unstoppable"
    CENTURION = "centurion"
    OVERACHIEVER = "overachiever"
    EARLY_BIRD = "early_bird"
    GRINDER = "grinder"
    CHALLENGE_ACCEPTED = "challenge_accepted"
    LEGEND = "legend"
    SHIELD_BEARER = "shield_bearer"


class ChallengeType(enum.StrEnum):
    """How a daily challenge measures progress."""
    SUBMIT_N = "submit_n"
    EARLY_SUBMIT = "early_submit"
    STREAK = "streak"
    POINTS = "points"
    CUSTOM_TASK = "custom_task"
    # Catalogued but without a progress rule
    CLEAR_WEEK = "clear_week"
    COURSE_SWEEP = "course_sweep"
    DAILY_RUN = "daily_run"


class Difficulty(enum.StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class RewardRarity(enum.StrEnum):
    COMMON = "common"
    RARE = "rare"
    LEGENDARY = "legendary"


class RewardType(enum.StrEnum):
    VIRTUAL = "virtual"
    REAL = "real"


# ---------------------------------------------------------------------------
# Users — one row per identity-provider user
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(100), default=None)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    streak_count: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date, default=None)
    streak_shields: Mapped[int] = mapped_column(Integer, default=0)
    xp_multiplier_day: Mapped[int | None] = mapped_column(Integer, default=None)  # 0=Mon … 6=Sun
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    ledger_entries: Mapped[list[PointsLedgerEntry]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    achievements: Mapped[list[UserAchievement]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "streak_shields >= 0 AND streak_shields <= 3", name="ck_users_shields_range"
        ),
        CheckConstraint(
            "xp_multiplier_day IS NULL OR (xp_multiplier_day >= 0 AND xp_multiplier_day <= 6)",
            name="ck_users_multiplier_day",
        ),
        Index("ix_users_total_points_desc", "total_points"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} external={self.external_id!r} pts={self.total_points}>"


# ---------------------------------------------------------------------------
# Courses — owned by a user, pushed by the sync service
# ---------------------------------------------------------------------------
class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    external_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("user_id", "external_id", name="uq_courses_user_external"),
    )

    def __repr__(self) -> str:
        return f"<Course id={self.id} code={self.code!r}>"


# ---------------------------------------------------------------------------
# Assignments — course work; completion feeds the points ledger
# ---------------------------------------------------------------------------
class Assignment(Base):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    external_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AssignmentStatus.PENDING.value
    )
    manually_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False)
    urgent_order: Mapped[float | None] = mapped_column(Float, default=None)

    course: Mapped[Course] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "external_id", name="uq_assignments_user_external"),
        Index("ix_assignments_user", "user_id"),
        Index("ix_assignments_user_urgent", "user_id", "is_urgent"),
    )

    def __repr__(self) -> str:
        return f"<Assignment id={self.id} status={self.status!r}>"


# ---------------------------------------------------------------------------
# CustomTask — user-authored tasks with a fixed point value
# ---------------------------------------------------------------------------
class CustomTask(Base):
    __tablename__ = "custom_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    points_value: Mapped[int] = mapped_column(Integer, nullable=False)
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskStatus.PENDING.value
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False)
    urgent_order: Mapped[float | None] = mapped_column(Float, default=None)

    __table_args__ = (
        CheckConstraint(
            "points_value >= 1 AND points_value <= 100", name="ck_custom_tasks_points"
        ),
        Index("ix_custom_tasks_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<CustomTask id={self.id} status={self.status!r} pts={self.points_value}>"


# ---------------------------------------------------------------------------
# PointsLedgerEntry — append-only, never updated
# ---------------------------------------------------------------------------
class PointsLedgerEntry(Base):
    __tablename__ = "points_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    # Source links: set when the entry is reversible by un-completion
    assignment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True
    )
    custom_task_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("custom_tasks.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="ledger_entries")

    __table_args__ = (
        Index("ix_points_ledger_user_time", "user_id", "created_at"),
        Index("ix_points_ledger_assignment", "assignment_id"),
        Index("ix_points_ledger_custom_task", "custom_task_id"),
    )

    def __repr__(self) -> str:
        return f"<PointsLedgerEntry id={self.id} user={self.user_id} {self.delta:+d} {self.reason}>"


# ---------------------------------------------------------------------------
# StreakEvent — append-only streak event log
# ---------------------------------------------------------------------------
class StreakEvent(Base):
    """Shield consumption and milestone markers.

    Kept apart from the points ledger so that point totals only ever sum
    real deltas.
    """
    __tablename__ = "streak_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    milestone: Mapped[int | None] = mapped_column(Integer, nullable=True)
    occurred_on: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_streak_events_user_kind", "user_id", "kind"),
    )

    def __repr__(self) -> str:
        return f"<StreakEvent user={self.user_id} kind={self.kind} milestone={self.milestone}>"


# ---------------------------------------------------------------------------
# Achievement — fixed catalog
# ---------------------------------------------------------------------------
class Achievement(Base):
    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str | None] = mapped_column(String(50), default=None)
    color: Mapped[str | None] = mapped_column(String(20), default=None)
    bonus_points: Mapped[int] = mapped_column(Integer, default=0)

    unlocked_by: Mapped[list[UserAchievement]] = relationship(back_populates="achievement")

    def __repr__(self) -> str:
        return f"<Achievement key={self.key!r} bonus={self.bonus_points}>"


# ---------------------------------------------------------------------------
# UserAchievement — at most one per (user, achievement)
# ---------------------------------------------------------------------------
class UserAchievement(Base):
    __tablename__ = "user_achievements"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    achievement_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("achievements.id", ondelete="CASCADE"), primary_key=True
    )
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    seen: Mapped[bool] = mapped_column(Boolean, default=False)

    user: Mapped[User] = relationship(back_populates="achievements")
    achievement: Mapped[Achievement] = relationship(back_populates="unlocked_by")

    def __repr__(self) -> str:
        return f"<UserAchievement user={self.user_id} achievement={self.achievement_id}>"


# ---------------------------------------------------------------------------
# ChallengePoolItem — daily challenge catalog
# ---------------------------------------------------------------------------
class ChallengePoolItem(Base):
    __tablename__ = "challenge_pool"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    bonus_points: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False)

    def __repr__(self) -> str:
        return f"<ChallengePoolItem id={self.id} type={self.type!r} target={self.target_value}>"


# ---------------------------------------------------------------------------
# UserDailyChallenge — (user, date) keyed; 0 or 3 rows per pair
# ---------------------------------------------------------------------------
class UserDailyChallenge(Base):
    __tablename__ = "user_daily_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # No FK cascade: a pool item deleted later leaves a dangling id that
    # recomputation skips.
    challenge_id: Mapped[int] = mapped_column(Integer, nullable=False)
    challenge_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    bonus_awarded: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("ix_user_daily_challenges_user_date", "user_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<UserDailyChallenge user={self.user_id} date={self.challenge_date} done={self.completed}>"


# ---------------------------------------------------------------------------
# Leaderboard — invite-coded private group
# ---------------------------------------------------------------------------
class Leaderboard(Base):
    __tablename__ = "leaderboards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    invite_code: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    members: Mapped[list[LeaderboardMember]] = relationship(
        back_populates="leaderboard", cascade="all, delete-orphan",
        order_by="LeaderboardMember.id",
    )

    def __repr__(self) -> str:
        return f"<Leaderboard id={self.id} code={self.invite_code!r}>"


class LeaderboardMember(Base):
    __tablename__ = "leaderboard_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    leaderboard_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("leaderboards.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    leaderboard: Mapped[Leaderboard] = relationship(back_populates="members")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("leaderboard_id", "user_id", name="uq_leaderboard_members"),
        Index("ix_leaderboard_members_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<LeaderboardMember board={self.leaderboard_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Reward — milestone reward catalog
# ---------------------------------------------------------------------------
class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    rarity: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index("ix_rewards_rarity_active", "rarity", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Reward id={self.id} name={self.name!r} rarity={self.rarity}>"


class UserReward(Base):
    __tablename__ = "user_rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reward_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False
    )
    is_revealed: Mapped[bool] = mapped_column(Boolean, default=False)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    reward: Mapped[Reward] = relationship()

    __table_args__ = (
        Index("ix_user_rewards_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<UserReward user={self.user_id} reward={self.reward_id}>"


# ---------------------------------------------------------------------------
# Setting — gameplay tuning key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Point values and reward steps live here so they can be tuned without a
    redeploy.  Values are stored as JSON strings; typed reads go through
    :mod:`streakboard.services.settings_service`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"
