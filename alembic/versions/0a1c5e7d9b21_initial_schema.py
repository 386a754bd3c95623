"""Initial schema

Revision ID: 0a1c5e7d9b21
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0a1c5e7d9b21"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("external_id", sa.String(128), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("total_points", sa.Integer(), server_default="0"),
        sa.Column("streak_count", sa.Integer(), server_default="0"),
        sa.Column("longest_streak", sa.Integer(), server_default="0"),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("streak_shields", sa.Integer(), server_default="0"),
        sa.Column("xp_multiplier_day", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "streak_shields >= 0 AND streak_shields <= 3", name="ck_users_shields_range",
        ),
        sa.CheckConstraint(
            "xp_multiplier_day IS NULL OR (xp_multiplier_day >= 0 AND xp_multiplier_day <= 6)",
            name="ck_users_multiplier_day",
        ),
    )
    op.create_index("ix_users_total_points_desc", "users", ["total_points"])

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False, server_default=""),
        sa.UniqueConstraint("user_id", "external_id", name="uq_courses_user_external"),
    )

    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("manually_completed", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_urgent", sa.Boolean(), server_default=sa.false()),
        sa.Column("urgent_order", sa.Float(), nullable=True),
        sa.UniqueConstraint("user_id", "external_id", name="uq_assignments_user_external"),
    )
    op.create_index("ix_assignments_user", "assignments", ["user_id"])
    op.create_index("ix_assignments_user_urgent", "assignments", ["user_id", "is_urgent"])

    op.create_table(
        "custom_tasks",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("points_value", sa.Integer(), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_urgent", sa.Boolean(), server_default=sa.false()),
        sa.Column("urgent_order", sa.Float(), nullable=True),
        sa.CheckConstraint(
            "points_value >= 1 AND points_value <= 100", name="ck_custom_tasks_points",
        ),
    )
    op.create_index("ix_custom_tasks_user", "custom_tasks", ["user_id"])

    op.create_table(
        "points_ledger",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(30), nullable=False),
        sa.Column("assignment_id", sa.Integer(), sa.ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("custom_task_id", sa.Integer(), sa.ForeignKey("custom_tasks.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
    )
    op.create_index("ix_points_ledger_user_time", "points_ledger", ["user_id", "created_at"])
    op.create_index("ix_points_ledger_assignment", "points_ledger", ["assignment_id"])
    op.create_index("ix_points_ledger_custom_task", "points_ledger", ["custom_task_id"])

    op.create_table(
        "streak_events",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column("milestone", sa.Integer(), nullable=True),
        sa.Column("occurred_on", sa.Date(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_streak_events_user_kind", "streak_events", ["user_id", "kind"])

    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("key", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("bonus_points", sa.Integer(), server_default="0"),
    )

    op.create_table(
        "user_achievements",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("achievement_id", sa.Integer(), sa.ForeignKey("achievements.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("seen", sa.Boolean(), server_default=sa.false()),
    )

    op.create_table(
        "challenge_pool",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("target_value", sa.Integer(), nullable=False),
        sa.Column("bonus_points", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.String(10), nullable=False),
    )

    op.create_table(
        "user_daily_challenges",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("challenge_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("progress", sa.Integer(), server_default="0"),
        sa.Column("completed", sa.Boolean(), server_default=sa.false()),
        sa.Column("bonus_awarded", sa.Boolean(), server_default=sa.false()),
    )
    op.create_index(
        "ix_user_daily_challenges_user_date", "user_daily_challenges", ["user_id", "date"],
    )

    op.create_table(
        "leaderboards",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("invite_code", sa.String(8), nullable=False, unique=True),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
    )

    op.create_table(
        "leaderboard_members",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("leaderboard_id", sa.Integer(), sa.ForeignKey("leaderboards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("leaderboard_id", "user_id", name="uq_leaderboard_members"),
    )
    op.create_index("ix_leaderboard_members_user", "leaderboard_members", ["user_id"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("rarity", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
    )
    op.create_index("ix_rewards_rarity_active", "rewards", ["rarity", "is_active"])

    op.create_table(
        "user_rewards",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reward_id", sa.Integer(), sa.ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_revealed", sa.Boolean(), server_default=sa.false()),
        sa.Column("earned_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_user_rewards_user", "user_rewards", ["user_id"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_settings_category", "settings", ["category"])


def downgrade() -> None:
    for table in (
        "settings",
        "user_rewards",
        "rewards",
        "leaderboard_members",
        "leaderboards",
        "user_daily_challenges",
        "challenge_pool",
        "user_achievements",
        "achievements",
        "streak_events",
        "points_ledger",
        "custom_tasks",
        "assignments",
        "courses",
        "users",
    ):
        op.drop_table(table)
