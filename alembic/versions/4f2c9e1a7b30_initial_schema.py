"""initial_schema

Revision ID: 4f2c9e1a7b30
Revises:
Create Date: 2026-10-18 09:12:44.201337

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2c9e1a7b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, food_items and fasting_state_summaries tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(256), nullable=True, unique=True),
        sa.Column("display_name", sa.String(128), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.String(16), nullable=True),
        sa.Column("activity_level", sa.String(16), nullable=True),
        sa.Column("goal_weight", sa.Float(), nullable=True),
        sa.Column("goal_days", sa.Integer(), nullable=True),
        sa.Column("goal_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("daily_goal_calories", sa.Integer(), nullable=True),
        sa.Column("daily_deficit", sa.Integer(), nullable=True),
        sa.Column(
            "cumulative_net_calories",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("last_balance_update_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fasting_tracking_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("buffer_amount", sa.Integer(), nullable=True),
        sa.Column("buffer_for_date", sa.String(10), nullable=True),
        sa.Column("tz_mode", sa.String(16), nullable=True),
        sa.Column("tz_name", sa.String(64), nullable=True),
        sa.Column("tz_offset_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    )

    op.create_table(
        "food_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("calories", sa.Float(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("meal_type", sa.String(32), nullable=True),
        sa.Column("protein", sa.Float(), nullable=True),
        sa.Column("carbs", sa.Float(), nullable=True),
        sa.Column("fat", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_food_user_timestamp", "food_items", ["user_id", "timestamp"])

    op.create_table(
        "fasting_state_summaries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("fed_seconds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("post_absorptive_seconds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("fat_burning_seconds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("deep_ketosis_seconds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("autophagy_seconds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "date", name="uq_fasting_user_date"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("fasting_state_summaries")
    op.drop_index("ix_food_user_timestamp", table_name="food_items")
    op.drop_table("food_items")
    op.drop_table("users")
