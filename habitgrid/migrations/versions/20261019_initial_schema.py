"""users, auth tokens and habits tables

Revision ID: 20261019_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255)),
        sa.Column("timezone", sa.String(length=64)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)

    op.create_table(
        "session_token",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("jti", sa.String(length=64), nullable=False),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("jti", name="uq_session_token_jti"),
    )
    op.create_index("ix_session_token_user_id", "session_token", ["user_id"])

    op.create_table(
        "jwt_blocklist",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("jti", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("jti", name="uq_jwt_blocklist_jti"),
    )

    op.create_table(
        "habits_habit",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("category", sa.String(length=64)),
        sa.Column("color_hex", sa.String(length=7)),
        sa.Column("icon", sa.String(length=16)),
        sa.Column("frequency", sa.String(length=16), nullable=False, server_default="daily"),
        sa.Column("frequency_config", sa.JSON(), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_habits_habit_user_id", "habits_habit", ["user_id"])
    op.create_index(
        "ix_habits_habit_user_archived_sort",
        "habits_habit",
        ["user_id", "is_archived", "sort_order"],
    )

    op.create_table(
        "habits_completion",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "habit_id",
            sa.Integer(),
            sa.ForeignKey("habits_habit.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("completed_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.UniqueConstraint("habit_id", "completed_date", name="uq_habits_completion_habit_date"),
    )
    op.create_index("ix_habits_completion_habit_id", "habits_completion", ["habit_id"])
    op.create_index("ix_habits_completion_date", "habits_completion", ["completed_date"])


def downgrade():
    op.drop_index("ix_habits_completion_date", table_name="habits_completion")
    op.drop_index("ix_habits_completion_habit_id", table_name="habits_completion")
    op.drop_table("habits_completion")
    op.drop_index("ix_habits_habit_user_archived_sort", table_name="habits_habit")
    op.drop_index("ix_habits_habit_user_id", table_name="habits_habit")
    op.drop_table("habits_habit")
    op.drop_table("jwt_blocklist")
    op.drop_index("ix_session_token_user_id", table_name="session_token")
    op.drop_table("session_token")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
