"""Initial Smart Planner schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202601150900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "goals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("multiplier", sa.Float(), nullable=False, server_default=sa.text("1.0")),
        sa.Column("frequency", sa.String(length=100), nullable=True),
        sa.Column("category", sa.String(length=20), nullable=False, server_default=sa.text("'growth'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("multiplier >= 1 AND multiplier <= 5", name="ck_goals_multiplier_range"),
    )
    op.create_index("ix_goals_year", "goals", ["year"], unique=False)

    op.create_table(
        "monthly_plans",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("goal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["goal_id"], ["goals.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_monthly_plans_year_month", "monthly_plans", ["year", "month"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("scope", sa.String(length=10), nullable=False),
        sa.Column("scope_year", sa.Integer(), nullable=False),
        sa.Column("scope_month", sa.Integer(), nullable=True),
        sa.Column("scope_week", sa.Integer(), nullable=True),
        sa.Column("scope_day", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "ix_tasks_scope_coordinates",
        "tasks",
        ["scope", "scope_year", "scope_month", "scope_week", "scope_day"],
        unique=False,
    )
    op.create_index("ix_tasks_completed", "tasks", ["completed"], unique=False)

    op.create_table(
        "planner_settings",
        sa.Column("id", sa.String(length=20), primary_key=True, nullable=False),
        sa.Column(
            "working_days",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[1, 2, 3, 4, 5]'::jsonb"),
        ),
        sa.Column("daily_schedule", sa.Text(), nullable=True),
        sa.Column(
            "dynamic_sources",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "chat_messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("session_id", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_chat_messages_session_id", "chat_messages", ["session_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_chat_messages_session_id", table_name="chat_messages")
    op.drop_table("chat_messages")
    op.drop_table("planner_settings")
    op.drop_index("ix_tasks_completed", table_name="tasks")
    op.drop_index("ix_tasks_scope_coordinates", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_monthly_plans_year_month", table_name="monthly_plans")
    op.drop_table("monthly_plans")
    op.drop_index("ix_goals_year", table_name="goals")
    op.drop_table("goals")
