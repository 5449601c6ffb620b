"""create progress schema

Revision ID: 3b9e1c7a2d40
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1c7a2d40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UUID = postgresql.UUID(as_uuid=True)
_EMPTY_LIST = sa.text("'[]'::jsonb")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, server_default=""),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="student"),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("daily_goal", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("weekly_goal", sa.Integer(), nullable=False, server_default="300"),
        sa.Column("monthly_goal", sa.Integer(), nullable=False, server_default="1200"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_learning_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_learning_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "courses",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(length=32), nullable=False, server_default="other"),
        sa.Column(
            "difficulty", sa.String(length=32), nullable=False, server_default="beginner"
        ),
        sa.Column("instructor_id", _UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("enrollment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "modules",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "course_id",
            _UUID,
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("module_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("contents", postgresql.JSONB(), nullable=False, server_default=_EMPTY_LIST),
        sa.Column(
            "prerequisite_modules",
            postgresql.ARRAY(_UUID),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "prerequisite_skills",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "prerequisite_courses",
            postgresql.ARRAY(_UUID),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "settings", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")
        ),
        sa.Column("created_by", _UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.UniqueConstraint("course_id", "module_number"),
    )
    op.create_index("ix_modules_course_id", "modules", ["course_id"])

    op.create_table(
        "course_progress",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "course_id",
            _UUID,
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_access_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "modules_completed", postgresql.JSONB(), nullable=False, server_default=_EMPTY_LIST
        ),
        sa.Column("completion_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_module", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("quiz_passed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "achievements", postgresql.JSONB(), nullable=False, server_default=_EMPTY_LIST
        ),
        sa.UniqueConstraint("user_id", "course_id"),
        sa.CheckConstraint(
            "completion_percentage BETWEEN 0 AND 100",
            name="ck_course_progress_percentage",
        ),
    )
    op.create_index("ix_course_progress_course_id", "course_progress", ["course_id"])

    op.create_table(
        "module_progress",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "course_id",
            _UUID,
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "module_id",
            _UUID,
            sa.ForeignKey("modules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="not-started"),
        sa.Column("contents", postgresql.JSONB(), nullable=False, server_default=_EMPTY_LIST),
        sa.Column("completion_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("estimated_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "achievements", postgresql.JSONB(), nullable=False, server_default=_EMPTY_LIST
        ),
        sa.UniqueConstraint("user_id", "module_id"),
    )


def downgrade() -> None:
    op.drop_table("module_progress")
    op.drop_index("ix_course_progress_course_id", table_name="course_progress")
    op.drop_table("course_progress")
    op.drop_index("ix_modules_course_id", table_name="modules")
    op.drop_table("modules")
    op.drop_table("courses")
    op.drop_table("users")
