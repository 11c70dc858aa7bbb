"""Create prepper.batch_jobs for asynchronous question generation.

Revision ID: 7c1e4a9b2d10
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from app.core.migration_guards import guarded_create_index, guarded_create_schema, guarded_create_table, guarded_drop_index, guarded_drop_table
from sqlalchemy.dialects import postgresql

revision = "7c1e4a9b2d10"
down_revision = None
branch_labels = None
depends_on = None

SCHEMA = "prepper"


def upgrade() -> None:
  """Upgrade schema."""
  guarded_create_schema(SCHEMA)
  guarded_create_table(
    "batch_jobs",
    sa.Column("batch_id", sa.String(), nullable=False),
    sa.Column("remote_batch_id", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("user_id", sa.Integer(), nullable=True),
    sa.Column("username", sa.String(), nullable=True),
    sa.Column("certification_type", sa.String(), nullable=False),
    sa.Column("domain_name", sa.String(), nullable=True),
    sa.Column("cognitive_level", sa.String(), nullable=True),
    sa.Column("skill_level", sa.String(), nullable=True),
    sa.Column("count", sa.Integer(), nullable=False),
    sa.Column("scenario_context", sa.Text(), nullable=True),
    sa.Column("request_params", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("results", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("last_polled_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.CheckConstraint("status IN ('pending', 'validating', 'in_progress', 'completed', 'expired', 'cancelled', 'error')", name="ck_batch_jobs_status"),
    sa.PrimaryKeyConstraint("batch_id"),
    schema=SCHEMA,
  )
  guarded_create_index("ix_batch_jobs_status_created_at", "batch_jobs", ["status", "created_at"], unique=False, schema=SCHEMA)
  guarded_create_index(op.f("ix_prepper_batch_jobs_remote_batch_id"), "batch_jobs", ["remote_batch_id"], unique=False, schema=SCHEMA)


def downgrade() -> None:
  """Downgrade schema."""
  guarded_drop_index(op.f("ix_prepper_batch_jobs_remote_batch_id"), table_name="batch_jobs", schema=SCHEMA)
  guarded_drop_index("ix_batch_jobs_status_created_at", table_name="batch_jobs", schema=SCHEMA)
  guarded_drop_table("batch_jobs", schema=SCHEMA)
