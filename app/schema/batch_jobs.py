from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class BatchJob(Base):
  __tablename__ = "batch_jobs"
  __table_args__ = (
    Index("ix_batch_jobs_status_created_at", "status", "created_at"),
    Index("ix_prepper_batch_jobs_remote_batch_id", "remote_batch_id"),
    CheckConstraint("status IN ('pending', 'validating', 'in_progress', 'completed', 'expired', 'cancelled', 'error')", name="ck_batch_jobs_status"),
    {"schema": "prepper"},
  )

  batch_id: Mapped[str] = mapped_column(String, primary_key=True)
  remote_batch_id: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False)
  user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
  username: Mapped[str | None] = mapped_column(String, nullable=True)
  certification_type: Mapped[str] = mapped_column(String, nullable=False)
  domain_name: Mapped[str | None] = mapped_column(String, nullable=True)
  cognitive_level: Mapped[str | None] = mapped_column(String, nullable=True)
  skill_level: Mapped[str | None] = mapped_column(String, nullable=True)
  count: Mapped[int] = mapped_column(Integer, nullable=False)
  scenario_context: Mapped[str | None] = mapped_column(Text, nullable=True)
  request_params: Mapped[dict] = mapped_column(JSONB, nullable=False)
  results: Mapped[list | None] = mapped_column(JSONB, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  last_polled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
