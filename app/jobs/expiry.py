"""Age-based expiry shared by the poller and the read path."""

from __future__ import annotations

from datetime import UTC, datetime

from app.jobs.models import BatchJobRecord


def utc_now() -> datetime:
  return datetime.now(UTC)


def age_hours(record: BatchJobRecord, *, now: datetime) -> float:
  created_at = record.created_at
  # Naive timestamps from the database are stored in UTC.
  if created_at.tzinfo is None:
    created_at = created_at.replace(tzinfo=UTC)
  return (now - created_at).total_seconds() / 3600.0


def _format_hours(value: float) -> str:
  return f"{value:g}"


def pending_age_exceeded(record: BatchJobRecord, *, max_age_hours: float, now: datetime) -> str | None:
  """Return the expiry message when a non-terminal job is older than the limit, else None."""
  if not record.is_pending:
    return None

  hours = age_hours(record, now=now)
  if hours <= max_age_hours:
    return None

  return f"Batch exceeded maximum pending age of {_format_hours(max_age_hours)} hours. Age: {hours:.2f} hours."
