"""Storage interface for batch generation jobs."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from app.jobs.models import BatchJobRecord, BatchStatus
from app.schema.questions import Question

logger = logging.getLogger(__name__)


def coerce_owner_user_id(raw: Any) -> int | None:
  """Return a positive integer user id or None; never keep a malformed value."""
  if raw is None or isinstance(raw, bool):
    return None

  if isinstance(raw, int):
    return raw if raw > 0 else None

  if isinstance(raw, str) and raw.strip().isdigit():
    value = int(raw.strip())
    return value if value > 0 else None

  logger.warning("Ignoring malformed owner user id %r", raw)
  return None


class BatchJobsRepository(Protocol):
  """Repository contract for batch job persistence."""

  async def create(self, record: BatchJobRecord) -> BatchJobRecord:
    """Persist a new job; raises DuplicateKeyError when the batch id exists."""

  async def get(self, batch_id: str) -> BatchJobRecord:
    """Fetch a job; raises NotFoundError when absent."""

  async def update(
    self,
    batch_id: str,
    *,
    status: BatchStatus | None = None,
    results: list[Question] | None = None,
    error_message: str | None = None,
    completed_at: datetime | None = None,
    clear_error: bool = False,
  ) -> BatchJobRecord:
    """Apply supplied fields and refresh updated_at/last_polled_at; raises NotFoundError on zero rows.

    clear_error resets error_message to NULL unless a new message is supplied.
    """

  async def list_pending(self) -> list[BatchJobRecord]:
    """Return pending/validating/in_progress jobs, oldest first."""
