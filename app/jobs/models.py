"""Domain models for asynchronous batch question generation jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final, Literal

import msgspec

from app.schema.questions import Question

BatchStatus = Literal["pending", "validating", "in_progress", "completed", "expired", "cancelled", "error"]

PENDING_STATUSES: Final[tuple[BatchStatus, ...]] = ("pending", "validating", "in_progress")
TERMINAL_STATUSES: Final[tuple[BatchStatus, ...]] = ("completed", "expired", "cancelled", "error")


class BatchRequestParams(msgspec.Struct, frozen=True):
  """Generation filters captured verbatim at submission time."""

  certification_type: str
  count: int
  domain_name: str | None = None
  cognitive_level: str | None = None
  skill_level: str | None = None
  scenario_context: str | None = None
  multiple_answers: bool = False

  def to_dict(self) -> dict[str, Any]:
    return msgspec.to_builtins(self)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> BatchRequestParams:
    return msgspec.convert(data, type=cls)


@dataclass(frozen=True)
class BatchJobRecord:
  """Represents one remote batch of question-generation requests."""

  batch_id: str
  remote_batch_id: str
  status: BatchStatus
  request_params: BatchRequestParams
  created_at: datetime
  updated_at: datetime
  results: list[Question] | None = None
  error_message: str | None = None
  last_polled_at: datetime | None = None
  completed_at: datetime | None = None
  owner_user_id: int | None = None
  owner_username: str | None = None

  @property
  def is_pending(self) -> bool:
    return self.status in PENDING_STATUSES
