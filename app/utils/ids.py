"""Identifier utilities."""

from __future__ import annotations

import time
import uuid


def epoch_millis() -> int:
  return int(time.time() * 1000)


def generate_batch_id(now_ms: int | None = None) -> str:
  """Return a new local batch identifier: batch_<epoch-millis>_<random8>."""
  millis = now_ms if now_ms is not None else epoch_millis()
  return f"batch_{millis}_{uuid.uuid4().hex[:8]}"


def generate_custom_id(index: int, batch_id: str, now_ms: int | None = None) -> str:
  """Return the correlation id attached to the index-th (zero-based) request of a batch."""
  millis = now_ms if now_ms is not None else epoch_millis()
  return f"question_{index + 1}_{millis}_{batch_id}"
