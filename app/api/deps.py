"""Shared FastAPI dependencies for the job store and the remote model client."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from app.ai.providers.anthropic_batches import AnthropicBatchClient, MessageGenerator
from app.config import Settings, get_settings
from app.jobs.errors import PersistenceError, RemoteSubmissionError
from app.storage.batch_jobs_repo import BatchJobsRepository
from app.storage.factory import _get_batch_jobs_repo

logger = logging.getLogger(__name__)


def get_batch_repo(settings: Settings = Depends(get_settings)) -> BatchJobsRepository:  # noqa: B008
  """Resolve the batch job store; an unconfigured database surfaces as 503."""
  try:
    return _get_batch_jobs_repo(settings)
  except (ValueError, RuntimeError) as exc:
    logger.error("Batch job store unavailable: %s", exc)
    raise PersistenceError(str(exc)) from exc


@lru_cache(maxsize=1)
def _anthropic_client(settings: Settings) -> AnthropicBatchClient:
  return AnthropicBatchClient(settings)


def build_remote_client(settings: Settings) -> AnthropicBatchClient:
  """Return the shared Anthropic client; raises ValueError without an API key."""
  return _anthropic_client(settings)


def get_remote_client(settings: Settings = Depends(get_settings)) -> AnthropicBatchClient:  # noqa: B008
  try:
    return build_remote_client(settings)
  except ValueError as exc:
    logger.error("Remote model client unavailable: %s", exc)
    raise RemoteSubmissionError(str(exc)) from exc


def get_message_generator(settings: Settings = Depends(get_settings)) -> MessageGenerator:  # noqa: B008
  """Synchronous generation shares the Anthropic client with the batch path."""
  return get_remote_client(settings)
