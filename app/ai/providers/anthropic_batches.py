"""Anthropic Message Batches client used by the batch and single generation paths."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import anthropic
import httpx
from anthropic import AsyncAnthropic

from app.config import Settings
from app.jobs.errors import RemoteRetrievalError, RemoteSubmissionError


@dataclass(frozen=True)
class BatchRequest:
  """One prompt inside a remote batch."""

  custom_id: str
  prompt: str


@dataclass(frozen=True)
class RemoteBatchStatus:
  """Remote processing state of a batch."""

  processing_status: str
  processed: int = 0
  total: int = 0


class RemoteBatchClient(Protocol):
  """Contract shared by the Anthropic client and test doubles."""

  async def create_batch(self, requests: list[BatchRequest]) -> str: ...

  async def get_status(self, remote_batch_id: str) -> RemoteBatchStatus: ...

  async def fetch_results(self, remote_batch_id: str) -> str: ...


class MessageGenerator(Protocol):
  """Synchronous-path contract: one prompt in, raw model text out."""

  async def generate_text(self, prompt: str) -> str: ...


class AnthropicBatchClient:
  """Anthropic client with explicit timeouts on every remote call."""

  def __init__(self, settings: Settings) -> None:
    if not settings.anthropic_api_key:
      raise ValueError("ANTHROPIC_API_KEY environment variable is required")

    self._settings = settings
    self._timeout = settings.remote_timeout_seconds
    self._logger = logging.getLogger("app.ai.providers.anthropic_batches")
    # Retries are left to the poller's next tick.
    self._client = AsyncAnthropic(api_key=settings.anthropic_api_key, base_url=settings.anthropic_base_url, timeout=self._timeout, max_retries=0)

  def _request_params(self, prompt: str, model: str) -> dict[str, Any]:
    return {
      "model": model,
      "max_tokens": self._settings.max_tokens,
      "temperature": self._settings.temperature,
      "messages": [{"role": "user", "content": prompt}],
    }

  async def create_batch(self, requests: list[BatchRequest]) -> str:
    """Submit all prompts as one batch and return the remote batch id."""
    payload = [{"custom_id": request.custom_id, "params": self._request_params(request.prompt, self._settings.batch_model)} for request in requests]

    try:
      batch = await asyncio.wait_for(self._client.messages.batches.create(requests=payload), timeout=self._timeout)
    except (TimeoutError, anthropic.APIError) as exc:
      self._logger.error("Remote batch submission failed requests=%s error=%s", len(requests), exc)
      raise RemoteSubmissionError(f"Batch submission failed: {exc}") from exc

    remote_batch_id = getattr(batch, "id", None)
    if not remote_batch_id:
      raise RemoteSubmissionError("Batch submission returned no batch id")

    self._logger.info("Submitted remote batch remote_batch_id=%s requests=%s", remote_batch_id, len(requests))
    return str(remote_batch_id)

  async def get_status(self, remote_batch_id: str) -> RemoteBatchStatus:
    try:
      batch = await asyncio.wait_for(self._client.messages.batches.retrieve(remote_batch_id), timeout=self._timeout)
    except (TimeoutError, anthropic.APIError) as exc:
      raise RemoteRetrievalError(f"Status check failed for {remote_batch_id}: {exc}") from exc

    counts = batch.request_counts
    processed = counts.succeeded + counts.errored + counts.canceled + counts.expired
    return RemoteBatchStatus(processing_status=str(batch.processing_status), processed=processed, total=processed + counts.processing)

  async def fetch_results(self, remote_batch_id: str) -> str:
    """Return the raw NDJSON results body for a finished batch."""
    url = f"{self._settings.anthropic_base_url}/v1/messages/batches/{remote_batch_id}/results"
    headers = {"x-api-key": self._settings.anthropic_api_key or "", "anthropic-version": self._settings.anthropic_version}
    timeout = httpx.Timeout(self._timeout, connect=min(10.0, self._timeout))

    try:
      async with httpx.AsyncClient(timeout=timeout) as client:
        response = await asyncio.wait_for(client.get(url, headers=headers), timeout=self._timeout)
        response.raise_for_status()
    except (TimeoutError, httpx.HTTPError) as exc:
      raise RemoteRetrievalError(f"Results download failed for {remote_batch_id}: {exc}") from exc

    return response.text

  async def generate_text(self, prompt: str) -> str:
    """Run one synchronous messages call on the single-question model."""
    try:
      message = await asyncio.wait_for(self._client.messages.create(**self._request_params(prompt, self._settings.single_model)), timeout=self._timeout)
    except (TimeoutError, anthropic.APIError) as exc:
      self._logger.error("Single generation call failed error=%s", exc)
      raise RemoteSubmissionError(f"Question generation failed: {exc}") from exc

    for block in message.content:
      text = getattr(block, "text", None)
      if text:
        return text
    return ""
