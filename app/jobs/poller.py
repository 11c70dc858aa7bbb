"""Background reconciliation of pending batch jobs with the remote batch API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Final

from app.ai.batch_results import parse_batch_results
from app.ai.providers.anthropic_batches import RemoteBatchClient
from app.config import Settings
from app.jobs.errors import PersistenceError, RemoteRetrievalError
from app.jobs.expiry import pending_age_exceeded, utc_now
from app.jobs.models import BatchJobRecord, BatchStatus
from app.services.sql_export import save_batch_results_to_file
from app.storage.batch_jobs_repo import BatchJobsRepository

_REMOTE_STATUS_MAP: Final[dict[str, BatchStatus]] = {
  "ended": "completed",
  "in_progress": "in_progress",
  "validating": "validating",
  "pending": "pending",
  "expired": "expired",
  "cancelled": "cancelled",
  "canceled": "cancelled",
  # Cancellation is still winding down on the remote side.
  "canceling": "in_progress",
}

# In-flight statuses only move forward; a lower-ranked remote answer keeps the current one.
_IN_FLIGHT_RANK: Final[dict[str, int]] = {"pending": 0, "validating": 1, "in_progress": 2}


def map_remote_status(raw_status: str | None, *, logger: logging.Logger | None = None) -> BatchStatus:
  """Map the remote processing status onto the local status vocabulary."""
  mapped = _REMOTE_STATUS_MAP.get((raw_status or "").strip().lower())
  if mapped is None:
    (logger or logging.getLogger(__name__)).warning("Unknown remote batch status %r; treating as pending", raw_status)
    return "pending"
  return mapped


@dataclass
class CycleSummary:
  processed: int = 0
  updated: int = 0
  failed: int = 0

  def as_dict(self) -> dict[str, int]:
    return {"processed": self.processed, "updated": self.updated, "failed": self.failed}


class BatchPoller:
  """Periodically reconciles pending jobs; ticks never overlap."""

  def __init__(self, *, repo: BatchJobsRepository, remote: RemoteBatchClient, settings: Settings) -> None:
    self._repo = repo
    self._remote = remote
    self._settings = settings
    self._interval = settings.poll_interval_seconds
    self._logger = logging.getLogger(__name__)
    self._lock = asyncio.Lock()
    self._task: asyncio.Task[None] | None = None

  @property
  def running(self) -> bool:
    return self._task is not None and not self._task.done()

  def start(self) -> None:
    """Schedule the loop on the running event loop; the first cycle runs immediately."""
    if self.running:
      return
    self._task = asyncio.get_running_loop().create_task(self._loop(), name="batch-poller")
    self._task.add_done_callback(self._log_task_failure)
    self._logger.info("Batch poller started interval_seconds=%s", self._interval)

  async def stop(self) -> None:
    """Cancel the loop and wait for it to settle."""
    task = self._task
    self._task = None
    if task is None:
      return
    task.cancel()
    try:
      await task
    except asyncio.CancelledError:
      pass
    except Exception:  # noqa: BLE001
      # Already reported by the done callback; shutdown must carry on.
      self._logger.warning("Batch poller ended with an error before stop.", exc_info=True)
    self._logger.info("Batch poller stopped.")

  def _log_task_failure(self, task: asyncio.Task[None]) -> None:
    if task.cancelled():
      return
    exc = task.exception()
    if exc is not None:
      self._logger.error("Batch poller task failed: %s", exc, exc_info=exc)

  async def _loop(self) -> None:
    while True:
      try:
        await self.run_cycle()
      except Exception:  # noqa: BLE001
        self._logger.error("Batch poll cycle failed; retrying next tick.", exc_info=True)
      await asyncio.sleep(self._interval)

  async def run_cycle(self) -> dict[str, int]:
    """Run one scan-and-update cycle; a tick that finds the previous one running is skipped."""
    summary = CycleSummary()
    if self._lock.locked():
      self._logger.info("Previous poll cycle still running; skipping tick.")
      return summary.as_dict()

    async with self._lock:
      try:
        jobs = await self._repo.list_pending()
      except PersistenceError:
        self._logger.error("Unable to list pending batch jobs; retrying next tick.", exc_info=True)
        return summary.as_dict()

      if jobs:
        self._logger.info("Polling %s pending batch job(s).", len(jobs))

      for job in jobs:
        summary.processed += 1
        if await self._process_job_safely(job):
          summary.updated += 1
        else:
          summary.failed += 1

    return summary.as_dict()

  async def _process_job_safely(self, job: BatchJobRecord) -> bool:
    """Process one job; failures are contained to that job."""
    try:
      await self._process_job(job)
      return True
    except RemoteRetrievalError as exc:
      # Transient remote failures leave the job untouched for the next tick.
      self._logger.warning("Remote status check failed batch_id=%s remote_batch_id=%s error=%s", job.batch_id, job.remote_batch_id, exc)
      return False
    except Exception as exc:  # noqa: BLE001
      self._logger.error("Batch job processing failed batch_id=%s remote_batch_id=%s", job.batch_id, job.remote_batch_id, exc_info=True)
      try:
        await self._repo.update(job.batch_id, status="error", error_message=str(exc) or type(exc).__name__)
      except Exception:  # noqa: BLE001
        self._logger.error("Unable to mark batch job as error batch_id=%s", job.batch_id, exc_info=True)
      return False

  async def _process_job(self, job: BatchJobRecord) -> None:
    now = utc_now()
    expiry_message = pending_age_exceeded(job, max_age_hours=self._settings.max_pending_age_hours, now=now)
    if expiry_message is not None:
      self._logger.warning("Expiring stale batch batch_id=%s message=%s", job.batch_id, expiry_message)
      await self._repo.update(job.batch_id, status="expired", error_message=expiry_message, completed_at=now)
      return

    remote_status = await self._remote.get_status(job.remote_batch_id)
    status = map_remote_status(remote_status.processing_status, logger=self._logger)
    self._logger.info(
      "Remote batch status batch_id=%s remote_batch_id=%s remote=%s local=%s processed=%s/%s",
      job.batch_id,
      job.remote_batch_id,
      remote_status.processing_status,
      status,
      remote_status.processed,
      remote_status.total,
    )

    if status == "completed":
      await self._complete_job(job)
      return

    if status in ("expired", "cancelled"):
      await self._repo.update(job.batch_id, status=status, error_message=f"Batch {status}", completed_at=utc_now())
      return

    if _IN_FLIGHT_RANK.get(status, 0) < _IN_FLIGHT_RANK.get(job.status, 0):
      self._logger.info("Keeping status batch_id=%s local=%s remote_mapped=%s", job.batch_id, job.status, status)
      status = job.status
    await self._repo.update(job.batch_id, status=status)

  async def _complete_job(self, job: BatchJobRecord) -> None:
    params = job.request_params
    try:
      text = await self._remote.fetch_results(job.remote_batch_id)
    except RemoteRetrievalError as exc:
      # Keep the last in-progress status so the next tick retries retrieval.
      self._logger.warning("Result retrieval failed batch_id=%s remote_batch_id=%s error=%s", job.batch_id, job.remote_batch_id, exc)
      await self._repo.update(job.batch_id, status=job.status, error_message=f"Failed to retrieve results: {exc}")
      return

    parsed = parse_batch_results(text, domain=params.domain_name, cognitive_level=params.cognitive_level, skill_level=params.skill_level)
    questions = parsed.questions
    if not questions and job.results:
      self._logger.warning("Retrieval produced no questions; keeping stored results batch_id=%s stored=%s", job.batch_id, len(job.results))
      questions = job.results

    await self._repo.update(job.batch_id, status="completed", results=questions, completed_at=utc_now(), clear_error=True)
    self._logger.info("Batch completed batch_id=%s questions=%s skipped=%s", job.batch_id, len(questions), len(parsed.skipped))

    if questions:
      metadata = params.to_dict()
      metadata.update({"batch_id": job.batch_id, "remote_batch_id": job.remote_batch_id, "generated_by": job.owner_username})
      save_batch_results_to_file(job.batch_id, questions, metadata, questions_dir=self._settings.questions_dir)
