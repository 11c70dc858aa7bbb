"""Batch submission and read-only projections over stored batch jobs."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Any

from app.ai.prompts import build_generation_prompt
from app.ai.providers.anthropic_batches import BatchRequest, RemoteBatchClient
from app.api.models import BatchProgress, BatchResultsResponse, BatchStatusResponse, GenerationFilters
from app.config import Settings
from app.jobs.errors import ValidationError
from app.jobs.expiry import pending_age_exceeded, utc_now
from app.jobs.models import BatchJobRecord, BatchRequestParams
from app.schema.certifications import CERTIFICATION_TYPES, is_supported_certification
from app.schema.questions import questions_to_dicts
from app.storage.batch_jobs_repo import BatchJobsRepository
from app.utils.ids import epoch_millis, generate_batch_id, generate_custom_id

logger = logging.getLogger(__name__)

_RESULTS_NOTE = "Use the status endpoint to check batch status. Results are only available for completed batches."


def validate_certification_type(certification_type: str | None) -> str:
  if not certification_type:
    raise ValidationError("certification_type is required")
  if not is_supported_certification(certification_type):
    raise ValidationError(f"Invalid certification_type. Must be {' or '.join(CERTIFICATION_TYPES)}")
  return certification_type


def build_request_params(filters: GenerationFilters) -> BatchRequestParams:
  """Validate batch filters; raises ValidationError before anything is submitted."""
  certification_type = validate_certification_type(filters.certification_type)

  if filters.count is None:
    raise ValidationError("count is required")
  if filters.count < 1:
    raise ValidationError("count must be at least 1")

  return BatchRequestParams(
    certification_type=certification_type,
    count=filters.count,
    domain_name=filters.domain_name or None,
    cognitive_level=filters.cognitive_level or None,
    skill_level=filters.skill_level or None,
    scenario_context=filters.scenario_context or None,
    multiple_answers=filters.multiple_answers,
  )


def build_batch_requests(params: BatchRequestParams, batch_id: str, *, now_ms: int) -> list[BatchRequest]:
  """One single-question prompt per requested question, each with its own correlation id."""
  prompt = build_generation_prompt(
    certification_type=params.certification_type,
    count=1,
    domain_name=params.domain_name,
    cognitive_level=params.cognitive_level,
    skill_level=params.skill_level,
    scenario_context=params.scenario_context,
    multiple_answers=params.multiple_answers,
  )
  return [BatchRequest(custom_id=generate_custom_id(index, batch_id, now_ms), prompt=prompt) for index in range(params.count)]


async def submit_batch(
  params: BatchRequestParams,
  *,
  repo: BatchJobsRepository,
  remote: RemoteBatchClient,
  owner_user_id: Any = None,
  owner_username: str | None = None,
) -> BatchJobRecord:
  """Submit one remote batch for `params.count` questions and persist it as pending.

  Nothing is persisted when the remote submission fails.
  """
  now_ms = epoch_millis()
  batch_id = generate_batch_id(now_ms)
  requests = build_batch_requests(params, batch_id, now_ms=now_ms)

  logger.info("Submitting batch batch_id=%s certification=%s count=%s", batch_id, params.certification_type, params.count)
  remote_batch_id = await remote.create_batch(requests)

  now = utc_now()
  record = BatchJobRecord(
    batch_id=batch_id,
    remote_batch_id=remote_batch_id,
    status="pending",
    request_params=params,
    created_at=now,
    updated_at=now,
    owner_user_id=owner_user_id,
    owner_username=owner_username,
  )
  stored = await repo.create(record)
  logger.info("Batch submitted batch_id=%s remote_batch_id=%s", batch_id, remote_batch_id)
  return stored


def project_record(record: BatchJobRecord, *, settings: Settings, now: datetime | None = None) -> BatchJobRecord:
  """Apply read-time age expiry without writing it back."""
  message = pending_age_exceeded(record, max_age_hours=settings.max_pending_age_hours, now=now or utc_now())
  if message is None:
    return record
  return dataclasses.replace(record, status="expired", error_message=message)


def _iso(value: datetime | None) -> str | None:
  return value.isoformat() if value is not None else None


def _filters_metadata(record: BatchJobRecord) -> dict[str, Any]:
  params = record.request_params
  return {
    "certification_type": params.certification_type,
    "domain_name": params.domain_name,
    "cognitive_level": params.cognitive_level,
    "skill_level": params.skill_level,
    "count": params.count,
  }


def submission_metadata(record: BatchJobRecord) -> dict[str, Any]:
  metadata = _filters_metadata(record)
  metadata.update({"submitted_at": _iso(record.created_at), "submitted_by": record.owner_username})
  return metadata


async def get_batch_status(batch_id: str, *, repo: BatchJobsRepository, settings: Settings) -> BatchStatusResponse:
  """Return the status projection; raises NotFoundError for unknown batches."""
  record = project_record(await repo.get(batch_id), settings=settings)

  metadata = _filters_metadata(record)
  metadata.update(
    {
      "created_at": _iso(record.created_at),
      "updated_at": _iso(record.updated_at),
      "last_polled_at": _iso(record.last_polled_at),
      "completed_at": _iso(record.completed_at),
    }
  )
  return BatchStatusResponse(
    batch_id=record.batch_id,
    remote_batch_id=record.remote_batch_id,
    status=record.status,
    progress=BatchProgress(total=record.request_params.count),
    metadata=metadata,
    error_message=record.error_message,
  )


async def get_batch_results(batch_id: str, *, repo: BatchJobsRepository, settings: Settings) -> BatchResultsResponse:
  """Return stored questions, or a structured not-ready body for unfinished batches."""
  record = project_record(await repo.get(batch_id), settings=settings)
  status = record.status

  if status == "completed":
    questions = questions_to_dicts(record.results or [])
    params = record.request_params
    return BatchResultsResponse(
      success=True,
      batch_id=record.batch_id,
      status=status,
      count=len(questions),
      questions=questions,
      metadata={
        "certification_type": params.certification_type,
        "domain_name": params.domain_name,
        "cognitive_level": params.cognitive_level,
        "skill_level": params.skill_level,
        "completed_at": _iso(record.completed_at),
        "generated_by": record.owner_username,
      },
    )

  if status == "error":
    partial = questions_to_dicts(record.results or [])
    return BatchResultsResponse(
      success=False,
      batch_id=record.batch_id,
      status=status,
      error="Batch processing failed",
      error_message=record.error_message or "Unknown error occurred",
      partial_results=bool(partial),
      questions=partial or None,
      message="Batch processing failed. Partial results may be available if any were generated before the error.",
      note=_RESULTS_NOTE,
    )

  if status in ("expired", "cancelled"):
    return BatchResultsResponse(
      success=False,
      batch_id=record.batch_id,
      status=status,
      error=f"Batch {status}",
      error_message=record.error_message or f"Batch was {status}",
      message="This batch cannot provide results as it was not completed successfully.",
      note=_RESULTS_NOTE,
    )

  return BatchResultsResponse(
    success=False,
    batch_id=record.batch_id,
    status=status,
    error="Batch is not completed",
    message=f"Batch is still in progress (status: {status}). Use the status endpoint to check batch progress.",
    note="Results are only available for completed batches. Please wait for the batch to complete or check the status endpoint for updates.",
  )
