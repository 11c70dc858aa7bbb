"""Postgres-backed repository for batch generation jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import msgspec
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session_factory, reset_engine
from app.jobs.errors import DuplicateKeyError, NotFoundError, ParseError, PersistenceError
from app.jobs.models import PENDING_STATUSES, BatchJobRecord, BatchRequestParams, BatchStatus
from app.schema.batch_jobs import BatchJob
from app.schema.questions import Question, questions_from_dicts, questions_to_dicts
from app.storage.batch_jobs_repo import BatchJobsRepository, coerce_owner_user_id
from app.utils.db_failures import classify_db_failure

logger = logging.getLogger(__name__)


class PostgresBatchJobsRepository(BatchJobsRepository):
  """Persist batch jobs to prepper.batch_jobs."""

  def __init__(self) -> None:
    if get_session_factory() is None:
      raise RuntimeError("Database not initialized")

  @asynccontextmanager
  async def _session(self, operation: str, batch_id: str | None = None) -> AsyncIterator[AsyncSession]:
    """Open a session and translate driver failures into PersistenceError."""
    # Resolve per call so a reset engine is picked up on the next operation.
    session_factory = get_session_factory()
    if session_factory is None:
      raise PersistenceError("Database not initialized")

    try:
      async with session_factory() as session:
        yield session
    except SQLAlchemyError as exc:
      classification = classify_db_failure(exc)
      logger.error("Batch job store failure operation=%s batch_id=%s category=%s sqlstate=%s", operation, batch_id, classification.category, classification.sqlstate or "none", exc_info=True)
      if classification.category == "integrity_error" and operation == "create":
        raise DuplicateKeyError(f"Batch already exists: {batch_id}") from exc
      if classification.reconnect:
        await reset_engine()
      raise PersistenceError(f"{operation} failed for batch {batch_id or '*'}: {classification.reason}") from exc
    except OSError as exc:
      # Socket-level failures surface before SQLAlchemy wraps them.
      logger.error("Batch job store connection failure operation=%s batch_id=%s", operation, batch_id, exc_info=True)
      await reset_engine()
      raise PersistenceError(f"{operation} failed for batch {batch_id or '*'}: {exc}") from exc

  async def create(self, record: BatchJobRecord) -> BatchJobRecord:
    params = record.request_params
    async with self._session("create", record.batch_id) as session:
      row = BatchJob(
        batch_id=record.batch_id,
        remote_batch_id=record.remote_batch_id,
        status=record.status,
        user_id=coerce_owner_user_id(record.owner_user_id),
        username=record.owner_username,
        certification_type=params.certification_type,
        domain_name=params.domain_name,
        cognitive_level=params.cognitive_level,
        skill_level=params.skill_level,
        count=params.count,
        scenario_context=params.scenario_context,
        request_params=params.to_dict(),
        results=questions_to_dicts(record.results) if record.results is not None else None,
        error_message=record.error_message,
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(row)
      await session.commit()
      logger.info("Stored batch job batch_id=%s remote_batch_id=%s", record.batch_id, record.remote_batch_id)
      return self._model_to_record(row)

  async def get(self, batch_id: str) -> BatchJobRecord:
    async with self._session("get", batch_id) as session:
      row = await session.get(BatchJob, batch_id)
      if row is None:
        raise NotFoundError(batch_id)
      return self._model_to_record(row)

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
    values: dict[str, Any] = {"updated_at": func.now(), "last_polled_at": func.now()}
    if status is not None:
      values["status"] = status
    # An empty list is a real outcome and must be written.
    if results is not None:
      values["results"] = questions_to_dicts(results)
    if error_message is not None:
      values["error_message"] = error_message
    elif clear_error:
      values["error_message"] = None
    if completed_at is not None:
      values["completed_at"] = completed_at

    async with self._session("update", batch_id) as session:
      stmt = update(BatchJob).where(BatchJob.batch_id == batch_id).values(**values).returning(BatchJob)
      result = await session.execute(stmt, execution_options={"synchronize_session": False})
      row = result.scalar_one_or_none()
      if row is None:
        await session.rollback()
        logger.error("Batch job update matched zero rows batch_id=%s", batch_id)
        raise NotFoundError(batch_id)
      await session.commit()
      return self._model_to_record(row)

  async def list_pending(self) -> list[BatchJobRecord]:
    async with self._session("list_pending") as session:
      stmt = select(BatchJob).where(BatchJob.status.in_(PENDING_STATUSES)).order_by(BatchJob.created_at.asc())
      rows = (await session.execute(stmt)).scalars().all()

    records: list[BatchJobRecord] = []
    for row in rows:
      # One undecodable row must not hide every other pending job.
      try:
        records.append(self._model_to_record(row))
      except (msgspec.ValidationError, ParseError):
        logger.error("Skipping undecodable pending batch job batch_id=%s", row.batch_id, exc_info=True)
    return records

  def _model_to_record(self, row: BatchJob) -> BatchJobRecord:
    return BatchJobRecord(
      batch_id=row.batch_id,
      remote_batch_id=row.remote_batch_id,
      status=row.status,  # type: ignore[arg-type]
      request_params=BatchRequestParams.from_dict(row.request_params),
      created_at=row.created_at,
      updated_at=row.updated_at,
      results=questions_from_dicts(row.results) if row.results is not None else None,
      error_message=row.error_message,
      last_polled_at=row.last_polled_at,
      completed_at=row.completed_at,
      owner_user_id=row.user_id,
      owner_username=row.username,
    )
