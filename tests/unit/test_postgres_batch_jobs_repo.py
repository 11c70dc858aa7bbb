"""Postgres repository error translation with a mocked session."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.jobs.errors import DuplicateKeyError, NotFoundError, PersistenceError
from app.jobs.expiry import utc_now
from app.schema.batch_jobs import BatchJob
from app.storage.postgres_batch_jobs_repo import PostgresBatchJobsRepository


class _SessionFactory:
  """Callable returning an async context manager around one mocked session."""

  def __init__(self, session: AsyncMock) -> None:
    self.session = session

  def __call__(self) -> _SessionFactory:
    return self

  async def __aenter__(self) -> AsyncMock:
    return self.session

  async def __aexit__(self, *exc_info: object) -> bool:
    return False


@pytest.fixture
def mock_db_session() -> AsyncMock:
  session = AsyncMock()
  session.add = MagicMock()
  result = MagicMock()
  result.scalar_one_or_none.return_value = None
  session.execute.return_value = result
  session.get.return_value = None
  return session


@pytest.fixture
def pg_repo(monkeypatch: pytest.MonkeyPatch, mock_db_session) -> PostgresBatchJobsRepository:
  factory = _SessionFactory(mock_db_session)
  monkeypatch.setattr("app.storage.postgres_batch_jobs_repo.get_session_factory", lambda: factory)
  return PostgresBatchJobsRepository()


def test_repository_requires_a_configured_database(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setattr("app.storage.postgres_batch_jobs_repo.get_session_factory", lambda: None)
  with pytest.raises(RuntimeError, match="Database not initialized"):
    PostgresBatchJobsRepository()


@pytest.mark.anyio
async def test_update_matching_zero_rows_is_not_found(pg_repo, mock_db_session) -> None:
  with pytest.raises(NotFoundError, match="batch_lost"):
    await pg_repo.update("batch_lost", status="in_progress")
  mock_db_session.rollback.assert_awaited_once()
  mock_db_session.commit.assert_not_awaited()


@pytest.mark.anyio
async def test_get_unknown_batch_is_not_found(pg_repo) -> None:
  with pytest.raises(NotFoundError):
    await pg_repo.get("batch_missing")


@pytest.mark.anyio
async def test_create_with_existing_id_is_duplicate(pg_repo, mock_db_session, make_record) -> None:
  mock_db_session.commit.side_effect = IntegrityError("INSERT INTO prepper.batch_jobs", {}, Exception("duplicate key value"))
  with pytest.raises(DuplicateKeyError, match="Batch already exists"):
    await pg_repo.create(make_record())


@pytest.mark.anyio
async def test_connection_loss_resets_engine_and_raises_persistence_error(monkeypatch: pytest.MonkeyPatch, pg_repo, mock_db_session) -> None:
  reset = AsyncMock()
  monkeypatch.setattr("app.storage.postgres_batch_jobs_repo.reset_engine", reset)
  mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("server closed the connection unexpectedly"))

  with pytest.raises(PersistenceError) as exc_info:
    await pg_repo.list_pending()

  assert not isinstance(exc_info.value, DuplicateKeyError)
  reset.assert_awaited_once()


def _pending_row(batch_id: str, request_params) -> BatchJob:
  now = utc_now()
  return BatchJob(
    batch_id=batch_id,
    remote_batch_id=f"msgbatch_{batch_id}",
    status="in_progress",
    certification_type="CV0-004",
    count=2,
    request_params=request_params,
    results=None,
    created_at=now,
    updated_at=now,
  )


@pytest.mark.anyio
async def test_list_pending_skips_rows_that_will_not_decode(pg_repo, mock_db_session) -> None:
  result = MagicMock()
  result.scalars.return_value.all.return_value = [
    _pending_row("batch_bad", {"count": "many"}),
    _pending_row("batch_good", {"certification_type": "CV0-004", "count": 2}),
  ]
  mock_db_session.execute.return_value = result

  records = await pg_repo.list_pending()

  assert [record.batch_id for record in records] == ["batch_good"]
  assert records[0].request_params.count == 2


@pytest.mark.anyio
async def test_update_can_clear_a_stale_error_message(pg_repo, mock_db_session) -> None:
  result = MagicMock()
  result.scalar_one_or_none.return_value = _pending_row("batch_done", {"certification_type": "CV0-004", "count": 2})
  mock_db_session.execute.return_value = result

  await pg_repo.update("batch_done", status="completed", results=[], clear_error=True)

  stmt = mock_db_session.execute.await_args.args[0]
  assert stmt.compile().params["error_message"] is None
  mock_db_session.commit.assert_awaited_once()
