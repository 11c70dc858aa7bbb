"""Status and results projections over stored batch jobs."""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.jobs.errors import NotFoundError
from app.jobs.expiry import utc_now
from app.schema.questions import question_from_payload
from app.services.batches import get_batch_results, get_batch_status, project_record


@pytest.mark.anyio
async def test_unknown_batch_is_not_found(repo, settings) -> None:
  with pytest.raises(NotFoundError, match="Batch not found: batch_missing"):
    await get_batch_status("batch_missing", repo=repo, settings=settings)
  with pytest.raises(NotFoundError):
    await get_batch_results("batch_missing", repo=repo, settings=settings)


@pytest.mark.anyio
async def test_status_reports_progress_and_timestamps(repo, settings, make_record) -> None:
  record = await repo.create(make_record(status="in_progress", count=5))
  response = await get_batch_status(record.batch_id, repo=repo, settings=settings)

  assert response.success is True
  assert response.status == "in_progress"
  assert response.remote_batch_id == record.remote_batch_id
  assert response.progress.total == 5
  assert response.metadata["certification_type"] == "CV0-004"
  assert response.metadata["created_at"] == record.created_at.isoformat()
  assert response.metadata["completed_at"] is None
  assert response.error_message is None


@pytest.mark.anyio
async def test_stale_pending_job_reads_as_expired_without_a_write(repo, settings, make_record) -> None:
  record = await repo.create(make_record(status="validating", age=timedelta(hours=30)))

  status = await get_batch_status(record.batch_id, repo=repo, settings=settings)
  results = await get_batch_results(record.batch_id, repo=repo, settings=settings)

  assert status.status == "expired"
  assert status.error_message.startswith("Batch exceeded maximum pending age of 24 hours. Age: 30.0")
  assert results.success is False
  assert results.error == "Batch expired"
  assert results.error_message == status.error_message
  assert repo.updates == []
  assert repo.jobs[record.batch_id].status == "validating"


def test_terminal_jobs_are_never_projected(settings, make_record) -> None:
  record = make_record(status="completed", age=timedelta(days=3))
  assert project_record(record, settings=settings) is record

  fresh = make_record(status="pending", age=timedelta(hours=1))
  assert project_record(fresh, settings=settings, now=utc_now()) is fresh


@pytest.mark.anyio
async def test_completed_results_return_questions(repo, settings, make_record, question_payload) -> None:
  questions = [question_from_payload(question_payload()), question_from_payload(question_payload(question_text="Second?"))]
  record = await repo.create(make_record(status="completed", results=questions))

  response = await get_batch_results(record.batch_id, repo=repo, settings=settings)

  assert response.success is True
  assert response.count == 2
  assert response.questions[0]["correct_answer"] == "Deploy the API active-active across two regions"
  assert response.questions[1]["question_text"] == "Second?"
  assert response.metadata["generated_by"] == "admin"
  assert response.error is None


@pytest.mark.anyio
async def test_unfinished_batch_returns_not_ready_body(repo, settings, make_record) -> None:
  record = await repo.create(make_record(status="in_progress"))
  response = await get_batch_results(record.batch_id, repo=repo, settings=settings)

  assert response.success is False
  assert response.status == "in_progress"
  assert response.error == "Batch is not completed"
  assert response.message == "Batch is still in progress (status: in_progress). Use the status endpoint to check batch progress."
  assert response.questions is None


@pytest.mark.anyio
async def test_errored_batch_exposes_partial_results(repo, settings, make_record, question_payload) -> None:
  partial = await repo.create(make_record("batch_partial", status="error", results=[question_from_payload(question_payload())], error_message="worker crashed"))
  empty = await repo.create(make_record("batch_empty", status="error"))

  with_results = await get_batch_results(partial.batch_id, repo=repo, settings=settings)
  without_results = await get_batch_results(empty.batch_id, repo=repo, settings=settings)

  assert with_results.error == "Batch processing failed"
  assert with_results.error_message == "worker crashed"
  assert with_results.partial_results is True
  assert len(with_results.questions) == 1
  assert without_results.partial_results is False
  assert without_results.questions is None
  assert without_results.error_message == "Unknown error occurred"


@pytest.mark.anyio
async def test_cancelled_batch_cannot_provide_results(repo, settings, make_record) -> None:
  record = await repo.create(make_record(status="cancelled"))
  response = await get_batch_results(record.batch_id, repo=repo, settings=settings)

  assert response.error == "Batch cancelled"
  assert response.error_message == "Batch was cancelled"
  assert response.message == "This batch cannot provide results as it was not completed successfully."
