"""Batch validation and submission."""

from __future__ import annotations

import pytest

from app.api.models import GenerateBatchRequest
from app.jobs.errors import RemoteSubmissionError, ValidationError
from app.jobs.models import BatchRequestParams
from app.services.batches import build_batch_requests, build_request_params, submission_metadata, submit_batch


@pytest.mark.parametrize(
  ("body", "message"),
  [
    ({"count": 2}, "certification_type is required"),
    ({"certificationType": "AZ-104", "count": 2}, "Invalid certification_type. Must be CV0-004 or SAA-C03"),
    ({"certificationType": "CV0-004"}, "count is required"),
    ({"certificationType": "CV0-004", "count": 0}, "count must be at least 1"),
  ],
)
def test_build_request_params_rejects_invalid_filters(body, message) -> None:
  with pytest.raises(ValidationError) as exc_info:
    build_request_params(GenerateBatchRequest.model_validate(body))
  assert str(exc_info.value) == message


def test_build_request_params_accepts_snake_and_camel_case() -> None:
  camel = build_request_params(GenerateBatchRequest.model_validate({"certificationType": "SAA-C03", "count": 4, "domainName": "", "multipleAnswers": True}))
  snake = build_request_params(GenerateBatchRequest.model_validate({"certification_type": "SAA-C03", "count": 4, "multiple_answers": True}))
  assert camel == snake == BatchRequestParams(certification_type="SAA-C03", count=4, multiple_answers=True)


def test_build_batch_requests_makes_one_single_question_prompt_each() -> None:
  params = BatchRequestParams(certification_type="CV0-004", count=3, domain_name="Cloud Security")
  requests = build_batch_requests(params, "batch_42_deadbeef", now_ms=42)

  assert [request.custom_id for request in requests] == [
    "question_1_42_batch_42_deadbeef",
    "question_2_42_batch_42_deadbeef",
    "question_3_42_batch_42_deadbeef",
  ]
  assert all("Generate 1 question(s)" in request.prompt for request in requests)
  assert all("DOMAIN FOCUS: Cloud Security (Weight: 19%)" in request.prompt for request in requests)


@pytest.mark.anyio
async def test_submit_batch_persists_pending_job(repo, remote) -> None:
  params = BatchRequestParams(certification_type="CV0-004", count=2, skill_level="Expert")
  record = await submit_batch(params, repo=repo, remote=remote, owner_user_id=7, owner_username="admin")

  assert record.status == "pending"
  assert record.remote_batch_id == "msgbatch_test"
  assert record.batch_id.startswith("batch_")
  assert record.results is None
  assert repo.jobs[record.batch_id] == record
  assert len(remote.submitted) == 1
  assert len(remote.submitted[0]) == 2
  assert all(request.custom_id.endswith(record.batch_id) for request in remote.submitted[0])

  metadata = submission_metadata(record)
  assert metadata["submitted_by"] == "admin"
  assert metadata["skill_level"] == "Expert"
  assert metadata["count"] == 2


@pytest.mark.anyio
async def test_remote_failure_persists_nothing(repo, remote) -> None:
  remote.submit_error = RemoteSubmissionError("Batch submission failed: overloaded")
  params = BatchRequestParams(certification_type="CV0-004", count=1)

  with pytest.raises(RemoteSubmissionError):
    await submit_batch(params, repo=repo, remote=remote)

  assert repo.jobs == {}
