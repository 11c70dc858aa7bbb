"""Shared fixtures: test environment, in-memory doubles and an ASGI client."""

from __future__ import annotations

import json
import os
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

# Required settings must exist before the application is imported.
os.environ.setdefault("PREPPER_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("JWT_SECRET", "prepper-test-secret-0123456789abcdef0123456789")
os.environ["PREPPER_POLLER_ENABLED"] = "0"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.ai.providers.anthropic_batches import BatchRequest, RemoteBatchStatus  # noqa: E402
from app.config import Settings, get_settings  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.jobs.errors import DuplicateKeyError, NotFoundError, PersistenceError  # noqa: E402
from app.jobs.expiry import utc_now  # noqa: E402
from app.jobs.models import BatchJobRecord, BatchRequestParams, BatchStatus  # noqa: E402
from app.schema.questions import Question  # noqa: E402


class InMemoryBatchJobsRepo:
  """Dict-backed batch job store mirroring the Postgres repository contract."""

  def __init__(self) -> None:
    self.jobs: dict[str, BatchJobRecord] = {}
    self.updates: list[tuple[str, dict[str, Any]]] = []
    self.fail_listing = False

  async def create(self, record: BatchJobRecord) -> BatchJobRecord:
    if record.batch_id in self.jobs:
      raise DuplicateKeyError(f"Batch already exists: {record.batch_id}")
    self.jobs[record.batch_id] = record
    return record

  async def get(self, batch_id: str) -> BatchJobRecord:
    record = self.jobs.get(batch_id)
    if record is None:
      raise NotFoundError(batch_id)
    return record

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
    record = self.jobs.get(batch_id)
    if record is None:
      raise NotFoundError(batch_id)

    # Only supplied fields change; an empty results list is still written.
    changes = {key: value for key, value in {"status": status, "results": results, "error_message": error_message, "completed_at": completed_at}.items() if value is not None}
    if clear_error and error_message is None:
      changes["error_message"] = None
    self.updates.append((batch_id, changes))
    now = utc_now()
    updated = replace(record, **changes, updated_at=now, last_polled_at=now)
    self.jobs[batch_id] = updated
    return updated

  async def list_pending(self) -> list[BatchJobRecord]:
    if self.fail_listing:
      raise PersistenceError("list_pending failed for batch *: Connection failure")
    return sorted((record for record in self.jobs.values() if record.is_pending), key=lambda record: record.created_at)


class FakeRemoteBatchClient:
  """Scriptable stand-in for the remote batch API."""

  def __init__(self, remote_batch_id: str = "msgbatch_test") -> None:
    self.remote_batch_id = remote_batch_id
    self.statuses: dict[str, str] = {}
    self.results: dict[str, str] = {}
    self.submit_error: Exception | None = None
    self.status_errors: dict[str, Exception] = {}
    self.results_error: Exception | None = None
    self.submitted: list[list[BatchRequest]] = []
    self.status_calls: list[str] = []
    self.results_calls: list[str] = []

  async def create_batch(self, requests: list[BatchRequest]) -> str:
    if self.submit_error is not None:
      raise self.submit_error
    self.submitted.append(list(requests))
    return self.remote_batch_id

  async def get_status(self, remote_batch_id: str) -> RemoteBatchStatus:
    self.status_calls.append(remote_batch_id)
    if remote_batch_id in self.status_errors:
      raise self.status_errors[remote_batch_id]
    return RemoteBatchStatus(processing_status=self.statuses.get(remote_batch_id, "in_progress"))

  async def fetch_results(self, remote_batch_id: str) -> str:
    self.results_calls.append(remote_batch_id)
    if self.results_error is not None:
      raise self.results_error
    return self.results.get(remote_batch_id, "")


class FakeMessageGenerator:
  """Returns canned model text for the synchronous path."""

  def __init__(self, text: str = "[]") -> None:
    self.text = text
    self.error: Exception | None = None
    self.prompts: list[str] = []

  async def generate_text(self, prompt: str) -> str:
    self.prompts.append(prompt)
    if self.error is not None:
      raise self.error
    return self.text


def _question_payload(**overrides: Any) -> dict[str, Any]:
  """A model-shaped single-answer question object."""
  payload: dict[str, Any] = {
    "question_text": "A retailer must keep its checkout API available during a regional outage. What should the architect recommend?",
    "options": [
      {"text": "Deploy the API active-active across two regions", "isCorrect": True},
      {"text": "Increase the instance size in the primary region", "isCorrect": False},
      {"text": "Take nightly snapshots to cold storage", "isCorrect": False},
      {"text": "Add a read replica in the same availability zone", "isCorrect": False},
    ],
    "correct_answer": "Deploy the API active-active across two regions",
    "multiple_answers": None,
    "correct_answers": None,
    "explanation": "Active-active spreads traffic across regions. Losing one region leaves the other serving.",
    "explanation_details": {
      "summary": "Regional resilience for customer-facing APIs:",
      "breakdown": ["Two regions remove the single point of failure", "Health checks shift traffic automatically"],
      "otherOptions": "Bigger instances still fail with the region\nSnapshots restore slowly\nSame-zone replicas share the outage",
    },
    "domain": "Cloud Architecture and Design",
    "subdomain": "High Availability",
    "cognitive_level": "Application",
    "skill_level": "Intermediate",
    "weight": 23,
    "tags": ["availability"],
    "references": ["AWS Well-Architected Framework - Reliability Pillar"],
  }
  payload.update(overrides)
  return payload


def _succeeded_line(custom_id: str, payloads: list[dict[str, Any]], *, fenced: bool = False) -> str:
  """One NDJSON results line for a succeeded request."""
  text = json.dumps(payloads)
  if fenced:
    text = f"```json\n{text}\n```"
  return json.dumps({"custom_id": custom_id, "result": {"type": "succeeded", "message": {"content": [{"type": "text", "text": text}]}}})


def _errored_line(custom_id: str) -> str:
  return json.dumps({"custom_id": custom_id, "result": {"type": "errored", "error": {"type": "overloaded_error", "message": "Overloaded"}}})


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
  return replace(get_settings(), questions_dir=str(tmp_path / "questions"), max_pending_age_hours=24.0, poll_interval_seconds=3600.0)


@pytest.fixture
def repo() -> InMemoryBatchJobsRepo:
  return InMemoryBatchJobsRepo()


@pytest.fixture
def remote() -> FakeRemoteBatchClient:
  return FakeRemoteBatchClient()


@pytest.fixture
def generator() -> FakeMessageGenerator:
  return FakeMessageGenerator()


@pytest.fixture
def make_record():
  """Factory for stored batch jobs created `age` ago."""

  def _make(
    batch_id: str = "batch_1700000000000_abcd1234",
    *,
    status: BatchStatus = "pending",
    age: timedelta = timedelta(minutes=5),
    count: int = 2,
    results: list[Question] | None = None,
    error_message: str | None = None,
    certification_type: str = "CV0-004",
    domain_name: str | None = "Cloud Architecture and Design",
  ) -> BatchJobRecord:
    created_at = utc_now() - age
    return BatchJobRecord(
      batch_id=batch_id,
      remote_batch_id=f"msgbatch_{batch_id}",
      status=status,
      request_params=BatchRequestParams(certification_type=certification_type, count=count, domain_name=domain_name),
      created_at=created_at,
      updated_at=created_at,
      results=results,
      error_message=error_message,
      owner_user_id=1,
      owner_username="admin",
    )

  return _make


def _token(role: str, username: str, user_id: int) -> str:
  return create_access_token(user_id=user_id, username=username, email=f"{username}@example.com", role=role)


@pytest.fixture
def admin_headers() -> dict[str, str]:
  return {"Authorization": f"Bearer {_token('admin', 'admin', 1)}"}


@pytest.fixture
def user_headers() -> dict[str, str]:
  return {"Authorization": f"Bearer {_token('user', 'learner', 2)}"}


@pytest.fixture
async def async_client(settings, repo, remote, generator):
  from app.api.deps import get_batch_repo, get_message_generator, get_remote_client
  from app.main import app

  app.dependency_overrides[get_settings] = lambda: settings
  app.dependency_overrides[get_batch_repo] = lambda: repo
  app.dependency_overrides[get_remote_client] = lambda: remote
  app.dependency_overrides[get_message_generator] = lambda: generator
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()


@pytest.fixture
def question_payload():
  return _question_payload


@pytest.fixture
def succeeded_line():
  return _succeeded_line


@pytest.fixture
def errored_line():
  return _errored_line
