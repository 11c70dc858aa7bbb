from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from app.jobs.models import BatchStatus


class GenerationFilters(BaseModel):
  """Shared generation filters; domain rules are enforced by the services so bad values map to 400."""

  certification_type: StrictStr | None = Field(default=None, alias="certificationType", description="Certification track (CV0-004 or SAA-C03).", examples=["CV0-004"])
  count: int | None = Field(default=None, description="Number of questions to generate.", examples=[3])
  domain_name: StrictStr | None = Field(default=None, alias="domainName", description="Optional exam domain focus.", examples=["Cloud Security"])
  cognitive_level: StrictStr | None = Field(default=None, alias="cognitiveLevel", description="Optional Bloom's taxonomy level.")
  skill_level: StrictStr | None = Field(default=None, alias="skillLevel", description="Optional learner skill level.")
  scenario_context: StrictStr | None = Field(default=None, alias="scenarioContext", description="Optional scenario hint embedded in the prompt.")
  multiple_answers: bool = Field(default=False, alias="multipleAnswers", description="Ask for multiple-answer questions.")
  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GenerateBatchRequest(GenerationFilters):
  """Request payload for asynchronous batch generation."""


class GenerateQuestionRequest(GenerationFilters):
  """Request payload for synchronous generation."""

  output_format: StrictStr = Field(default="json", alias="outputFormat", description="Return questions as JSON or as SQL INSERT statements.")


class BatchSubmitResponse(BaseModel):
  """Response returned once a batch is accepted by the remote API."""

  success: bool = True
  batch_id: StrictStr
  remote_batch_id: StrictStr
  status: BatchStatus
  message: StrictStr
  metadata: dict[str, Any]


class BatchProgress(BaseModel):
  total: int


class BatchStatusResponse(BaseModel):
  """Status projection for a batch job."""

  success: bool = True
  batch_id: StrictStr
  remote_batch_id: StrictStr
  status: BatchStatus
  progress: BatchProgress
  metadata: dict[str, Any]
  error_message: StrictStr | None = None


class BatchResultsResponse(BaseModel):
  """Results payload; `success` is False whenever questions are not available."""

  success: bool
  batch_id: StrictStr
  status: BatchStatus
  count: int | None = None
  questions: list[dict[str, Any]] | None = None
  metadata: dict[str, Any] | None = None
  error: StrictStr | None = None
  error_message: StrictStr | None = None
  partial_results: bool | None = None
  message: StrictStr | None = None
  note: StrictStr | None = None


class GenerateQuestionResponse(BaseModel):
  """JSON payload for synchronous generation."""

  success: bool = True
  count: int
  questions: list[dict[str, Any]]
  metadata: dict[str, Any]
