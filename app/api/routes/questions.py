import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.ai.providers.anthropic_batches import MessageGenerator, RemoteBatchClient
from app.api.deps import get_batch_repo, get_message_generator, get_remote_client
from app.api.models import BatchResultsResponse, BatchStatusResponse, BatchSubmitResponse, GenerateBatchRequest, GenerateQuestionRequest, GenerateQuestionResponse
from app.config import Settings, get_settings
from app.core.security import CurrentUser, get_current_user, require_admin
from app.schema.questions import questions_to_dicts
from app.services import batches as batch_service
from app.services.questions import generate_questions
from app.services.sql_export import questions_to_sql
from app.storage.batch_jobs_repo import BatchJobsRepository
from app.utils.ids import epoch_millis

router = APIRouter()
logger = logging.getLogger("app.api.routes.questions")


@router.post("/batch", response_model=BatchSubmitResponse)
@router.post("/generateBatch", response_model=BatchSubmitResponse)
async def submit_batch(  # noqa: B008
  request: GenerateBatchRequest,
  current_user: CurrentUser = Depends(require_admin),  # noqa: B008
  repo: BatchJobsRepository = Depends(get_batch_repo),  # noqa: B008
  remote: RemoteBatchClient = Depends(get_remote_client),  # noqa: B008
) -> BatchSubmitResponse:
  """Submit an asynchronous batch of question-generation prompts."""
  params = batch_service.build_request_params(request)
  record = await batch_service.submit_batch(params, repo=repo, remote=remote, owner_user_id=current_user.id, owner_username=current_user.username)
  return BatchSubmitResponse(
    batch_id=record.batch_id,
    remote_batch_id=record.remote_batch_id,
    status=record.status,
    message="Batch submitted successfully. Use batch_id to check status and retrieve results when ready.",
    metadata=batch_service.submission_metadata(record),
  )


@router.get("/batch/{batch_id}", response_model=BatchStatusResponse, dependencies=[Depends(get_current_user)])
@router.get("/batch/{batch_id}/status", response_model=BatchStatusResponse, dependencies=[Depends(get_current_user)])
@router.get("/batchStatus/{batch_id}", response_model=BatchStatusResponse, dependencies=[Depends(get_current_user)])
async def get_batch_status(  # noqa: B008
  batch_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  repo: BatchJobsRepository = Depends(get_batch_repo),  # noqa: B008
) -> BatchStatusResponse:
  """Return the status projection for a batch."""
  return await batch_service.get_batch_status(batch_id, repo=repo, settings=settings)


@router.get("/batch/{batch_id}/results", response_model=BatchResultsResponse, response_model_exclude_none=True, dependencies=[Depends(get_current_user)])
@router.get("/batchResults/{batch_id}", response_model=BatchResultsResponse, response_model_exclude_none=True, dependencies=[Depends(get_current_user)])
async def get_batch_results(  # noqa: B008
  batch_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  repo: BatchJobsRepository = Depends(get_batch_repo),  # noqa: B008
) -> BatchResultsResponse:
  """Return generated questions, or a not-ready body while the batch is unfinished."""
  return await batch_service.get_batch_results(batch_id, repo=repo, settings=settings)


@router.post("/generateQuestion", response_model=GenerateQuestionResponse)
async def generate_question(  # noqa: B008
  request: GenerateQuestionRequest,
  current_user: CurrentUser = Depends(require_admin),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
  generator: MessageGenerator = Depends(get_message_generator),  # noqa: B008
) -> GenerateQuestionResponse | PlainTextResponse:
  """Generate questions synchronously as JSON or SQL INSERT statements."""
  generated = await generate_questions(request, generator=generator, model=settings.single_model, generated_by=current_user.username)

  if generated.output_format == "sql":
    sql = questions_to_sql(generated.questions, generated.metadata["certification_type"])
    filename = f"questions_{epoch_millis()}.sql"
    return PlainTextResponse(sql, headers={"Content-Disposition": f'attachment; filename="{filename}"'})

  return GenerateQuestionResponse(count=len(generated.questions), questions=questions_to_dicts(generated.questions), metadata=generated.metadata)
