import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.jobs.errors import (
  BatchWorkflowError,
  DuplicateKeyError,
  NotFoundError,
  ParseError,
  PersistenceError,
  RemoteRetrievalError,
  RemoteSubmissionError,
  ValidationError,
)

# Most specific first; DuplicateKeyError must win over PersistenceError.
_WORKFLOW_STATUS_CODES: tuple[tuple[type[BatchWorkflowError], int], ...] = (
  (ValidationError, status.HTTP_400_BAD_REQUEST),
  (NotFoundError, status.HTTP_404_NOT_FOUND),
  (DuplicateKeyError, status.HTTP_409_CONFLICT),
  (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
  (RemoteSubmissionError, status.HTTP_502_BAD_GATEWAY),
  (RemoteRetrievalError, status.HTTP_502_BAD_GATEWAY),
  (ParseError, status.HTTP_502_BAD_GATEWAY),
)

_PUBLIC_5XX_DETAIL = {
  status.HTTP_502_BAD_GATEWAY: "Upstream model service failed",
  status.HTTP_503_SERVICE_UNAVAILABLE: "Batch job store unavailable",
}


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build the error body shared by every handler."""
  payload: dict[str, Any] = {"success": False, "detail": detail}
  # Support correlates client reports to server logs through the request id.
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


def workflow_status_code(exc: BatchWorkflowError) -> int:
  for error_type, status_code in _WORKFLOW_STATUS_CODES:
    if isinstance(exc, error_type):
      return status_code
  return status.HTTP_500_INTERNAL_SERVER_ERROR


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Catch unhandled errors without leaking internals."""
  logger = logging.getLogger("uvicorn.error")
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors without leaking payloads."""
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions, hiding the detail of 5xx responses."""
  from app.config import get_settings

  settings = get_settings()
  request_id = getattr(request.state, "request_id", None)
  logger = logging.getLogger("uvicorn.error")
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if settings.log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=getattr(exc, "headers", None))


async def batch_workflow_exception_handler(request: Request, exc: BatchWorkflowError) -> JSONResponse:
  """Map workflow errors to HTTP statuses; upstream and store details stay in the logs."""
  logger = logging.getLogger("uvicorn.error")
  request_id = getattr(request.state, "request_id", None)
  status_code = workflow_status_code(exc)

  if status_code >= 500:
    logger.error("Batch workflow failure request_id=%s path=%s error_type=%s error=%s", request_id, request.url.path, type(exc).__name__, exc)
    detail = _PUBLIC_5XX_DETAIL.get(status_code, "Internal Server Error")
  else:
    logger.warning("Batch workflow rejected request_id=%s path=%s error_type=%s error=%s", request_id, request.url.path, type(exc).__name__, exc)
    detail = str(exc)

  return JSONResponse(status_code=status_code, content=_error_payload(detail, request_id=request_id))
