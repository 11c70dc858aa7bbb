"""Error kinds raised by the batch generation workflow."""

from __future__ import annotations


class BatchWorkflowError(Exception):
  """Base class for question-generation workflow failures."""


class ValidationError(BatchWorkflowError):
  """Rejected input; raised before any side effect happens."""


class RemoteSubmissionError(BatchWorkflowError):
  """The remote API rejected or never answered a generation request."""


class RemoteRetrievalError(BatchWorkflowError):
  """The remote API could not be reached while reading status or results."""


class ParseError(BatchWorkflowError):
  """One generated payload could not be turned into questions."""


class PersistenceError(BatchWorkflowError):
  """A batch job store operation failed."""


class DuplicateKeyError(PersistenceError):
  """A batch job with the same identifier already exists."""


class NotFoundError(BatchWorkflowError):
  """No batch job exists for the requested identifier."""

  def __init__(self, batch_id: str) -> None:
    super().__init__(f"Batch not found: {batch_id}")
    self.batch_id = batch_id
