from app.config import Settings
from app.storage.batch_jobs_repo import BatchJobsRepository
from app.storage.postgres_batch_jobs_repo import PostgresBatchJobsRepository


def _get_batch_jobs_repo(settings: Settings) -> BatchJobsRepository:
  """Return the active batch jobs repository."""

  # Batch jobs are only persisted in Postgres.

  if not settings.pg_dsn:
    raise ValueError("PREPPER_PG_DSN must be set to enable Postgres persistence.")

  return PostgresBatchJobsRepository()
