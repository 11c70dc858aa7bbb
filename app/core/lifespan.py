import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from app.config import Settings
from app.core.database import check_connection, reset_engine
from app.core.logging import _initialize_logging
from app.jobs.poller import BatchPoller


def _build_poller(settings: Settings, logger: logging.Logger) -> BatchPoller | None:
  """Wire the poller to the job store and remote client, or return None when either is unavailable."""
  from app.api.deps import build_remote_client
  from app.storage.factory import _get_batch_jobs_repo

  if not settings.poller_enabled:
    logger.info("Batch poller disabled by PREPPER_POLLER_ENABLED.")
    return None

  try:
    repo = _get_batch_jobs_repo(settings)
    remote = build_remote_client(settings)
  except (ValueError, RuntimeError) as exc:
    logger.warning("Batch poller not started: %s", exc)
    return None

  return BatchPoller(repo=repo, remote=remote, settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging, verify the database and own the batch poller."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except Exception:  # noqa: BLE001
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  if settings.pg_dsn:
    logger.info("Database configured PREPPER_PG_DSN=%s", _redact_dsn(settings.pg_dsn))
    if not await check_connection():
      logger.warning("Database is not reachable at startup; the poller will retry on its next tick.")

  poller = _build_poller(settings, logger)
  app.state.batch_poller = poller
  if poller is not None:
    poller.start()

  try:
    yield
  finally:
    if poller is not None:
      await poller.stop()
    await reset_engine()
    logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
