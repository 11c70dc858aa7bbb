from __future__ import annotations

import logging

from app.config import get_database_settings
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
  pass


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def _database_url() -> str | None:
  """Build the SQLAlchemy database URL while keeping settings evaluation minimal."""
  settings = get_database_settings()
  database_url = settings.pg_dsn
  if database_url and database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
  elif database_url and database_url.startswith("postgres://"):
    database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)

  return database_url


DATABASE_URL = _database_url()


def get_db_engine() -> AsyncEngine | None:
  global engine
  settings = get_database_settings()
  database_url = _database_url()
  if engine is None and database_url:
    # pool_pre_ping runs a trivial query before a pooled connection is reused.
    engine = create_async_engine(database_url, echo=settings.debug, future=True, pool_pre_ping=True, connect_args={"timeout": settings.pg_connect_timeout})
  return engine


def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
  global SessionLocal
  if SessionLocal is None:
    db_engine = get_db_engine()
    if db_engine:
      SessionLocal = async_sessionmaker(bind=db_engine, expire_on_commit=False, class_=AsyncSession)
  return SessionLocal


async def reset_engine() -> None:
  """Discard the shared engine so the next use reconnects from scratch."""
  global engine, SessionLocal
  stale = engine
  engine = None
  SessionLocal = None
  if stale is None:
    return

  logger.warning("Discarding database engine after a connection-level error.")
  try:
    await stale.dispose()
  except Exception:  # noqa: BLE001
    logger.warning("Failed to dispose stale database engine.", exc_info=True)


async def check_connection() -> bool:
  """Run SELECT 1 against the database; reset the engine when it fails."""
  db_engine = get_db_engine()
  if db_engine is None:
    return False

  try:
    async with db_engine.connect() as connection:
      await connection.execute(text("SELECT 1"))
  except Exception:  # noqa: BLE001
    logger.warning("Database health check failed.", exc_info=True)
    await reset_engine()
    return False

  return True

