"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_DEV_JWT_SECRET = "prepper-dev-secret-change-in-production"
_PRODUCTION_ENVIRONMENTS = {"production", "prod", "stage", "staging"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the question engine."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  anthropic_api_key: str | None
  anthropic_base_url: str
  anthropic_version: str
  batch_model: str
  single_model: str
  max_tokens: int
  temperature: float
  remote_timeout_seconds: float
  poll_interval_seconds: float
  max_pending_age_hours: float
  poller_enabled: bool
  questions_dir: str
  jwt_secret: str
  jwt_algorithm: str
  jwt_expires_hours: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("PREPPER_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("PREPPER_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("PREPPER_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or raw.strip() == "":
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_float(name: str, raw: str) -> float:
  value = float(raw)
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _poll_interval_seconds() -> float:
  """Resolve the poll interval, accepting the legacy millisecond variable."""
  seconds = _optional_str(os.getenv("PREPPER_POLL_INTERVAL_SECONDS"))
  if seconds is not None:
    return _positive_float("PREPPER_POLL_INTERVAL_SECONDS", seconds)

  legacy_ms = _optional_str(os.getenv("BACKGROUND_POLL_INTERVAL"))
  if legacy_ms is not None:
    return _positive_float("BACKGROUND_POLL_INTERVAL", legacy_ms) / 1000.0

  return 300.0


def _resolve_jwt_secret(environment: str) -> str:
  secret = _optional_str(os.getenv("JWT_SECRET"))
  if secret:
    return secret
  if environment in _PRODUCTION_ENVIRONMENTS:
    raise ValueError("JWT_SECRET must be set in production-like environments.")
  logging.getLogger("app.config").warning("JWT_SECRET is not set; using the insecure development secret.")
  return _DEV_JWT_SECRET


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PREPPER_ENV", "development").strip().lower()

  # Toggle SQL echo and verbose diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("PREPPER_DEBUG"))

  log_max_bytes = int(os.getenv("PREPPER_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("PREPPER_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("PREPPER_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("PREPPER_LOG_BACKUP_COUNT must be zero or a positive integer.")

  pg_connect_timeout = int(os.getenv("PREPPER_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("PREPPER_PG_CONNECT_TIMEOUT must be a positive integer.")

  max_tokens = int(os.getenv("PREPPER_MAX_TOKENS", "8000"))
  if max_tokens <= 0:
    raise ValueError("PREPPER_MAX_TOKENS must be a positive integer.")

  temperature = float(os.getenv("PREPPER_TEMPERATURE", "1"))
  if not 0 <= temperature <= 1:
    raise ValueError("PREPPER_TEMPERATURE must be between 0 and 1.")

  jwt_expires_hours = int(os.getenv("JWT_EXPIRES_HOURS", "24"))
  if jwt_expires_hours <= 0:
    raise ValueError("JWT_EXPIRES_HOURS must be a positive integer.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("PREPPER_ALLOWED_ORIGINS")),
    debug=debug,
    log_dir=(os.getenv("PREPPER_LOG_DIR") or "logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("PREPPER_LOG_HTTP_4XX")),
    pg_dsn=_optional_str(os.getenv("PREPPER_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=pg_connect_timeout,
    anthropic_api_key=_optional_str(os.getenv("ANTHROPIC_API_KEY")),
    anthropic_base_url=(os.getenv("ANTHROPIC_BASE_URL") or "https://api.anthropic.com").strip().rstrip("/"),
    anthropic_version=(os.getenv("ANTHROPIC_VERSION") or "2023-06-01").strip(),
    batch_model=(os.getenv("CLAUDE_OPUS_4_5") or "claude-opus-4-5").strip(),
    single_model=(os.getenv("CLAUDE_HAIKU_4_5") or "claude-haiku-4-5").strip(),
    max_tokens=max_tokens,
    temperature=temperature,
    remote_timeout_seconds=_positive_float("PREPPER_REMOTE_TIMEOUT_SECONDS", os.getenv("PREPPER_REMOTE_TIMEOUT_SECONDS", "60")),
    poll_interval_seconds=_poll_interval_seconds(),
    max_pending_age_hours=_positive_float("MAX_PENDING_AGE_HOURS", os.getenv("MAX_PENDING_AGE_HOURS", "24")),
    poller_enabled=_parse_bool(os.getenv("PREPPER_POLLER_ENABLED"), default=True),
    questions_dir=(os.getenv("PREPPER_QUESTIONS_DIR") or "questions").strip(),
    jwt_secret=_resolve_jwt_secret(environment),
    jwt_algorithm=(os.getenv("JWT_ALGORITHM") or "HS256").strip(),
    jwt_expires_hours=jwt_expires_hours,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Migrations and offline scripts only need the DSN.
  debug = _parse_bool(os.getenv("PREPPER_DEBUG"))
  pg_connect_timeout = int(os.getenv("PREPPER_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("PREPPER_PG_CONNECT_TIMEOUT must be a positive integer.")

  pg_dsn = _optional_str(os.getenv("PREPPER_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
