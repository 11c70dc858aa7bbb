"""Classify database failures so callers know whether the connection must be rebuilt."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError, DisconnectionError, IntegrityError, InterfaceError, OperationalError

_CONNECTION_PATTERNS = ("connection", "timeout", "reset", "network", "broken pipe", "lost connection", "closed")


@dataclass(frozen=True)
class DBFailureClassification:
  """Classification result for a database failure."""

  category: str
  reason: str
  sqlstate: str | None
  reconnect: bool


def _extract_sqlstate(exc: BaseException) -> str | None:
  """Extract the Postgres SQLSTATE from a SQLAlchemy exception when the driver exposes it."""
  if isinstance(exc, DBAPIError) and exc.orig is not None:
    for attribute in ("sqlstate", "pgcode"):
      value = getattr(exc.orig, attribute, None)
      if value:
        return str(value)
  return None


def classify_db_failure(exc: BaseException) -> DBFailureClassification:
  """
  Classify a database failure.

  Primary signal: Postgres SQLSTATE
  Fallback: exception type and message patterns

  Connection-level failures (reconnect=True):
    - class 08: connection exceptions
    - 57P01/57P02/57P03: server shutdown or unavailable
    - invalidated DBAPI connections, disconnects, socket errors
  """
  sqlstate = _extract_sqlstate(exc)

  if sqlstate == "23505" or isinstance(exc, IntegrityError):
    return DBFailureClassification(category="integrity_error", reason="Integrity constraint violation", sqlstate=sqlstate, reconnect=False)

  if sqlstate and (sqlstate.startswith("08") or sqlstate in {"57P01", "57P02", "57P03"}):
    return DBFailureClassification(category="connectivity_error", reason="Connection exception reported by server", sqlstate=sqlstate, reconnect=True)

  if isinstance(exc, DBAPIError) and exc.connection_invalidated:
    return DBFailureClassification(category="connectivity_error", reason="DBAPI connection invalidated", sqlstate=sqlstate, reconnect=True)

  if isinstance(exc, DisconnectionError | InterfaceError | ConnectionError | OSError):
    return DBFailureClassification(category="connectivity_error", reason=f"Connection failure: {type(exc).__name__}", sqlstate=sqlstate, reconnect=True)

  if isinstance(exc, OperationalError):
    error_msg = str(exc).lower()
    if any(pattern in error_msg for pattern in _CONNECTION_PATTERNS):
      return DBFailureClassification(category="connectivity_error", reason="Transient connection/network error", sqlstate=sqlstate, reconnect=True)
    return DBFailureClassification(category="operational_error", reason="Operational error (unknown cause)", sqlstate=sqlstate, reconnect=False)

  if sqlstate and sqlstate.startswith("42"):
    return DBFailureClassification(category="schema_error", reason="Schema/SQL error (undefined table/column, syntax error)", sqlstate=sqlstate, reconnect=False)

  return DBFailureClassification(category="unknown_error", reason=f"Unknown error type: {type(exc).__name__}", sqlstate=sqlstate, reconnect=False)
