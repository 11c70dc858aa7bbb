from __future__ import annotations

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from app.utils.db_failures import classify_db_failure


class _DriverError(Exception):
  def __init__(self, message: str, sqlstate: str | None = None) -> None:
    super().__init__(message)
    self.sqlstate = sqlstate


def test_unique_violation_is_integrity_error() -> None:
  result = classify_db_failure(IntegrityError("INSERT", {}, _DriverError("duplicate key", "23505")))
  assert result.category == "integrity_error"
  assert result.sqlstate == "23505"
  assert result.reconnect is False


def test_connection_sqlstate_requests_reconnect() -> None:
  result = classify_db_failure(DBAPIError("SELECT 1", {}, _DriverError("server closed", "08006")))
  assert result.category == "connectivity_error"
  assert result.reconnect is True


def test_operational_error_message_patterns() -> None:
  assert classify_db_failure(OperationalError("SELECT 1", {}, _DriverError("connection reset by peer"))).reconnect is True
  assert classify_db_failure(OperationalError("SELECT 1", {}, _DriverError("disk full"))).category == "operational_error"


def test_socket_errors_and_unknown_errors() -> None:
  assert classify_db_failure(ConnectionRefusedError()).category == "connectivity_error"
  assert classify_db_failure(ValueError("nope")).category == "unknown_error"
