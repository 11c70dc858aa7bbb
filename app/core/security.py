from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Missing credentials must be a 401, so the scheme does not raise on its own.
security_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class CurrentUser:
  """Identity carried by a verified access token."""

  id: Any
  username: str | None
  email: str | None
  role: str | None

  @property
  def is_admin(self) -> bool:
    return self.role == ADMIN_ROLE


def create_access_token(*, user_id: Any, username: str | None, email: str | None, role: str | None, settings: Settings | None = None, expires_in: timedelta | None = None) -> str:
  """Issue a signed access token for a user."""
  active_settings = settings or get_settings()
  issued_at = datetime.now(UTC)
  payload = {
    "id": user_id,
    "username": username,
    "email": email,
    "role": role,
    "iat": issued_at,
    "exp": issued_at + (expires_in or timedelta(hours=active_settings.jwt_expires_hours)),
  }
  return jwt.encode(payload, active_settings.jwt_secret, algorithm=active_settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> CurrentUser:
  """Verify signature and expiry; raises jwt.InvalidTokenError on failure."""
  active_settings = settings or get_settings()
  claims = jwt.decode(token, active_settings.jwt_secret, algorithms=[active_settings.jwt_algorithm])
  return CurrentUser(id=claims.get("id"), username=claims.get("username"), email=claims.get("email"), role=claims.get("role"))


async def get_current_user(credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme)) -> CurrentUser:  # noqa: B008
  """Resolve the caller from the bearer token."""
  if credentials is None or not credentials.credentials:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required", headers={"WWW-Authenticate": "Bearer"})

  try:
    return decode_access_token(credentials.credentials)
  except jwt.InvalidTokenError as exc:
    logger.info("Rejected access token: %s", type(exc).__name__)
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token") from exc


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:  # noqa: B008
  """Allow only admin callers."""
  if not current_user.is_admin:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
  return current_user
