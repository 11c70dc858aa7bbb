"""Minimal .env loader so local runs pick up credentials without exporting them."""

from __future__ import annotations

import os
from pathlib import Path

_QUOTES = ('"', "'")


def default_env_path() -> Path:
  """Return the .env path at the repository root."""
  return Path(__file__).resolve().parents[2] / ".env"


def _strip_quotes(value: str) -> str:
  # Only strip a matching pair so values like it's stay intact.
  if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
    return value[1:-1]
  return value


def load_env_file(path: Path, *, override: bool = False) -> dict[str, str]:
  """Load KEY=value lines into os.environ and return the pairs that were applied."""
  applied: dict[str, str] = {}
  if not path.is_file():
    return applied

  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
      continue

    # Accept shell-style `export KEY=value` lines.
    line = line.removeprefix("export ").lstrip()
    key, value = (part.strip() for part in line.split("=", 1))
    if not key:
      continue

    # Real environment wins unless the caller explicitly overrides.
    if key in os.environ and not override:
      continue

    os.environ[key] = _strip_quotes(value)
    applied[key] = os.environ[key]

  return applied
