"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def strip_json_fences(raw: str) -> str:
  """Remove a surrounding ```json ... ``` fence when the model adds one."""
  text = raw.strip()
  match = _FENCE_RE.match(text)
  if match:
    return match.group(1).strip()
  return text


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON, retrying on the first balanced block and without trailing commas."""
  # Prefer strict parsing so valid JSON is preserved without mutation.
  try:
    return json.loads(raw)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Extract the first JSON object/array to ignore leading or trailing prose.
  candidate = _extract_json_block(raw)
  if candidate is None:
    raise last_error

  try:
    return json.loads(candidate)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Trailing commas are the most common model slip.
  try:
    return json.loads(_strip_trailing_commas(candidate))
  except json.JSONDecodeError:
    raise last_error from None


def parse_fenced_json(raw: str) -> list[Any]:
  """Strip fences, parse, and wrap a lone value in a list.

  Raises json.JSONDecodeError when no JSON can be recovered.
  """
  parsed = parse_json_with_fallback(strip_json_fences(raw))
  if isinstance(parsed, list):
    return parsed
  return [parsed]


def _extract_json_block(raw: str) -> str | None:
  """Locate the first balanced JSON object/array for recovery parsing."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None


def _strip_trailing_commas(raw: str) -> str:
  """Drop commas that directly precede a closing bracket, leaving string literals intact."""
  output: list[str] = []
  in_string = False
  escape = False
  pending_comma: list[str] = []

  for char in raw:
    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if pending_comma:
      if char.isspace():
        pending_comma.append(char)
        continue
      # Whitespace after a dropped comma is kept; only the comma goes.
      if char in "}]":
        output.extend(pending_comma[1:])
      else:
        output.extend(pending_comma)
      pending_comma = []

    if char == ",":
      pending_comma = [char]
    elif char == '"':
      output.append(char)
      in_string = True
    else:
      output.append(char)

  output.extend(pending_comma)
  return "".join(output)
