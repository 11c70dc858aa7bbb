"""Parse the NDJSON results stream of a remote message batch into questions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from app.ai.json_parser import parse_fenced_json
from app.jobs.errors import ParseError
from app.schema.questions import Question, question_from_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedBatchResults:
  """Questions recovered from a results stream plus the records that were dropped."""

  questions: list[Question] = field(default_factory=list)
  skipped: list[tuple[str, str]] = field(default_factory=list)


def _record_text(record: dict[str, Any]) -> str | None:
  """Return the first content block text from a succeeded record."""
  result = record.get("result")
  if isinstance(result, dict):
    message = result.get("message")
    if isinstance(message, dict):
      text = _first_text(message.get("content"))
      if text is not None:
        return text

  # Older result shapes carry the message under `response`.
  response = record.get("response")
  if isinstance(response, dict):
    return _first_text(response.get("content"))
  return None


def _first_text(content: Any) -> str | None:
  if not isinstance(content, list) or not content:
    return None
  first = content[0]
  if isinstance(first, dict) and isinstance(first.get("text"), str) and first["text"].strip():
    return first["text"]
  return None


def parse_batch_results(
  text: str,
  *,
  domain: str | None = None,
  cognitive_level: str | None = None,
  skill_level: str | None = None,
) -> ParsedBatchResults:
  """Turn an NDJSON results body into ordered questions.

  Malformed lines, failed records and unconvertible objects are skipped; an empty
  result is valid and distinct from a retrieval failure.
  """
  questions: list[Question] = []
  skipped: list[tuple[str, str]] = []

  for line_number, line in enumerate(text.splitlines(), start=1):
    if not line.strip():
      continue

    try:
      record = json.loads(line)
    except json.JSONDecodeError as exc:
      logger.warning("Skipping malformed results line=%s error=%s", line_number, exc)
      skipped.append((f"line_{line_number}", f"malformed line: {exc.msg}"))
      continue

    if not isinstance(record, dict):
      skipped.append((f"line_{line_number}", "record is not an object"))
      continue

    custom_id = str(record.get("custom_id") or f"line_{line_number}")

    if record.get("error"):
      logger.warning("Skipping errored batch record custom_id=%s error=%s", custom_id, record["error"])
      skipped.append((custom_id, "record carries an error"))
      continue

    result = record.get("result")
    if isinstance(result, dict) and result.get("type") != "succeeded":
      logger.warning("Skipping batch record custom_id=%s result_type=%s", custom_id, result.get("type"))
      skipped.append((custom_id, f"result type {result.get('type')}"))
      continue

    content_text = _record_text(record)
    if content_text is None:
      logger.warning("Skipping batch record without text custom_id=%s", custom_id)
      skipped.append((custom_id, "missing message text"))
      continue

    try:
      payloads = parse_fenced_json(content_text)
    except json.JSONDecodeError as exc:
      logger.warning("Skipping batch record with invalid JSON custom_id=%s error=%s", custom_id, exc)
      skipped.append((custom_id, f"invalid question JSON: {exc.msg}"))
      continue

    for payload in payloads:
      try:
        questions.append(question_from_payload(payload, domain=domain, cognitive_level=cognitive_level, skill_level=skill_level))
      except ParseError as exc:
        logger.warning("Skipping unconvertible question custom_id=%s error=%s", custom_id, exc)
        skipped.append((custom_id, str(exc)))

  return ParsedBatchResults(questions=questions, skipped=skipped)
