"""Render generated questions as INSERT statements for the question bank tables."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import msgspec

from app.schema.certifications import question_table
from app.schema.questions import Question

logger = logging.getLogger(__name__)

_COLUMNS = (
  "id",
  "question_id",
  "question_number",
  "category",
  "domain",
  "question_text",
  "options",
  "correct_answer",
  "explanation",
  "explanation_details",
  "multiple_answers",
  "correct_answers",
  "cognitive_level",
  "skill_level",
  "weight",
  '"references"',
)


def escape_sql_string(value: Any) -> str:
  """Quote a value as a SQL string literal; None becomes NULL."""
  if value is None:
    return "NULL"
  return "'" + str(value).replace("'", "''") + "'"


def _compact_json(value: Any) -> str:
  return json.dumps(msgspec.to_builtins(value), separators=(",", ":"), ensure_ascii=False)


def _text_array(values: Iterable[str]) -> str:
  return "ARRAY[" + ", ".join(escape_sql_string(value) for value in values) + "]"


def question_to_sql_insert(question: Question, certification_type: str) -> str:
  """Render one question as a single INSERT statement."""
  answer_texts = question.correct_answer_texts
  details = question.explanation_details

  values = [
    "nextval('prepper.id_seq')",
    "nextval('prepper.question_id_seq')",
    "nextval('prepper.question_number_seq')",
    escape_sql_string(question.subdomain or question.domain or "General"),
    escape_sql_string(question.domain),
    escape_sql_string(question.question_text),
    f"{escape_sql_string(_compact_json(question.options))}::jsonb",
    "NULL" if question.multiple_answers else escape_sql_string(question.correct_answer),
    escape_sql_string(question.explanation),
    f"{escape_sql_string(_compact_json(details))}::jsonb" if details is not None else "NULL",
    "'1'" if question.multiple_answers else "'0'",
    _text_array(answer_texts) if answer_texts else "ARRAY[]::text[]",
    escape_sql_string(question.cognitive_level),
    escape_sql_string(question.skill_level),
    str(question.weight),
    _text_array(question.references) if question.references else "NULL",
  ]

  columns = ",\n".join(f"  {column}" for column in _COLUMNS)
  rendered_values = ",\n".join(f"  {value}" for value in values)
  return f"INSERT INTO {question_table(certification_type)}(\n{columns}\n)\nVALUES (\n{rendered_values}\n);\n\n"


def questions_to_sql(questions: list[Question], certification_type: str, *, header: list[str] | None = None) -> str:
  """Render a full SQL script: comment header, table note, then one INSERT per question."""
  lines = header if header is not None else [
    "-- Generated Questions SQL File",
    f"-- Generated: {datetime.now(UTC).isoformat()}",
    f"-- Certification: {certification_type}",
    f"-- Question Count: {len(questions)}",
  ]

  parts = ["\n".join(lines) + "\n\n", f"-- Insert questions into {question_table(certification_type)}\n\n"]
  parts.extend(question_to_sql_insert(question, certification_type) for question in questions)
  return "".join(parts)


def save_batch_results_to_file(batch_id: str, questions: list[Question], metadata: dict[str, Any], *, questions_dir: str) -> Path | None:
  """Write a batch's questions to `<questions_dir>/<batch_id>_<timestamp>.sql`.

  The side file is best effort: failures are logged and None is returned.
  """
  try:
    generated_at = datetime.now(UTC).isoformat()
    certification_type = str(metadata.get("certification_type") or "CV0-004")
    header = [
      "-- Batch Questions SQL File",
      f"-- Generated: {generated_at}",
      f"-- Batch ID: {batch_id}",
      f"-- Certification: {certification_type}",
      f"-- Question Count: {len(questions)}",
      f"-- Metadata: {json.dumps(metadata, indent=2, default=str)}",
    ]

    directory = Path(questions_dir)
    directory.mkdir(parents=True, exist_ok=True)
    filename = f"{batch_id}_{generated_at.replace(':', '-').replace('.', '-')}.sql"
    path = directory / filename
    path.write_text(questions_to_sql(questions, certification_type, header=header), encoding="utf-8")
  except (OSError, TypeError, ValueError):
    logger.error("Failed to save batch results SQL file batch_id=%s", batch_id, exc_info=True)
    return None

  logger.info("Saved batch results SQL file batch_id=%s path=%s questions=%s", batch_id, path, len(questions))
  return path
