"""Synchronous question generation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from app.ai.json_parser import parse_fenced_json
from app.ai.prompts import build_generation_prompt
from app.ai.providers.anthropic_batches import MessageGenerator
from app.api.models import GenerateQuestionRequest
from app.jobs.errors import ParseError, ValidationError
from app.schema.questions import Question, question_from_payload
from app.services.batches import validate_certification_type

logger = logging.getLogger(__name__)

MAX_SINGLE_COUNT = 10
_OUTPUT_FORMATS = ("json", "sql")


@dataclass(frozen=True)
class GeneratedQuestions:
  questions: list[Question]
  metadata: dict[str, Any]
  output_format: str


async def generate_questions(request: GenerateQuestionRequest, *, generator: MessageGenerator, model: str, generated_by: str | None = None) -> GeneratedQuestions:
  """Generate up to ten questions with one synchronous model call."""
  certification_type = validate_certification_type(request.certification_type)
  count = request.count if request.count is not None else 1
  if not 1 <= count <= MAX_SINGLE_COUNT:
    raise ValidationError(f"count must be between 1 and {MAX_SINGLE_COUNT}")
  if request.output_format not in _OUTPUT_FORMATS:
    raise ValidationError('Invalid output_format. Must be "json" or "sql"')

  prompt = build_generation_prompt(
    certification_type=certification_type,
    count=count,
    domain_name=request.domain_name,
    cognitive_level=request.cognitive_level,
    skill_level=request.skill_level,
    scenario_context=request.scenario_context,
    multiple_answers=request.multiple_answers,
  )

  logger.info("Generating %s question(s) for %s", count, certification_type)
  text = await generator.generate_text(prompt)

  try:
    payloads = parse_fenced_json(text)
  except json.JSONDecodeError as exc:
    logger.error("Model returned non-JSON output error=%s", exc)
    raise ParseError(f"Failed to parse generated questions: {exc.msg}") from exc

  questions = [question_from_payload(payload, domain=request.domain_name, cognitive_level=request.cognitive_level, skill_level=request.skill_level) for payload in payloads]

  metadata = {
    "certification_type": certification_type,
    "domain_name": request.domain_name,
    "cognitive_level": request.cognitive_level,
    "skill_level": request.skill_level,
    "count": len(questions),
    "model": model,
    "generated_at": datetime.now(UTC).isoformat(),
    "generated_by": generated_by,
  }
  return GeneratedQuestions(questions=questions, metadata=metadata, output_format=request.output_format)
