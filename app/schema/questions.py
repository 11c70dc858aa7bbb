"""Structured question records produced by generation and their normalization."""

from __future__ import annotations

import math
from typing import Any

import msgspec

from app.jobs.errors import ParseError
from app.schema.certifications import DEFAULT_QUESTION_WEIGHT, domain_weight

_TRUE_FLAGS = {"1", "true", "yes"}
_FALSE_FLAGS = {"0", "false", "no"}


class QuestionOption(msgspec.Struct, frozen=True):
  """One answer option."""

  text: str
  is_correct: bool = msgspec.field(default=False, name="isCorrect")


class ExplanationDetails(msgspec.Struct, frozen=True):
  """Structured explanation shown after answering."""

  summary: str
  breakdown: list[str] = msgspec.field(default_factory=list)
  other_options: str = msgspec.field(default="", name="otherOptions")


class Question(msgspec.Struct, frozen=True):
  """A generated multiple-choice question.

  `correct_answers` holds zero-based option indices and is the canonical answer key;
  single-answer questions carry exactly one index and `correct_answer` is derived from it.
  """

  question_text: str
  options: list[QuestionOption]
  correct_answers: list[int]
  multiple_answers: bool = False
  explanation: str = ""
  explanation_details: ExplanationDetails | None = None
  domain: str = ""
  subdomain: str = ""
  cognitive_level: str = ""
  skill_level: str = ""
  weight: int = DEFAULT_QUESTION_WEIGHT
  references: list[str] | None = None
  tags: list[str] = msgspec.field(default_factory=list)

  @property
  def correct_answer_texts(self) -> list[str]:
    return [self.options[index].text for index in self.correct_answers if 0 <= index < len(self.options)]

  @property
  def correct_answer(self) -> str | None:
    if self.multiple_answers:
      return None
    texts = self.correct_answer_texts
    return texts[0] if texts else None


def question_to_dict(question: Question) -> dict[str, Any]:
  """Serialize a question for JSON storage and API responses."""
  payload = msgspec.to_builtins(question)
  payload["correct_answer"] = question.correct_answer
  return payload


def questions_to_dicts(questions: list[Question]) -> list[dict[str, Any]]:
  return [question_to_dict(question) for question in questions]


def questions_from_dicts(items: list[dict[str, Any]]) -> list[Question]:
  """Rehydrate stored questions; the derived `correct_answer` key is ignored."""
  try:
    return msgspec.convert(items, type=list[Question])
  except msgspec.ValidationError as exc:
    raise ParseError(f"Stored questions are malformed: {exc}") from exc


def _option_parts(raw_option: Any) -> tuple[str, bool | None]:
  if isinstance(raw_option, str):
    return raw_option, None
  if isinstance(raw_option, dict) and raw_option.get("text"):
    flag = raw_option.get("isCorrect")
    return str(raw_option["text"]), (flag is True) if "isCorrect" in raw_option else None
  return str(raw_option), None


def _flag(raw: Any) -> bool | None:
  """Interpret a tri-state boolean flag ("1"/"0"/true/false/None)."""
  if isinstance(raw, bool):
    return raw
  if isinstance(raw, int):
    return raw == 1
  if isinstance(raw, str):
    normalized = raw.strip().lower()
    if normalized in _TRUE_FLAGS:
      return True
    if normalized in _FALSE_FLAGS:
      return False
  return None


def _resolve_correct_indices(payload: dict[str, Any], option_texts: list[str], option_flags: list[bool | None]) -> list[int]:
  indices: list[int] = []
  raw_answers = payload.get("correct_answers")

  if isinstance(raw_answers, list) and raw_answers:
    # Numeric indices win; otherwise treat entries as full option texts.
    if all(isinstance(item, int) and not isinstance(item, bool) for item in raw_answers):
      indices = [item for item in raw_answers if 0 <= item < len(option_texts)]
    else:
      indices = [option_texts.index(str(item)) for item in raw_answers if str(item) in option_texts]

  if not indices:
    indices = [position for position, flag in enumerate(option_flags) if flag is True]

  if not indices:
    single = payload.get("correct_answer")
    if isinstance(single, str) and single in option_texts:
      indices = [option_texts.index(single)]

  # Drop duplicates while keeping the first-seen order.
  return list(dict.fromkeys(indices))


def _explanation_details(raw: Any, explanation: str) -> ExplanationDetails:
  if isinstance(raw, dict) and raw.get("summary") and isinstance(raw.get("breakdown"), list) and raw.get("otherOptions"):
    return ExplanationDetails(summary=str(raw["summary"]), breakdown=[str(point) for point in raw["breakdown"]], other_options=str(raw["otherOptions"]))

  summary = f"{explanation.split('.')[0]}." if explanation else "No summary provided"
  return ExplanationDetails(summary=summary)


def _weight(raw: Any, domain: str) -> int:
  if isinstance(raw, int | float) and not isinstance(raw, bool) and math.isfinite(raw) and raw > 0:
    return int(round(raw))
  return domain_weight(domain) or DEFAULT_QUESTION_WEIGHT


def _string_list(raw: Any) -> list[str]:
  if not isinstance(raw, list):
    return []
  return [str(item) for item in raw if item is not None and str(item).strip()]


def question_from_payload(payload: Any, *, domain: str | None = None, cognitive_level: str | None = None, skill_level: str | None = None) -> Question:
  """Normalize one model-generated question object.

  Keyword arguments are fallbacks from the originating request when the model omits a tag.
  Raises ParseError when the object has no text, no options, or no identifiable answer.
  """
  if not isinstance(payload, dict):
    raise ParseError(f"Question payload must be an object, got {type(payload).__name__}")

  question_text = payload.get("question_text") or payload.get("question")
  if not isinstance(question_text, str) or not question_text.strip():
    raise ParseError("Question payload is missing question_text")

  raw_options = payload.get("options")
  if not isinstance(raw_options, list) or not raw_options:
    raise ParseError("Question payload has no options")

  parts = [_option_parts(option) for option in raw_options]
  option_texts = [text for text, _ in parts]
  indices = _resolve_correct_indices(payload, option_texts, [flag for _, flag in parts])
  if not indices:
    raise ParseError("Question payload does not identify a correct answer")

  explicit_multiple = _flag(payload.get("multiple_answers"))
  multiple_answers = explicit_multiple is True or (explicit_multiple is None and len(indices) > 1)
  if not multiple_answers:
    indices = indices[:1]

  explanation = str(payload.get("explanation") or "")
  resolved_domain = str(payload.get("domain") or domain or "")
  references = _string_list(payload.get("references"))

  return Question(
    question_text=question_text.strip(),
    options=[QuestionOption(text=text, is_correct=position in indices) for position, text in enumerate(option_texts)],
    correct_answers=indices,
    multiple_answers=multiple_answers,
    explanation=explanation,
    explanation_details=_explanation_details(payload.get("explanation_details"), explanation),
    domain=resolved_domain,
    subdomain=str(payload.get("subdomain") or ""),
    cognitive_level=str(payload.get("cognitive_level") or cognitive_level or ""),
    skill_level=str(payload.get("skill_level") or skill_level or ""),
    weight=_weight(payload.get("weight"), resolved_domain),
    references=references or None,
    tags=_string_list(payload.get("tags")),
  )
