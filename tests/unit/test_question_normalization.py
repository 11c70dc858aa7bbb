"""Normalization of model-generated question objects."""

from __future__ import annotations

import pytest

from app.jobs.errors import ParseError
from app.schema.questions import question_from_payload, question_to_dict, questions_from_dicts


def test_single_answer_uses_is_correct_flag(question_payload) -> None:
  question = question_from_payload(question_payload())
  assert question.multiple_answers is False
  assert question.correct_answers == [0]
  assert question.correct_answer == "Deploy the API active-active across two regions"
  assert [option.is_correct for option in question.options] == [True, False, False, False]


def test_multiple_answers_resolved_from_full_text(question_payload) -> None:
  payload = question_payload(
    options=[{"text": "Enable MFA", "isCorrect": True}, {"text": "Rotate access keys", "isCorrect": True}, {"text": "Open port 22", "isCorrect": False}],
    correct_answer=None,
    multiple_answers="1",
    correct_answers=["Enable MFA", "Rotate access keys"],
  )
  question = question_from_payload(payload)
  assert question.multiple_answers is True
  assert question.correct_answers == [0, 1]
  assert question.correct_answer is None
  assert question.correct_answer_texts == ["Enable MFA", "Rotate access keys"]


def test_several_flags_without_explicit_marker_become_multiple_answer(question_payload) -> None:
  payload = question_payload(options=[{"text": "A", "isCorrect": True}, {"text": "B", "isCorrect": True}, {"text": "C", "isCorrect": False}], correct_answer=None)
  question = question_from_payload(payload)
  assert question.multiple_answers is True
  assert question.correct_answers == [0, 1]


def test_explicit_single_answer_keeps_only_first_index(question_payload) -> None:
  payload = question_payload(options=[{"text": "A", "isCorrect": True}, {"text": "B", "isCorrect": True}], multiple_answers="0")
  question = question_from_payload(payload)
  assert question.multiple_answers is False
  assert question.correct_answers == [0]
  assert [option.is_correct for option in question.options] == [True, False]


def test_plain_string_options_match_correct_answer_text(question_payload) -> None:
  payload = question_payload(options=["Use a CDN", "Use a bigger disk", "Use a VPN"], correct_answer="Use a VPN")
  question = question_from_payload(payload)
  assert question.correct_answers == [2]
  assert question.options[2].is_correct is True


def test_numeric_correct_answers_are_option_indices(question_payload) -> None:
  payload = question_payload(options=["A", "B", "C", "D"], correct_answer=None, correct_answers=[1, 3], multiple_answers="1")
  assert question_from_payload(payload).correct_answers == [1, 3]


def test_missing_correct_answer_is_a_parse_error(question_payload) -> None:
  payload = question_payload(options=["A", "B"], correct_answer="Z")
  with pytest.raises(ParseError, match="correct answer"):
    question_from_payload(payload)


@pytest.mark.parametrize(
  "payload",
  [
    ["not", "an", "object"],
    {"options": ["A"], "correct_answer": "A"},
    {"question_text": "What now?", "options": []},
  ],
)
def test_unusable_payloads_are_rejected(payload) -> None:
  with pytest.raises(ParseError):
    question_from_payload(payload)


def test_request_filters_fill_missing_tags(question_payload) -> None:
  payload = question_payload(domain=None, cognitive_level="", skill_level=None, weight=None)
  question = question_from_payload(payload, domain="Troubleshooting", cognitive_level="Analysis", skill_level="Expert")
  assert question.domain == "Troubleshooting"
  assert question.cognitive_level == "Analysis"
  assert question.skill_level == "Expert"
  assert question.weight == 12


def test_unknown_domain_falls_back_to_default_weight(question_payload) -> None:
  question = question_from_payload(question_payload(domain="Networking", weight="heavy"))
  assert question.weight == 19


def test_explanation_details_fall_back_to_first_sentence(question_payload) -> None:
  question = question_from_payload(question_payload(explanation_details=None))
  assert question.explanation_details is not None
  assert question.explanation_details.summary == "Active-active spreads traffic across regions."
  assert question.explanation_details.breakdown == []

  bare = question_from_payload(question_payload(explanation="", explanation_details={"summary": "only summary"}))
  assert bare.explanation_details.summary == "No summary provided"


def test_empty_references_are_stored_as_none(question_payload) -> None:
  assert question_from_payload(question_payload(references=[])).references is None
  assert question_from_payload(question_payload(references=["Doc A", "", None])).references == ["Doc A"]


def test_question_dict_carries_derived_answer_and_wire_names(question_payload) -> None:
  data = question_to_dict(question_from_payload(question_payload()))
  assert data["correct_answer"] == "Deploy the API active-active across two regions"
  assert data["correct_answers"] == [0]
  assert data["options"][0] == {"text": "Deploy the API active-active across two regions", "isCorrect": True}
  assert "otherOptions" in data["explanation_details"]


def test_stored_questions_rehydrate_and_reject_garbage(question_payload) -> None:
  original = question_from_payload(question_payload())
  assert questions_from_dicts([question_to_dict(original)]) == [original]

  with pytest.raises(ParseError, match="Stored questions are malformed"):
    questions_from_dicts([{"question_text": "missing options"}])
