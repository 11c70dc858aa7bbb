from __future__ import annotations

import re

from app.utils.ids import generate_batch_id, generate_custom_id


def test_batch_ids_embed_time_and_random_suffix() -> None:
  first = generate_batch_id(1700000000000)
  second = generate_batch_id(1700000000000)
  assert re.fullmatch(r"batch_1700000000000_[0-9a-f]{8}", first)
  assert first != second


def test_custom_ids_are_one_based_and_reference_the_batch() -> None:
  assert generate_custom_id(0, "batch_1_abc", 42) == "question_1_42_batch_1_abc"
  assert generate_custom_id(4, "batch_1_abc", 42) == "question_5_42_batch_1_abc"
