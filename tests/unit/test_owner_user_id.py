from __future__ import annotations

import pytest

from app.storage.batch_jobs_repo import coerce_owner_user_id


@pytest.mark.parametrize(
  ("raw", "expected"),
  [
    (5, 5),
    (" 12 ", 12),
    ("0", None),
    (-3, None),
    (True, None),
    ("abc", None),
    (3.5, None),
    (None, None),
  ],
)
def test_owner_user_id_is_positive_integer_or_none(raw, expected) -> None:
  assert coerce_owner_user_id(raw) == expected
