from __future__ import annotations

from datetime import datetime

import pytest
from common.utils import blank_to_none, normalize_whitespace, now_utc_iso

pytestmark = pytest.mark.unit


def test_normalize_whitespace_collapses_runs_and_non_breaking_spaces() -> None:
    assert normalize_whitespace("  020000  ") == "020000"
    assert normalize_whitespace("청년  안심\n주택") == "청년 안심 주택"


def test_blank_to_none_returns_none_for_blank_values() -> None:
    assert blank_to_none(None) is None
    assert blank_to_none("   ") is None
    assert blank_to_none(" 강남구 ") == "강남구"
    assert blank_to_none(34) == "34"


def test_now_utc_iso_returns_parseable_utc_timestamp() -> None:
    parsed = datetime.fromisoformat(now_utc_iso())
    assert parsed.tzinfo is not None
    assert parsed.utcoffset() is not None
    assert parsed.utcoffset().total_seconds() == 0
