from __future__ import annotations

from datetime import date

import pytest
from common.dates import (
    add_months,
    format_policy_date,
    is_ongoing,
    parse_notice_date,
    parse_policy_date,
)

pytestmark = pytest.mark.unit


def test_parse_policy_date_accepts_eight_digit_strings() -> None:
    assert parse_policy_date("20250301") == date(2025, 3, 1)
    assert parse_policy_date(" 20251231 ") == date(2025, 12, 31)


@pytest.mark.parametrize("value", [None, "", "2025-03-01", "20251340", "abcdefgh", "00000000"])
def test_parse_policy_date_returns_none_for_unusable_values(value: str | None) -> None:
    assert parse_policy_date(value) is None


def test_is_ongoing_only_matches_sentinel() -> None:
    assert is_ongoing("00000000")
    assert not is_ongoing("20250101")
    assert not is_ongoing(None)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2025.01.02", date(2025, 1, 2)),
        ("2025-01-02", date(2025, 1, 2)),
        ("2025-01-02T09:00:00", date(2025, 1, 2)),
        ("20250102", date(2025, 1, 2)),
        ("not a date", None),
        (None, None),
    ],
)
def test_parse_notice_date_accepts_provider_formats(value: str | None, expected: date | None) -> None:
    assert parse_notice_date(value) == expected


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2025, 11, 15), 2) == date(2026, 1, 15)


def test_format_policy_date_round_trips_with_parser() -> None:
    assert format_policy_date(date(2025, 7, 4)) == "20250704"
