from __future__ import annotations

import calendar
from datetime import date, datetime

ONGOING_END_DATE = "00000000"
POLICY_DATE_FORMAT = "%Y%m%d"
NOTICE_DATE_FORMATS = ("%Y.%m.%d", "%Y-%m-%d", "%Y%m%d", "%Y/%m/%d")


def parse_policy_date(value: str | None) -> date | None:
    """Parse an 8-digit ``yyyyMMdd`` string.

    The ongoing sentinel is not a date and parses to ``None``; callers check
    :func:`is_ongoing` first.
    """
    if not value:
        return None
    text = value.strip()
    if len(text) != 8 or not text.isdigit() or text == ONGOING_END_DATE:
        return None
    try:
        return datetime.strptime(text, POLICY_DATE_FORMAT).date()
    except ValueError:
        return None


def is_ongoing(value: str | None) -> bool:
    return (value or "").strip() == ONGOING_END_DATE


def parse_notice_date(value: str | None) -> date | None:
    if not value:
        return None
    text = value.strip()[:10]
    for date_format in NOTICE_DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format).date()
        except ValueError:
            continue
    return None


def parse_iso_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def format_policy_date(value: date) -> str:
    return value.strftime(POLICY_DATE_FORMAT)
