from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, time
from typing import Literal

from common.dates import parse_iso_datetime, parse_notice_date, parse_policy_date
from common.regions import region_display_name
from pydantic import BaseModel
from store.models import LhNotice, ShAnnouncement, YouthPolicy

from recommender.policy import is_active_policy

DEFAULT_LIMIT = 5


class RecentNotice(BaseModel):
    source: Literal["lh", "sh", "policy"]
    id: int | None = None
    title: str
    region: str | None = None
    detail_url: str | None = None
    created_at: str


class RecentNotices(BaseModel):
    all: list[RecentNotice]
    housing: list[RecentNotice]
    policy: list[RecentNotice]


def _at_midnight(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=UTC)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def first_timestamp(candidates: Iterable[str | None], now: datetime) -> datetime:
    """First candidate that parses as a date or timestamp, else ``now``."""
    for candidate in candidates:
        if not candidate:
            continue
        parsed_date = parse_notice_date(candidate) if len(candidate.strip()) <= 10 else None
        if parsed_date is not None:
            return _at_midnight(parsed_date)
        parsed = parse_iso_datetime(candidate)
        if parsed is not None:
            return _aware(parsed)
    return now


def from_lh_notice(notice: LhNotice, now: datetime) -> RecentNotice:
    created = first_timestamp((notice.notice_date, notice.created_at, notice.updated_at), now)
    return RecentNotice(
        source="lh",
        id=notice.id,
        title=notice.title,
        region=notice.region,
        detail_url=notice.detail_url,
        created_at=created.isoformat(),
    )


def from_sh_announcement(announcement: ShAnnouncement, now: datetime) -> RecentNotice:
    created = first_timestamp(
        (
            announcement.post_date,
            announcement.crawled_at,
            announcement.updated_at,
        ),
        now,
    )
    return RecentNotice(
        source="sh",
        id=announcement.id,
        title=announcement.title,
        region=announcement.region,
        detail_url=announcement.detail_url,
        created_at=created.isoformat(),
    )


def from_policy(policy: YouthPolicy, now: datetime) -> RecentNotice:
    start = parse_policy_date(policy.start_date)
    created = _at_midnight(start) if start else first_timestamp((policy.created_at,), now)
    return RecentNotice(
        source="policy",
        id=policy.id,
        title=policy.name,
        region=region_display_name(policy.region_code),
        detail_url=policy.apply_url,
        created_at=created.isoformat(),
    )


def _newest(items: Iterable[RecentNotice], limit: int) -> list[RecentNotice]:
    return sorted(
        items,
        key=lambda item: datetime.fromisoformat(item.created_at),
        reverse=True,
    )[:limit]


def recent_notices(
    lh_notices: Iterable[LhNotice],
    sh_announcements: Iterable[ShAnnouncement],
    policies: Iterable[YouthPolicy],
    *,
    limit: int = DEFAULT_LIMIT,
    now: datetime | None = None,
) -> RecentNotices:
    resolved_now = _aware(now) if now else datetime.now(UTC)
    today = resolved_now.date()
    lh_top = _newest((from_lh_notice(notice, resolved_now) for notice in lh_notices), limit)
    sh_top = _newest(
        (from_sh_announcement(announcement, resolved_now) for announcement in sh_announcements),
        limit,
    )
    policy_top = _newest(
        (
            from_policy(policy, resolved_now)
            for policy in policies
            if is_active_policy(policy, today)
        ),
        limit,
    )
    housing = _newest([*lh_top, *sh_top], limit)
    return RecentNotices(
        all=_newest([*housing, *policy_top], limit),
        housing=housing,
        policy=policy_top,
    )
