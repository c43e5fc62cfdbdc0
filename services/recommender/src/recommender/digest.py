from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from common.dates import is_ongoing, parse_notice_date, parse_policy_date
from common.utils import now_utc_iso
from pydantic import BaseModel
from store.models import LhNotice, LoanRateChange, ShAnnouncement, YouthPolicy

from recommender.policy import is_active_policy

LH_CLOSING_DAYS = 3
SH_RECENT_DAYS = 10
LOAN_CHANGE_DAYS = 3
POLICY_ENDING_DAYS = 7


class DigestSection(BaseModel):
    title: str
    lines: list[str]


class DailyDigest(BaseModel):
    generated_at: str
    digest_date: str
    sections: list[DigestSection]
    message: str


def lh_closing_soon(notices: Iterable[LhNotice], today: date) -> list[str]:
    lines: list[tuple[int, str]] = []
    for notice in notices:
        close_date = parse_notice_date(notice.close_date)
        if close_date is None:
            continue
        days_left = (close_date - today).days
        if 0 <= days_left <= LH_CLOSING_DAYS:
            region = f"[{notice.region}] " if notice.region else ""
            lines.append((days_left, f"{region}{notice.title} (D-{days_left})"))
    return [line for _, line in sorted(lines)]


def sh_recently_posted(announcements: Iterable[ShAnnouncement], today: date) -> list[str]:
    lines: list[tuple[date, str]] = []
    for announcement in announcements:
        posted = parse_notice_date(announcement.post_date)
        if posted is None or (today - posted).days > SH_RECENT_DAYS or posted > today:
            continue
        kind = announcement.supply_type or announcement.category or "SH"
        lines.append((posted, f"[{kind}] {announcement.title} ({posted.isoformat()})"))
    return [line for _, line in sorted(lines, reverse=True)]


def loan_rate_lines(changes: Iterable[LoanRateChange]) -> list[str]:
    lines = []
    for change in changes:
        direction = "up" if change.current_avg > change.previous_avg else "down"
        lines.append(
            f"{change.provider} {change.product_name}: "
            f"{change.previous_avg:.2f}% -> {change.current_avg:.2f}% ({direction})"
        )
    return lines


def policies_ending_soon(policies: Iterable[YouthPolicy], today: date) -> list[str]:
    lines: list[tuple[date, str]] = []
    for policy in policies:
        if is_ongoing(policy.end_date) or not is_active_policy(policy, today):
            continue
        end = parse_policy_date(policy.end_date)
        if end is None or (end - today).days > POLICY_ENDING_DAYS:
            continue
        lines.append((end, f"{policy.name} (ends {end.isoformat()})"))
    return [line for _, line in sorted(lines)]


def render_digest(digest_date: date, sections: list[DigestSection]) -> str:
    blocks = [f"Daily listing digest for {digest_date.isoformat()}"]
    for section in sections:
        if not section.lines:
            continue
        blocks.append("\n".join([f"## {section.title}", *(f"- {line}" for line in section.lines)]))
    if len(blocks) == 1:
        blocks.append("No new or closing listings today.")
    return "\n\n".join(blocks)


def build_daily_digest(
    lh_notices: Iterable[LhNotice],
    sh_announcements: Iterable[ShAnnouncement],
    loan_changes: Iterable[LoanRateChange],
    policies: Iterable[YouthPolicy],
    *,
    today: date | None = None,
) -> DailyDigest:
    resolved_today = today or date.today()
    sections = [
        DigestSection(
            title=f"LH notices closing within {LH_CLOSING_DAYS} days",
            lines=lh_closing_soon(lh_notices, resolved_today),
        ),
        DigestSection(
            title=f"SH announcements from the last {SH_RECENT_DAYS} days",
            lines=sh_recently_posted(sh_announcements, resolved_today),
        ),
        DigestSection(
            title=f"Loan rate changes in the last {LOAN_CHANGE_DAYS} days",
            lines=loan_rate_lines(loan_changes),
        ),
        DigestSection(
            title=f"Youth policies ending within {POLICY_ENDING_DAYS} days",
            lines=policies_ending_soon(policies, resolved_today),
        ),
    ]
    return DailyDigest(
        generated_at=now_utc_iso(),
        digest_date=resolved_today.isoformat(),
        sections=sections,
        message=render_digest(resolved_today, sections),
    )


def loan_change_cutoff(today: date) -> str:
    """Earliest ``updated_at`` counted: today and the two days before it."""
    return (today - timedelta(days=LOAN_CHANGE_DAYS - 1)).isoformat()
