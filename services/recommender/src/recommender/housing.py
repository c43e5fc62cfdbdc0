from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date
from typing import Literal

from common.dates import parse_notice_date
from common.regions import region_prefix_for_name
from common.utils import normalize_whitespace
from pydantic import BaseModel
from store.models import LhNotice, ShAnnouncement, UserProfile

RegionTier = Literal["exact", "partial", "none"]
HousingKind = Literal["rental", "sale"]

REGION_TIER_SCORES: dict[RegionTier, float] = {"exact": 0.0, "partial": 10.0, "none": 20.0}
INCOME_MISMATCH_PENALTY = 8.0
AGE_MISMATCH_PENALTY = 5.0
RENTAL_INCOME_CEILING = 150
SALE_INCOME_CEILING = 300
SALE_KEYWORDS = ("분양",)
RENTAL_KEYWORDS = ("임대", "행복주택", "청년안심주택", "전세", "매입")
INCOME_PERCENT = re.compile(r"(\d+)\s*%")
RECENCY_PER_DAY = 0.5
RECENCY_CAP = 15.0
URGENCY_PER_DAY = 0.3
URGENCY_CAP = 18.0
CLOSING_SOON_DAYS = 7
RECENT_DAYS = 7
MAX_RESULTS = 10


class HousingNotice(BaseModel):
    source: Literal["lh", "sh"]
    id: int | None = None
    title: str
    region: str | None = None
    notice_date: str | None = None
    close_date: str | None = None
    status: str | None = None
    category: str | None = None
    detail_url: str | None = None


class HousingScoreBreakdown(BaseModel):
    region_tier: RegionTier
    region_score: float
    recency_score: float
    urgency_score: float
    income_score: float
    age_score: float
    final_score: float


class RankedHousingNotice(BaseModel):
    notice: HousingNotice
    score: float
    reason: str
    days_until_close: int
    score_breakdown: HousingScoreBreakdown


def housing_candidates(
    lh_notices: Iterable[LhNotice],
    sh_announcements: Iterable[ShAnnouncement],
) -> list[HousingNotice]:
    candidates = [
        HousingNotice(
            source="lh",
            id=notice.id,
            title=notice.title,
            region=notice.region,
            notice_date=notice.notice_date,
            close_date=notice.close_date,
            status=notice.status,
            category=notice.notice_type or notice.category,
            detail_url=notice.detail_url,
        )
        for notice in lh_notices
    ]
    candidates.extend(
        HousingNotice(
            source="sh",
            id=announcement.id,
            title=announcement.title,
            region=announcement.region,
            notice_date=announcement.post_date,
            close_date=announcement.close_date,
            status=announcement.status,
            category=announcement.supply_type or announcement.category,
            detail_url=announcement.detail_url,
        )
        for announcement in sh_announcements
    )
    return candidates


def _compact(text: str | None) -> str:
    return normalize_whitespace(text or "").replace(" ", "")


def region_match_tier(user_region: str | None, notice_region: str | None) -> RegionTier:
    user = _compact(user_region)
    notice = _compact(notice_region)
    if not user or not notice:
        return "none"
    if user == notice:
        return "exact"
    if user in notice or notice in user:
        return "partial"
    user_prefix = region_prefix_for_name(user)
    if user_prefix is not None and user_prefix == region_prefix_for_name(notice):
        return "partial"
    return "none"


def housing_kind(notice: HousingNotice) -> HousingKind | None:
    text = f"{notice.category or ''} {notice.title}"
    if any(keyword in text for keyword in SALE_KEYWORDS):
        return "sale"
    if any(keyword in text for keyword in RENTAL_KEYWORDS):
        return "rental"
    return None


def preferred_kind_for_income(income_band: str | None) -> HousingKind | None:
    """Rental up to 150% of median income, sale from there up to 300%."""
    match = INCOME_PERCENT.search(income_band or "")
    if match is None:
        return None
    percent = int(match.group(1))
    if percent <= RENTAL_INCOME_CEILING:
        return "rental"
    if percent <= SALE_INCOME_CEILING:
        return "sale"
    return None


def age_fits_kind(age: int, kind: HousingKind) -> bool:
    if kind == "rental":
        return age < 35 or age > 60
    return 30 <= age <= 50


def _income_part(preferred: HousingKind | None, kind: HousingKind | None) -> str | None:
    if preferred is None or kind is None:
        return None
    if preferred != kind:
        return "income band favours other listings"
    return "rental suited to income band" if kind == "rental" else "sale suited to income band"


def _age_part(age: int | None, kind: HousingKind | None) -> str | None:
    if age is None or kind is None:
        return None
    if not age_fits_kind(age, kind):
        return "outside usual age group"
    if kind == "rental" and age < 35:
        return "youth priority"
    if kind == "rental":
        return "senior priority"
    return None


def _reason(
    tier: RegionTier,
    has_region: bool,
    elapsed_days: int | None,
    days_left: int,
    extras: Iterable[str | None] = (),
) -> str:
    parts: list[str] = []
    if not has_region:
        parts.append("region not set")
    elif tier == "exact":
        parts.append("same region as user")
    elif tier == "partial":
        parts.append("nearby region")
    else:
        parts.append("other region")
    parts.extend(part for part in extras if part)
    if days_left == 0:
        parts.append("closes today")
    elif days_left <= CLOSING_SOON_DAYS:
        parts.append(f"closing soon (D-{days_left})")
    if elapsed_days is not None and elapsed_days <= RECENT_DAYS:
        parts.append("recently posted")
    return ", ".join(parts)


def score_housing_notice(
    profile: UserProfile,
    notice: HousingNotice,
    *,
    today: date,
) -> RankedHousingNotice | None:
    """Score one notice; lower is better. Returns ``None`` when it cannot be ranked."""
    close_date = parse_notice_date(notice.close_date)
    if close_date is None:
        return None
    days_left = (close_date - today).days
    if days_left < 0:
        return None

    tier = region_match_tier(profile.region, notice.region)
    region_score = REGION_TIER_SCORES[tier]

    posted = parse_notice_date(notice.notice_date)
    elapsed_days = max((today - posted).days, 0) if posted else None
    recency_score = (
        min(elapsed_days * RECENCY_PER_DAY, RECENCY_CAP) if elapsed_days is not None else RECENCY_CAP
    )
    urgency_score = min(days_left * URGENCY_PER_DAY, URGENCY_CAP)

    # Unknown listing kind or missing profile fields add nothing.
    kind = housing_kind(notice)
    preferred = preferred_kind_for_income(profile.income_band)
    income_score = INCOME_MISMATCH_PENALTY if preferred and kind and preferred != kind else 0.0
    age_score = (
        AGE_MISMATCH_PENALTY
        if profile.age is not None and kind and not age_fits_kind(profile.age, kind)
        else 0.0
    )

    score = round(region_score + recency_score + urgency_score + income_score + age_score, 4)
    return RankedHousingNotice(
        notice=notice,
        score=score,
        reason=_reason(
            tier,
            bool(_compact(profile.region)),
            elapsed_days,
            days_left,
            (_income_part(preferred, kind), _age_part(profile.age, kind)),
        ),
        days_until_close=days_left,
        score_breakdown=HousingScoreBreakdown(
            region_tier=tier,
            region_score=region_score,
            recency_score=round(recency_score, 4),
            urgency_score=round(urgency_score, 4),
            income_score=income_score,
            age_score=age_score,
            final_score=score,
        ),
    )


def _sort_key(item: RankedHousingNotice) -> tuple[float, int, str]:
    posted = parse_notice_date(item.notice.notice_date)
    # Ties: newer notice first, then title for a stable order.
    return (item.score, -(posted.toordinal() if posted else 0), item.notice.title)


def recommend_housing(
    profile: UserProfile,
    notices: Iterable[HousingNotice],
    *,
    today: date | None = None,
    limit: int = MAX_RESULTS,
) -> list[RankedHousingNotice]:
    resolved_today = today or date.today()
    ranked: list[RankedHousingNotice] = []
    for notice in notices:
        scored = score_housing_notice(profile, notice, today=resolved_today)
        if scored is not None:
            ranked.append(scored)
    ranked.sort(key=_sort_key)
    return ranked[: min(limit, MAX_RESULTS)]
