from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Literal

from common.dates import add_months, is_ongoing, parse_policy_date
from common.regions import (
    region_display_name,
    region_prefix,
    region_prefix_for_name,
    split_region_codes,
)
from common.utils import normalize_whitespace
from pydantic import BaseModel
from store.models import UserProfile, YouthPolicy

RegionTier = Literal["match", "nationwide", "unknown", "mismatch"]

REGION_TIER_SCORES: dict[RegionTier, float] = {
    "match": 0.0,
    "nationwide": 5.0,
    "unknown": 5.0,
    "mismatch": 15.0,
}
AGE_PER_YEAR = 2.0
AGE_CAP = 20.0
AGE_UNKNOWN = 4.0
INCOME_MISS = 3.0
INCOME_KEYWORDS = ("소득", "보조금", "지원", "장려금", "대출")
MAX_RESULTS = 10


class PolicyScoreBreakdown(BaseModel):
    age_score: float
    region_tier: RegionTier
    region_score: float
    income_score: float
    final_score: float


class RankedPolicy(BaseModel):
    policy_no: str
    name: str
    agency: str | None = None
    keyword: str | None = None
    region_name: str | None = None
    apply_url: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    target_age_min: int | None = None
    target_age_max: int | None = None
    score: float
    reason: str
    score_breakdown: PolicyScoreBreakdown


def _parse_bound(value: str | None) -> tuple[bool, date | None]:
    """Return (usable, date). Blank means no bound; malformed is unusable."""
    if not (value or "").strip():
        return True, None
    parsed = parse_policy_date(value)
    return parsed is not None, parsed


def is_active_policy(policy: YouthPolicy, today: date) -> bool:
    """Active window: not yet ended, and starting within a month."""
    usable_start, start = _parse_bound(policy.start_date)
    if not usable_start:
        return False
    if start is not None and start > add_months(today, 1):
        return False
    if is_ongoing(policy.end_date):
        return True
    usable_end, end = _parse_bound(policy.end_date)
    if not usable_end:
        return False
    return end is None or end >= today


def policy_region_tier(user_region: str | None, region_code: str | None, *, strict: bool) -> RegionTier:
    codes = split_region_codes(region_code)
    if not codes:
        return "nationwide"
    user = normalize_whitespace(user_region or "")
    if not user:
        return "unknown"

    if strict:
        prefixes = {region_prefix(code) for code in codes}
        if len(prefixes) != 1:
            return "mismatch"
        display_name = region_display_name(codes[0]) or ""
        return "match" if user in display_name else "mismatch"

    user_prefix = region_prefix_for_name(user)
    if user_prefix is None:
        return "unknown"
    return "match" if any(region_prefix(code) == user_prefix for code in codes) else "mismatch"


def age_distance(age: int, minimum: int | None, maximum: int | None) -> int:
    if minimum is not None and age < minimum:
        return minimum - age
    if maximum is not None and age > maximum:
        return age - maximum
    return 0


def age_fit_score(age: int | None, minimum: int | None, maximum: int | None) -> float:
    if age is None:
        return AGE_UNKNOWN
    return min(age_distance(age, minimum, maximum) * AGE_PER_YEAR, AGE_CAP)


def has_income_keyword(policy: YouthPolicy) -> bool:
    text = " ".join(
        part
        for part in (policy.keyword, policy.name, policy.category_middle, policy.support_content)
        if part
    )
    return any(keyword in text for keyword in INCOME_KEYWORDS)


def _reason(
    profile: UserProfile,
    policy: YouthPolicy,
    tier: RegionTier,
    income_matched: bool,
) -> str:
    parts: list[str] = []
    if profile.age is None:
        parts.append("age not provided")
    else:
        distance = age_distance(profile.age, policy.target_age_min, policy.target_age_max)
        if distance == 0:
            parts.append("age within target range")
        else:
            parts.append(f"age {distance} years outside target range")
    parts.append(
        {
            "match": "region matches",
            "nationwide": "nationwide policy",
            "unknown": "region not set",
            "mismatch": "different region",
        }[tier]
    )
    if income_matched:
        parts.append("income support keyword")
    return ", ".join(parts)


def score_policy(profile: UserProfile, policy: YouthPolicy, *, strict_region: bool) -> RankedPolicy:
    tier = policy_region_tier(profile.region, policy.region_code, strict=strict_region)
    region_score = REGION_TIER_SCORES[tier]
    age_score = age_fit_score(profile.age, policy.target_age_min, policy.target_age_max)
    income_matched = bool(profile.income_band) and has_income_keyword(policy)
    income_score = 0.0
    if profile.income_band and not income_matched:
        income_score = INCOME_MISS

    score = round(age_score + region_score + income_score, 4)
    return RankedPolicy(
        policy_no=policy.policy_no,
        name=policy.name,
        agency=policy.agency,
        keyword=policy.keyword,
        region_name=region_display_name(policy.region_code),
        apply_url=policy.apply_url,
        start_date=policy.start_date,
        end_date=policy.end_date,
        target_age_min=policy.target_age_min,
        target_age_max=policy.target_age_max,
        score=score,
        reason=_reason(profile, policy, tier, income_matched),
        score_breakdown=PolicyScoreBreakdown(
            age_score=age_score,
            region_tier=tier,
            region_score=region_score,
            income_score=income_score,
            final_score=score,
        ),
    )


def _sort_key(item: RankedPolicy) -> tuple[float, int, str]:
    start = parse_policy_date(item.start_date)
    return (item.score, -(start.toordinal() if start else 0), item.policy_no)


def recommend_policies(
    profile: UserProfile,
    policies: Iterable[YouthPolicy],
    *,
    strict_region: bool = False,
    today: date | None = None,
    limit: int = MAX_RESULTS,
) -> list[RankedPolicy]:
    resolved_today = today or date.today()
    ranked = [
        score_policy(profile, policy, strict_region=strict_region)
        for policy in policies
        if is_active_policy(policy, resolved_today)
    ]
    ranked.sort(key=_sort_key)
    return ranked[: min(limit, MAX_RESULTS)]
