from __future__ import annotations

from datetime import date

import pytest
from recommender.digest import (
    build_daily_digest,
    lh_closing_soon,
    loan_change_cutoff,
    loan_rate_lines,
    policies_ending_soon,
    sh_recently_posted,
)
from store.models import LhNotice, LoanRateChange, ShAnnouncement, YouthPolicy

pytestmark = pytest.mark.unit

TODAY = date(2025, 3, 10)


def test_lh_section_lists_notices_closing_within_three_days() -> None:
    notices = [
        LhNotice(title="B 공고", notice_date="2025.03.01", close_date="2025.03.12"),
        LhNotice(title="A 공고", notice_date="2025.03.01", close_date="2025.03.10", region="서울특별시"),
        LhNotice(title="여유", notice_date="2025.03.01", close_date="2025.03.14"),
        LhNotice(title="지난 공고", notice_date="2025.03.01", close_date="2025.03.09"),
    ]

    assert lh_closing_soon(notices, TODAY) == ["[서울특별시] A 공고 (D-0)", "B 공고 (D-2)"]


def test_sh_section_lists_recent_posts_newest_first() -> None:
    announcements = [
        ShAnnouncement(external_id="1", title="9일 전", post_date="2025-03-01", supply_type="행복주택"),
        ShAnnouncement(external_id="2", title="11일 전", post_date="2025-02-27"),
        ShAnnouncement(external_id="3", title="어제", post_date="2025-03-09", category="주택임대"),
        ShAnnouncement(external_id="4", title="예정", post_date="2025-03-11"),
    ]

    assert sh_recently_posted(announcements, TODAY) == [
        "[주택임대] 어제 (2025-03-09)",
        "[행복주택] 9일 전 (2025-03-01)",
    ]


def test_loan_lines_show_direction() -> None:
    changes = [
        LoanRateChange(
            product_name="아파트론",
            provider="우리은행",
            product_type="MORTGAGE_LOAN",
            previous_avg=4.1,
            current_avg=3.95,
            updated_at="2025-03-09T00:00:00+00:00",
        ),
        LoanRateChange(
            product_name="전세대출",
            provider="국민은행",
            product_type="RENT_HOUSE_LOAN",
            previous_avg=3.5,
            current_avg=3.6,
            updated_at="2025-03-09T00:00:00+00:00",
        ),
    ]

    assert loan_rate_lines(changes) == [
        "우리은행 아파트론: 4.10% -> 3.95% (down)",
        "국민은행 전세대출: 3.50% -> 3.60% (up)",
    ]


def test_policy_section_skips_ongoing_and_far_end_dates() -> None:
    policies = [
        YouthPolicy(policy_no="P1", name="곧 종료", start_date="20250101", end_date="20250315"),
        YouthPolicy(policy_no="P2", name="열흘 뒤", start_date="20250101", end_date="20250320"),
        YouthPolicy(policy_no="P3", name="상시", start_date="20250101", end_date="00000000"),
        YouthPolicy(policy_no="P4", name="종료", start_date="20250101", end_date="20250301"),
    ]

    assert policies_ending_soon(policies, TODAY) == ["곧 종료 (ends 2025-03-15)"]


def test_digest_message_renders_non_empty_sections() -> None:
    digest = build_daily_digest(
        [LhNotice(title="행복주택", notice_date="2025.03.01", close_date="2025.03.11")],
        [],
        [],
        [],
        today=TODAY,
    )

    assert digest.digest_date == "2025-03-10"
    assert len(digest.sections) == 4
    assert digest.message == (
        "Daily listing digest for 2025-03-10\n\n"
        "## LH notices closing within 3 days\n- 행복주택 (D-1)"
    )


def test_empty_digest_says_so() -> None:
    digest = build_daily_digest([], [], [], [], today=TODAY)

    assert all(section.lines == [] for section in digest.sections)
    assert digest.message.endswith("No new or closing listings today.")


def test_loan_change_window_covers_today_and_the_two_days_before() -> None:
    assert loan_change_cutoff(TODAY) == "2025-03-08"
