from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta
from pathlib import Path

import pytest
from common.dates import format_policy_date
from common.utils import now_utc_iso
from fastapi.testclient import TestClient
from recommender.main import create_app
from store.models import (
    FinanceLoanOption,
    FinanceProduct,
    LhNotice,
    Product,
    ShAnnouncement,
    YouthPolicy,
)
from store.repository import ListingRepository
from store.upsert import upsert_entity

pytestmark = pytest.mark.integration


def lh_date(offset_days: int) -> str:
    return (date.today() + timedelta(days=offset_days)).strftime("%Y.%m.%d")


def policy_date(offset_days: int) -> str:
    return format_policy_date(date.today() + timedelta(days=offset_days))


def seed(db_path: Path) -> None:
    repository = ListingRepository(str(db_path))
    repository.connect()
    try:
        repository.insert_lh_notice(
            LhNotice(
                title="서울 행복주택 입주자 모집",
                region="서울특별시",
                notice_date=lh_date(-1),
                close_date=lh_date(2),
            )
        )
        repository.insert_lh_notice(
            LhNotice(
                title="부산 국민임대 입주자 모집",
                region="부산광역시",
                notice_date=lh_date(-20),
                close_date=lh_date(25),
            )
        )
        repository.insert_lh_notice(
            LhNotice(
                title="마감된 공고",
                region="서울특별시",
                notice_date=lh_date(-30),
                close_date=lh_date(-1),
            )
        )
        repository.insert_sh_announcement(
            ShAnnouncement(
                external_id="301",
                title="마포구 청년안심주택",
                region="서울특별시 마포구",
                post_date=(date.today() - timedelta(days=2)).isoformat(),
                close_date=(date.today() + timedelta(days=6)).isoformat(),
            )
        )
        repository.insert_youth_policy(
            YouthPolicy(
                policy_no="P-SEOUL",
                name="서울 청년 월세 지원",
                region_code="11110",
                target_age_min=19,
                target_age_max=39,
                start_date=policy_date(-30),
                end_date=policy_date(5),
            )
        )
        repository.insert_youth_policy(
            YouthPolicy(
                policy_no="P-ALL",
                name="청년 마음건강 바우처",
                target_age_min=19,
                target_age_max=34,
                start_date=policy_date(-10),
                end_date="00000000",
            )
        )
        repository.insert_youth_policy(
            YouthPolicy(
                policy_no="P-ENDED",
                name="종료된 정책",
                start_date=policy_date(-60),
                end_date=policy_date(-1),
            )
        )

        product = repository.insert_product(Product(type="FINANCE", name="아파트론", provider="우리은행"))
        finance_product = repository.insert_finance_product(
            FinanceProduct(product_id=product.id, company_code="0010001", product_type="MORTGAGE_LOAN")
        )
        option = repository.insert_loan_option(
            FinanceLoanOption(finance_product_id=finance_product.id, lend_rate_avg=4.2)
        )
        merged = upsert_entity(
            "finance_loan_option",
            option,
            option.model_copy(update={"lend_rate_avg": 3.9, "updated_at": now_utc_iso()}),
        )
        assert merged is not None
        repository.update_loan_option(merged)

        stale_product = repository.insert_product(Product(type="FINANCE", name="전세론", provider="우리은행"))
        stale_finance_product = repository.insert_finance_product(
            FinanceProduct(product_id=stale_product.id, company_code="0010001", product_type="RENT_HOUSE_LOAN")
        )
        stale_option = repository.insert_loan_option(
            FinanceLoanOption(finance_product_id=stale_finance_product.id, lend_rate_avg=4.0)
        )
        three_days_back = f"{(date.today() - timedelta(days=3)).isoformat()}T12:00:00+00:00"
        stale = upsert_entity(
            "finance_loan_option",
            stale_option,
            stale_option.model_copy(update={"lend_rate_avg": 4.4, "updated_at": three_days_back}),
        )
        assert stale is not None
        repository.update_loan_option(stale)
    finally:
        repository.close()


@pytest.fixture
def client(tmp_path: Path) -> Iterator[TestClient]:
    db_path = tmp_path / "listings.sqlite3"
    seed(db_path)
    with TestClient(create_app(database_path=str(db_path))) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "recommender"}


def test_housing_recommendations_rank_open_notices(client: TestClient) -> None:
    response = client.post(
        "/recommendations/housing",
        json={"profile": {"age": 27, "region": "서울특별시"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["candidates"] == 4
    titles = [item["notice"]["title"] for item in body["recommendations"]]
    assert titles[0] == "서울 행복주택 입주자 모집"
    assert "마감된 공고" not in titles
    assert titles[-1] == "부산 국민임대 입주자 모집"
    first = body["recommendations"][0]
    assert first["score"] == first["score_breakdown"]["final_score"]
    assert first["reason"].startswith("same region as user")


def test_housing_without_profile_still_answers(client: TestClient) -> None:
    response = client.post("/recommendations/housing", json={})

    assert response.status_code == 200
    assert len(response.json()["recommendations"]) == 3


def test_housing_limit_is_capped(client: TestClient) -> None:
    response = client.post("/recommendations/housing", json={"limit": 50})

    assert response.status_code == 422


def test_policy_recommendations_support_strict_mode(client: TestClient) -> None:
    loose = client.post(
        "/recommendations/policies",
        json={"profile": {"age": 25, "region": "서울특별시 종로구"}},
    )
    strict = client.post(
        "/recommendations/policies",
        json={"profile": {"age": 25, "region": "서울특별시 종로구"}, "strict_region": True},
    )

    assert loose.status_code == 200
    assert strict.status_code == 200
    loose_body = loose.json()
    assert loose_body["candidates"] == 3
    assert [item["policy_no"] for item in loose_body["recommendations"]] == ["P-SEOUL", "P-ALL"]
    strict_ranked = {item["policy_no"]: item for item in strict.json()["recommendations"]}
    assert strict_ranked["P-SEOUL"]["score_breakdown"]["region_tier"] == "mismatch"
    assert strict.json()["strict_region"] is True


def test_recent_notices(client: TestClient) -> None:
    response = client.get("/notices/recent", params={"limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert len(body["all"]) == 2
    assert len(body["housing"]) == 2
    assert {item["source"] for item in body["policy"]} == {"policy"}
    assert "종료된 정책" not in [item["title"] for item in body["policy"]]


def test_daily_digest(client: TestClient) -> None:
    response = client.get("/digest/daily")

    assert response.status_code == 200
    body = response.json()
    sections = {section["title"]: section["lines"] for section in body["sections"]}
    assert sections["LH notices closing within 3 days"] == ["[서울특별시] 서울 행복주택 입주자 모집 (D-2)"]
    assert sections["Loan rate changes in the last 3 days"] == [
        "우리은행 아파트론: 4.20% -> 3.90% (down)"
    ]
    assert sections["Youth policies ending within 7 days"][0].startswith("서울 청년 월세 지원")
    assert "## SH announcements from the last 10 days" in body["message"]
    assert "전세론" not in body["message"]
