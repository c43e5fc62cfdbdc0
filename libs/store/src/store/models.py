from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

ProductType = Literal["HOUSING", "FINANCE", "POLICY"]
FinanceProductType = Literal[
    "DEPOSIT",
    "SAVING",
    "MORTGAGE_LOAN",
    "RENT_HOUSE_LOAN",
    "CREDIT_LOAN",
]
SyncStatus = Literal["ok", "error"]
SyncTrigger = Literal["manual", "scheduled", "bootstrap"]

FINANCE_PRODUCT_TYPE_NAMES: dict[str, str] = {
    "DEPOSIT": "정기예금",
    "SAVING": "적금",
    "MORTGAGE_LOAN": "주택담보대출",
    "RENT_HOUSE_LOAN": "전세자금대출",
    "CREDIT_LOAN": "개인신용대출",
}

LH_PROVIDER = "LH 한국토지주택공사"
SH_PROVIDER = "SH 서울주택도시공사"
SH_SOURCE = "i-sh"
YOUTH_POLICY_PROVIDER = "온라인청년센터"


class Product(BaseModel):
    id: int | None = None
    type: ProductType
    name: str
    provider: str
    detail_url: str | None = None


class FinanceCompany(BaseModel):
    id: int | None = None
    company_code: str
    name: str | None = None
    homepage: str | None = None
    contact: str | None = None


class FinanceProduct(BaseModel):
    id: int | None = None
    product_id: int | None = None
    company_code: str
    product_type: FinanceProductType
    join_condition: str | None = None
    interest_rate: float | None = None
    min_deposit: int | None = None


class FinanceLoanOption(BaseModel):
    id: int | None = None
    finance_product_id: int | None = None
    lend_rate_min: float | None = None
    lend_rate_max: float | None = None
    lend_rate_avg: float | None = None
    prev_lend_rate_avg: float | None = None
    repayment_type: str | None = None
    rate_type: str | None = None
    collateral_type: str | None = None
    credit_rate_type: str | None = None
    credit_rate_type_name: str | None = None
    credit_grade_1: float | None = None
    credit_grade_4: float | None = None
    credit_grade_5: float | None = None
    credit_grade_6: float | None = None
    credit_grade_10: float | None = None
    credit_grade_11: float | None = None
    credit_grade_12: float | None = None
    credit_grade_13: float | None = None
    credit_grade_avg: float | None = None
    updated_at: str | None = None

    @property
    def natural_key(self) -> tuple[str | None, str | None, str | None]:
        return (self.repayment_type, self.rate_type, self.collateral_type)


class LhNotice(BaseModel):
    id: int | None = None
    product_id: int | None = None
    title: str
    category: str | None = None
    notice_type: str | None = None
    region: str | None = None
    status: str | None = None
    notice_date: str
    close_date: str | None = None
    detail_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ShAnnouncement(BaseModel):
    id: int | None = None
    product_id: int | None = None
    source: str = SH_SOURCE
    external_id: str
    title: str
    category: str | None = None
    supply_type: str | None = None
    region: str | None = None
    department: str | None = None
    status: str | None = None
    post_date: str | None = None
    close_date: str | None = None
    views: int | None = None
    detail_url: str | None = None
    crawled_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class YouthPolicy(BaseModel):
    id: int | None = None
    product_id: int | None = None
    policy_no: str
    name: str
    description: str | None = None
    keyword: str | None = None
    category_large: str | None = None
    category_middle: str | None = None
    agency: str | None = None
    apply_url: str | None = None
    region_code: str | None = None
    target_age_min: int | None = None
    target_age_max: int | None = None
    support_content: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    created_at: str | None = None


class UserProfile(BaseModel):
    age: int | None = Field(default=None, ge=0, le=150)
    region: str | None = None
    income_band: str | None = None


class SyncReport(BaseModel):
    source: str
    trigger: SyncTrigger = "manual"
    started_at: str
    finished_at: str | None = None
    status: SyncStatus = "ok"
    fetch_calls: int = 0
    pages: int = 0
    fetched: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.status = "error"
        self.errors.append(message)

    def absorb(self, other: SyncReport) -> None:
        self.fetch_calls += other.fetch_calls
        self.pages += other.pages
        self.fetched += other.fetched
        self.inserted += other.inserted
        self.updated += other.updated
        self.skipped += other.skipped
        for message in other.errors:
            self.record_error(message)


class SyncRun(BaseModel):
    run_id: int
    source: str
    trigger: SyncTrigger
    status: SyncStatus
    started_at: str
    finished_at: str | None = None
    fetch_calls: int
    pages: int
    fetched: int
    inserted: int
    updated: int
    skipped: int
    error: str | None = None


class LoanRateChange(BaseModel):
    product_name: str
    provider: str
    product_type: FinanceProductType
    repayment_type: str | None = None
    rate_type: str | None = None
    collateral_type: str | None = None
    previous_avg: float
    current_avg: float
    updated_at: str
