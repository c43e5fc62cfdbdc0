from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, Literal

from common.utils import now_utc_iso
from pydantic import BaseModel, Field, ValidationError
from store.models import (
    FinanceCompany,
    FinanceLoanOption,
    FinanceProduct,
    FinanceProductType,
    Product,
    SyncReport,
    SyncTrigger,
)
from store.repository import DuplicateRecordError, ListingRepository
from store.upsert import upsert_entity

from ingestion.adapters import (
    FINLIFE_GROUPS,
    SH_BOARDS,
    Empty,
    Failure,
    FetchResult,
    FinlifeAdapter,
    LhNoticeAdapter,
    Page,
    ShAnnouncementAdapter,
    SourceAdapters,
    YouthPolicyAdapter,
)
from ingestion.mappers import (
    MappingError,
    map_finance_company,
    map_lh_notice,
    map_loan_product,
    map_saving_product,
    map_sh_announcement,
    map_youth_policy,
)

LOGGER = logging.getLogger("ynest.ingestion")

Outcome = Literal["inserted", "updated", "skipped"]
RecordHandler = Callable[[Any, Page], Outcome]

SOURCE_NAMES = ("finance", "lh", "sh", "youth")
SAVING_PRODUCT_TYPES: tuple[FinanceProductType, ...] = ("DEPOSIT", "SAVING")
LOAN_PRODUCT_TYPES: tuple[FinanceProductType, ...] = (
    "MORTGAGE_LOAN",
    "RENT_HOUSE_LOAN",
    "CREDIT_LOAN",
)


class SyncBounds(BaseModel):
    """Page-count limits for one run. ``None`` loops until an empty page."""

    company_pages: int = Field(default=10, ge=1, le=100)
    product_pages: int = Field(default=20, ge=1, le=100)
    loan_pages: int = Field(default=20, ge=1, le=100)
    lh_pages: int | None = Field(default=None, ge=1, le=1000)
    sh_pages: int = Field(default=3, ge=1, le=50)
    youth_pages: int | None = Field(default=None, ge=1, le=1000)


SCHEDULED_BOUNDS = SyncBounds()
BOOTSTRAP_BOUNDS = SyncBounds(company_pages=3, product_pages=3, loan_pages=3)


def new_report(source: str, trigger: SyncTrigger) -> SyncReport:
    return SyncReport(source=source, trigger=trigger, started_at=now_utc_iso())


def finish_report(report: SyncReport) -> SyncReport:
    report.finished_at = now_utc_iso()
    LOGGER.info(
        json.dumps(
            {
                "event": "source_sync_complete",
                **report.model_dump(exclude={"errors"}),
                "errors": report.errors,
            },
            ensure_ascii=False,
        )
    )
    return report


def _log_skip(report: SyncReport, reason: str, error: Exception) -> None:
    report.skipped += 1
    LOGGER.warning(
        json.dumps(
            {
                "event": "record_skipped",
                "source": report.source,
                "reason": reason,
                "error": str(error),
            },
            ensure_ascii=False,
        )
    )


def run_page_loop(
    fetch: Callable[[int], FetchResult],
    handle: RecordHandler,
    report: SyncReport,
    *,
    max_pages: int | None = None,
) -> None:
    """Walk pages in ascending order until Empty, Failure or ``max_pages``.

    Records are stored one at a time; a bad record is skipped and the page
    carries on.
    """
    page_number = 1
    while max_pages is None or page_number <= max_pages:
        result = fetch(page_number)
        report.fetch_calls += 1
        if isinstance(result, Failure):
            report.record_error(f"page {page_number}: {result.cause}")
            return
        if isinstance(result, Empty):
            return
        report.pages += 1
        report.fetched += len(result.records)
        for record in result.records:
            try:
                outcome = handle(record, result)
            except (MappingError, ValidationError) as exc:
                _log_skip(report, "mapping_failed", exc)
                continue
            except DuplicateRecordError as exc:
                _log_skip(report, "already_exists", exc)
                continue
            if outcome == "inserted":
                report.inserted += 1
            elif outcome == "updated":
                report.updated += 1
            else:
                report.skipped += 1
        page_number += 1


def _guarded_loop(
    report: SyncReport,
    label: str,
    fetch: Callable[[int], FetchResult],
    handle: RecordHandler,
    *,
    max_pages: int | None,
) -> None:
    try:
        run_page_loop(fetch, handle, report, max_pages=max_pages)
    except Exception as exc:
        LOGGER.exception(
            json.dumps(
                {"event": "source_loop_failed", "source": report.source, "loop": label},
                ensure_ascii=False,
            )
        )
        report.record_error(f"{label}: {type(exc).__name__}: {exc}")


# Finance


def _upsert_company(repository: ListingRepository, company: FinanceCompany, entity: str) -> Outcome:
    existing = repository.find_finance_company(company.company_code)
    if existing is None:
        repository.insert_finance_company(company)
        return "inserted"
    merged = upsert_entity(entity, existing, company)
    if merged is None:
        return "skipped"
    repository.update_finance_company(merged)
    return "updated"


def _upsert_finance_product(
    repository: ListingRepository,
    product: Product,
    finance_product: FinanceProduct,
) -> tuple[FinanceProduct, Outcome]:
    existing_product = repository.find_finance_product_entry(product.name, product.provider)
    if existing_product is None:
        stored_product = repository.insert_product(product)
    else:
        stored_product = repository.update_product(
            upsert_entity("product", existing_product, product) or existing_product
        )

    incoming = finance_product.model_copy(update={"product_id": stored_product.id})
    existing = repository.find_finance_product(stored_product.id, incoming.company_code)
    if existing is None:
        return repository.insert_finance_product(incoming), "inserted"
    merged = upsert_entity("finance_product", existing, incoming) or existing
    return repository.update_finance_product(merged), "updated"


def _upsert_loan_option(repository: ListingRepository, option: FinanceLoanOption) -> None:
    existing = repository.find_loan_option(option.finance_product_id, *option.natural_key)
    if existing is None:
        repository.insert_loan_option(option)
        return
    merged = upsert_entity("finance_loan_option", existing, option)
    if merged is not None:
        repository.update_loan_option(merged)


def sync_finance_companies(
    adapter: FinlifeAdapter,
    repository: ListingRepository,
    *,
    max_pages: int,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    report = new_report("finance_companies", trigger)

    def handle(record: Any, page: Page) -> Outcome:
        company = map_finance_company(record)
        with repository.transaction():
            return _upsert_company(repository, company, "finance_company")

    for group in FINLIFE_GROUPS:
        _guarded_loop(
            report,
            f"COMPANY/{group}",
            lambda page_number, group=group: adapter.fetch_page(
                page_number, endpoint="COMPANY", group=group
            ),
            handle,
            max_pages=max_pages,
        )
    return finish_report(report)


def sync_deposit_and_saving(
    adapter: FinlifeAdapter,
    repository: ListingRepository,
    *,
    max_pages: int,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    report = new_report("finance_products", trigger)

    def handler_for(product_type: FinanceProductType) -> RecordHandler:
        def handle(record: Any, page: Page) -> Outcome:
            product, finance_product = map_saving_product(record, product_type, page.options)
            with repository.transaction():
                if product.detail_url is None:
                    company = repository.find_finance_company(finance_product.company_code)
                    if company is not None:
                        product = product.model_copy(update={"detail_url": company.homepage})
                _, outcome = _upsert_finance_product(repository, product, finance_product)
            return outcome

        return handle

    for product_type in SAVING_PRODUCT_TYPES:
        for group in FINLIFE_GROUPS:
            _guarded_loop(
                report,
                f"{product_type}/{group}",
                lambda page_number, product_type=product_type, group=group: adapter.fetch_page(
                    page_number, endpoint=product_type, group=group
                ),
                handler_for(product_type),
                max_pages=max_pages,
            )
    return finish_report(report)


def sync_loans(
    adapter: FinlifeAdapter,
    repository: ListingRepository,
    *,
    max_pages: int,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    report = new_report("finance_loans", trigger)

    def handler_for(product_type: FinanceProductType) -> RecordHandler:
        def handle(record: Any, page: Page) -> Outcome:
            product, finance_product, options = map_loan_product(
                record,
                product_type,
                page.options,
            )
            with repository.transaction():
                _upsert_company(
                    repository,
                    FinanceCompany(company_code=finance_product.company_code, name=product.provider),
                    "finance_company_reference",
                )
                stored, outcome = _upsert_finance_product(repository, product, finance_product)
                for option in options:
                    _upsert_loan_option(
                        repository,
                        option.model_copy(update={"finance_product_id": stored.id}),
                    )
            return outcome

        return handle

    for product_type in LOAN_PRODUCT_TYPES:
        for group in FINLIFE_GROUPS:
            _guarded_loop(
                report,
                f"{product_type}/{group}",
                lambda page_number, product_type=product_type, group=group: adapter.fetch_page(
                    page_number, endpoint=product_type, group=group
                ),
                handler_for(product_type),
                max_pages=max_pages,
            )
    return finish_report(report)


def sync_finance(
    adapter: FinlifeAdapter,
    repository: ListingRepository,
    *,
    bounds: SyncBounds,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    report = new_report("finance", trigger)
    report.absorb(
        sync_finance_companies(adapter, repository, max_pages=bounds.company_pages, trigger=trigger)
    )
    report.absorb(
        sync_deposit_and_saving(
            adapter,
            repository,
            max_pages=bounds.product_pages,
            trigger=trigger,
        )
    )
    report.absorb(sync_loans(adapter, repository, max_pages=bounds.loan_pages, trigger=trigger))
    return finish_report(report)


# Housing and policy


def sync_lh_notices(
    adapter: LhNoticeAdapter,
    repository: ListingRepository,
    *,
    max_pages: int | None = None,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    report = new_report("lh", trigger)

    def handle(record: Any, page: Page) -> Outcome:
        product, notice = map_lh_notice(record)
        if repository.find_lh_notice(notice.title, notice.notice_date) is not None:
            return "skipped"
        with repository.transaction():
            stored_product = repository.insert_product(product)
            repository.insert_lh_notice(notice.model_copy(update={"product_id": stored_product.id}))
        return "inserted"

    _guarded_loop(report, "notices", adapter.fetch_page, handle, max_pages=max_pages)
    return finish_report(report)


def sync_sh_announcements(
    adapter: ShAnnouncementAdapter,
    repository: ListingRepository,
    *,
    max_pages: int = 3,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    report = new_report("sh", trigger)

    for board in SH_BOARDS.values():

        def handle(record: Any, page: Page, board=board) -> Outcome:
            product, announcement = map_sh_announcement(
                record,
                category=board.category,
                supply_types=board.supply_types,
                crawled_at=now_utc_iso(),
            )
            with repository.transaction():
                existing = repository.find_sh_announcement(
                    announcement.source,
                    announcement.external_id,
                )
                if existing is None:
                    stored_product = repository.insert_product(product)
                    repository.insert_sh_announcement(
                        announcement.model_copy(update={"product_id": stored_product.id})
                    )
                    return "inserted"
                merged = upsert_entity("sh_announcement", existing, announcement)
                if merged is None:
                    return "skipped"
                if existing.product_id is not None:
                    stored_product = repository.get_product(existing.product_id)
                    if stored_product is not None:
                        repository.update_product(
                            upsert_entity("product", stored_product, product) or stored_product
                        )
                repository.update_sh_announcement(merged)
            return "updated"

        for supply_type in board.supply_types:
            _guarded_loop(
                report,
                f"{board.name}/{supply_type}",
                lambda page_number, board=board, supply_type=supply_type: adapter.fetch_page(
                    page_number, board=board.name, supply_type=supply_type
                ),
                handle,
                max_pages=max_pages,
            )
    return finish_report(report)


def sync_youth_policies(
    adapter: YouthPolicyAdapter,
    repository: ListingRepository,
    *,
    max_pages: int | None = None,
    keyword: str | None = None,
    region_code: str | None = None,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    report = new_report("youth", trigger)

    def handle(record: Any, page: Page) -> Outcome:
        product, policy = map_youth_policy(record)
        # Repeat sightings of a policy number are no-ops.
        if repository.find_youth_policy(policy.policy_no) is not None:
            return "skipped"
        with repository.transaction():
            stored_product = repository.insert_product(product)
            repository.insert_youth_policy(policy.model_copy(update={"product_id": stored_product.id}))
        return "inserted"

    _guarded_loop(
        report,
        "policies",
        lambda page_number: adapter.fetch_page(
            page_number,
            keyword=keyword,
            region_code=region_code,
        ),
        handle,
        max_pages=max_pages,
    )
    return finish_report(report)


# Runs


def run_source(
    source: str,
    adapters: SourceAdapters,
    repository: ListingRepository,
    *,
    bounds: SyncBounds,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    if source == "finance":
        return sync_finance(adapters.finance, repository, bounds=bounds, trigger=trigger)
    if source == "lh":
        return sync_lh_notices(adapters.lh, repository, max_pages=bounds.lh_pages, trigger=trigger)
    if source == "sh":
        return sync_sh_announcements(
            adapters.sh,
            repository,
            max_pages=bounds.sh_pages,
            trigger=trigger,
        )
    if source == "youth":
        return sync_youth_policies(
            adapters.youth,
            repository,
            max_pages=bounds.youth_pages,
            trigger=trigger,
        )
    raise KeyError(f"Unknown source: {source}")


def run_and_record(
    source: str,
    adapters: SourceAdapters,
    repository: ListingRepository,
    *,
    bounds: SyncBounds,
    trigger: SyncTrigger = "manual",
) -> SyncReport:
    """Run one source inside its own failure boundary and record the outcome."""
    if source not in SOURCE_NAMES:
        raise KeyError(f"Unknown source: {source}")
    try:
        report = run_source(source, adapters, repository, bounds=bounds, trigger=trigger)
    except Exception as exc:
        LOGGER.exception(
            json.dumps({"event": "source_sync_failed", "source": source}, ensure_ascii=False)
        )
        report = new_report(source, trigger)
        report.record_error(f"{type(exc).__name__}: {exc}")
        finish_report(report)
    repository.record_sync_run(report)
    return report


def run_all_sources(
    adapters: SourceAdapters,
    repository: ListingRepository,
    *,
    bounds: SyncBounds,
    trigger: SyncTrigger = "scheduled",
) -> list[SyncReport]:
    return [
        run_and_record(source, adapters, repository, bounds=bounds, trigger=trigger)
        for source in SOURCE_NAMES
    ]
