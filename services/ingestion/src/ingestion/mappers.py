"""Pure transforms from provider records to store entities."""

from __future__ import annotations

from collections.abc import Iterable

from common.dates import parse_notice_date
from common.regions import seoul_region_from_title
from common.utils import blank_to_none
from store.models import (
    LH_PROVIDER,
    SH_PROVIDER,
    SH_SOURCE,
    YOUTH_POLICY_PROVIDER,
    FinanceCompany,
    FinanceLoanOption,
    FinanceProduct,
    FinanceProductType,
    LhNotice,
    Product,
    ShAnnouncement,
    YouthPolicy,
)

from ingestion.records import (
    FinlifeCompanyRecord,
    FinlifeCreditOptionRecord,
    FinlifeLoanBaseRecord,
    FinlifeLoanOptionRecord,
    FinlifeSavingBaseRecord,
    FinlifeSavingOptionRecord,
    LhNoticeRecord,
    ShAnnouncementRecord,
    YouthPolicyRecord,
)


class MappingError(ValueError):
    """A raw record lacks a field the entity cannot do without."""


def company_code_or_name(code: str | None, name: str | None) -> str | None:
    return blank_to_none(code) or blank_to_none(name)


def _require(value: str | None, field: str, record_kind: str) -> str:
    text = blank_to_none(value)
    if text is None:
        raise MappingError(f"{record_kind} record has no {field}")
    return text


def map_finance_company(record: FinlifeCompanyRecord) -> FinanceCompany:
    code = company_code_or_name(record.fin_co_no, record.kor_co_nm)
    if code is None:
        raise MappingError("finance company record has no company code or name")
    return FinanceCompany(
        company_code=code,
        name=blank_to_none(record.kor_co_nm),
        homepage=blank_to_none(record.homp_url),
        contact=blank_to_none(record.cal_tel),
    )


def build_join_condition(*lines: tuple[str, str | None]) -> str | None:
    rendered = [f"{label}: {value.strip()}" for label, value in lines if value and value.strip()]
    return "\n".join(rendered) or None


def _matches(option_code: str | None, option_company: str | None, code: str, company: str) -> bool:
    return blank_to_none(option_code) == code and blank_to_none(option_company) == company


def representative_saving_rate(
    options: Iterable[FinlifeSavingOptionRecord],
    product_code: str,
    company_code: str,
) -> float | None:
    """Headline rate: the bonus rate where given, else the base rate; highest wins."""
    rates = [
        option.intr_rate2 if option.intr_rate2 is not None else option.intr_rate
        for option in options
        if _matches(option.fin_prdt_cd, option.fin_co_no, product_code, company_code)
    ]
    present = [rate for rate in rates if rate is not None]
    return max(present) if present else None


def representative_loan_rate(
    options: Iterable[FinlifeLoanOptionRecord],
    product_code: str,
    company_code: str,
) -> float | None:
    rates = []
    for option in options:
        if not _matches(option.fin_prdt_cd, option.fin_co_no, product_code, company_code):
            continue
        for candidate in (option.lend_rate_avg, option.lend_rate_max, option.lend_rate_min):
            if candidate is not None:
                rates.append(candidate)
                break
    return max(rates) if rates else None


def representative_credit_rate(
    options: Iterable[FinlifeCreditOptionRecord],
    product_code: str,
    company_code: str,
) -> float | None:
    rates = [
        option.crdt_grad_avg
        for option in options
        if _matches(option.fin_prdt_cd, option.fin_co_no, product_code, company_code)
        and option.crdt_grad_avg is not None
    ]
    return max(rates) if rates else None


def _finance_keys(record: FinlifeSavingBaseRecord | FinlifeLoanBaseRecord) -> tuple[str, str, str]:
    name = _require(record.fin_prdt_nm, "fin_prdt_nm", "finance product")
    provider = _require(record.kor_co_nm, "kor_co_nm", "finance product")
    company_code = company_code_or_name(record.fin_co_no, record.kor_co_nm)
    if company_code is None:
        raise MappingError("finance product record has no company code")
    return name, provider, company_code


def map_saving_product(
    record: FinlifeSavingBaseRecord,
    product_type: FinanceProductType,
    options: list[FinlifeSavingOptionRecord],
) -> tuple[Product, FinanceProduct]:
    name, provider, company_code = _finance_keys(record)
    product_code = blank_to_none(record.fin_prdt_cd) or ""
    product = Product(
        type="FINANCE",
        name=name,
        provider=provider,
        detail_url=blank_to_none(record.dcls_url),
    )
    finance_product = FinanceProduct(
        company_code=company_code,
        product_type=product_type,
        join_condition=build_join_condition(
            ("가입 방법", record.join_way),
            ("가입 대상", record.join_member),
            ("비고", record.etc_note),
        ),
        interest_rate=representative_saving_rate(options, product_code, company_code),
    )
    return product, finance_product


def map_loan_option(record: FinlifeLoanOptionRecord) -> FinanceLoanOption:
    return FinanceLoanOption(
        lend_rate_min=record.lend_rate_min,
        lend_rate_max=record.lend_rate_max,
        lend_rate_avg=record.lend_rate_avg,
        repayment_type=blank_to_none(record.rpay_type_nm),
        rate_type=blank_to_none(record.lend_rate_type_nm),
        collateral_type=blank_to_none(record.mrtg_type_nm),
    )


def map_credit_option(record: FinlifeCreditOptionRecord) -> FinanceLoanOption:
    return FinanceLoanOption(
        lend_rate_avg=record.crdt_grad_avg,
        rate_type=blank_to_none(record.crdt_lend_rate_type_nm),
        credit_rate_type=blank_to_none(record.crdt_lend_rate_type),
        credit_rate_type_name=blank_to_none(record.crdt_lend_rate_type_nm),
        credit_grade_1=record.crdt_grad_1,
        credit_grade_4=record.crdt_grad_4,
        credit_grade_5=record.crdt_grad_5,
        credit_grade_6=record.crdt_grad_6,
        credit_grade_10=record.crdt_grad_10,
        credit_grade_11=record.crdt_grad_11,
        credit_grade_12=record.crdt_grad_12,
        credit_grade_13=record.crdt_grad_13,
        credit_grade_avg=record.crdt_grad_avg,
    )


def map_loan_product(
    record: FinlifeLoanBaseRecord,
    product_type: FinanceProductType,
    options: list[FinlifeLoanOptionRecord] | list[FinlifeCreditOptionRecord],
) -> tuple[Product, FinanceProduct, list[FinanceLoanOption]]:
    """Map a loan base record with the options listed for it on the same page.

    A product with no matching option still gets one option row, with every
    rate left empty.
    """
    name, provider, company_code = _finance_keys(record)
    product_code = blank_to_none(record.fin_prdt_cd) or ""
    matching = [
        option
        for option in options
        if _matches(option.fin_prdt_cd, option.fin_co_no, product_code, company_code)
    ]
    if product_type == "CREDIT_LOAN":
        credit_options = [o for o in matching if isinstance(o, FinlifeCreditOptionRecord)]
        rate = representative_credit_rate(credit_options, product_code, company_code)
        loan_options = [map_credit_option(option) for option in credit_options]
    else:
        loan_matching = [o for o in matching if isinstance(o, FinlifeLoanOptionRecord)]
        rate = representative_loan_rate(loan_matching, product_code, company_code)
        loan_options = [map_loan_option(option) for option in loan_matching]
    if not loan_options:
        loan_options = [FinanceLoanOption()]

    product = Product(type="FINANCE", name=name, provider=provider)
    finance_product = FinanceProduct(
        company_code=company_code,
        product_type=product_type,
        join_condition=build_join_condition(
            ("가입 방법", record.join_way),
            ("대출 한도", record.loan_lmt),
            ("상품 유형", record.crdt_prdt_type_nm),
        ),
        interest_rate=rate,
    )
    return product, finance_product, loan_options


def map_lh_notice(record: LhNoticeRecord) -> tuple[Product, LhNotice]:
    title = _require(record.PAN_NM, "PAN_NM", "LH notice")
    notice_date = _require(record.PAN_NT_ST_DT, "PAN_NT_ST_DT", "LH notice")
    detail_url = blank_to_none(record.DTL_URL)
    product = Product(type="HOUSING", name=title, provider=LH_PROVIDER, detail_url=detail_url)
    notice = LhNotice(
        title=title,
        category=blank_to_none(record.UPP_AIS_TP_NM),
        notice_type=blank_to_none(record.AIS_TP_CD_NM),
        region=blank_to_none(record.CNP_CD_NM),
        status=blank_to_none(record.PAN_SS),
        notice_date=notice_date,
        close_date=blank_to_none(record.CLSG_DT),
        detail_url=detail_url,
    )
    return product, notice


def _iso_date(value: str | None) -> str | None:
    parsed = parse_notice_date(value)
    return parsed.isoformat() if parsed else None


def map_sh_announcement(
    record: ShAnnouncementRecord,
    *,
    category: str,
    supply_types: dict[str, str],
    crawled_at: str,
) -> tuple[Product, ShAnnouncement]:
    external_id = _require(record.seq, "seq", "SH announcement")
    title = _require(record.title, "title", "SH announcement")
    product = Product(
        type="HOUSING",
        name=title,
        provider=SH_PROVIDER,
        detail_url=record.detail_url,
    )
    announcement = ShAnnouncement(
        source=SH_SOURCE,
        external_id=external_id,
        title=title,
        category=category,
        supply_type=supply_types.get(record.supply_type_code or ""),
        region=seoul_region_from_title(title),
        department=blank_to_none(record.department),
        status="공고중",
        post_date=_iso_date(record.post_date),
        close_date=_iso_date(record.close_date),
        views=record.views,
        detail_url=record.detail_url,
        crawled_at=crawled_at,
    )
    return product, announcement


def _text(value: str | None) -> str | None:
    return (value or "").strip() or None


def parse_age_bound(value: str | None) -> int | None:
    """Provider ages are numeric strings; ``0`` means no bound."""
    text = blank_to_none(value)
    if text is None or not text.isdigit():
        return None
    age = int(text)
    return age or None


def map_youth_policy(record: YouthPolicyRecord) -> tuple[Product, YouthPolicy]:
    policy_no = _require(record.plcyNo, "plcyNo", "youth policy")
    name = _require(record.plcyNm, "plcyNm", "youth policy")
    agency = blank_to_none(record.sprvsnInstCdNm)
    apply_url = blank_to_none(record.aplyUrlAddr)
    product = Product(
        type="POLICY",
        name=name,
        provider=agency or YOUTH_POLICY_PROVIDER,
        detail_url=apply_url,
    )
    policy = YouthPolicy(
        policy_no=policy_no,
        name=name,
        description=_text(record.plcyExplnCn),
        keyword=blank_to_none(record.plcyKywdNm),
        category_large=blank_to_none(record.lclsfNm),
        category_middle=blank_to_none(record.mclsfNm),
        agency=agency,
        apply_url=apply_url,
        region_code=blank_to_none(record.zipCd),
        target_age_min=parse_age_bound(record.sprtTrgtMinAge),
        target_age_max=parse_age_bound(record.sprtTrgtMaxAge),
        support_content=_text(record.plcySprtCn),
        start_date=blank_to_none(record.bizPrdBgngYmd),
        end_date=blank_to_none(record.bizPrdEndYmd),
    )
    return product, policy
