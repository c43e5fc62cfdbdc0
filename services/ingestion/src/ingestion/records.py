"""Raw record shapes, one model per provider schema.

Fields keep the provider's own names. Unknown fields are ignored and blank
strings are read as missing.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RawRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def blank_as_missing(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {
            key: None if key != "kind" and isinstance(value, str) and not value.strip() else value
            for key, value in data.items()
        }


class FinlifeCompanyRecord(RawRecord):
    kind: Literal["finlife_company"] = "finlife_company"
    fin_co_no: str | None = None
    kor_co_nm: str | None = None
    homp_url: str | None = None
    cal_tel: str | None = None


class FinlifeSavingBaseRecord(RawRecord):
    kind: Literal["finlife_saving_base"] = "finlife_saving_base"
    fin_co_no: str | None = None
    fin_prdt_cd: str | None = None
    kor_co_nm: str | None = None
    fin_prdt_nm: str | None = None
    join_way: str | None = None
    join_member: str | None = None
    etc_note: str | None = None
    max_limit: float | None = None
    dcls_url: str | None = None


class FinlifeSavingOptionRecord(RawRecord):
    kind: Literal["finlife_saving_option"] = "finlife_saving_option"
    fin_co_no: str | None = None
    fin_prdt_cd: str | None = None
    save_trm: str | None = None
    intr_rate_type_nm: str | None = None
    intr_rate: float | None = None
    intr_rate2: float | None = None


class FinlifeLoanBaseRecord(RawRecord):
    kind: Literal["finlife_loan_base"] = "finlife_loan_base"
    fin_co_no: str | None = None
    fin_prdt_cd: str | None = None
    kor_co_nm: str | None = None
    fin_prdt_nm: str | None = None
    join_way: str | None = None
    loan_lmt: str | None = None
    crdt_prdt_type_nm: str | None = None


class FinlifeLoanOptionRecord(RawRecord):
    kind: Literal["finlife_loan_option"] = "finlife_loan_option"
    fin_co_no: str | None = None
    fin_prdt_cd: str | None = None
    rpay_type_nm: str | None = None
    lend_rate_type_nm: str | None = None
    mrtg_type_nm: str | None = None
    lend_rate_min: float | None = None
    lend_rate_max: float | None = None
    lend_rate_avg: float | None = None


class FinlifeCreditOptionRecord(RawRecord):
    kind: Literal["finlife_credit_option"] = "finlife_credit_option"
    fin_co_no: str | None = None
    fin_prdt_cd: str | None = None
    crdt_lend_rate_type: str | None = None
    crdt_lend_rate_type_nm: str | None = None
    crdt_grad_1: float | None = None
    crdt_grad_4: float | None = None
    crdt_grad_5: float | None = None
    crdt_grad_6: float | None = None
    crdt_grad_10: float | None = None
    crdt_grad_11: float | None = None
    crdt_grad_12: float | None = None
    crdt_grad_13: float | None = None
    crdt_grad_avg: float | None = None


class LhNoticeRecord(RawRecord):
    kind: Literal["lh_notice"] = "lh_notice"
    PAN_ID: str | None = None
    PAN_NM: str | None = None
    UPP_AIS_TP_NM: str | None = None
    AIS_TP_CD_NM: str | None = None
    CNP_CD_NM: str | None = None
    PAN_SS: str | None = None
    PAN_NT_ST_DT: str | None = None
    CLSG_DT: str | None = None
    DTL_URL: str | None = None


class ShAnnouncementRecord(RawRecord):
    kind: Literal["sh_announcement"] = "sh_announcement"
    seq: str | None = None
    title: str | None = None
    board: Literal["rent", "sale"] = "rent"
    supply_type_code: str | None = None
    department: str | None = None
    post_date: str | None = None
    close_date: str | None = None
    views: int | None = None
    detail_url: str | None = None

    @field_validator("views", mode="before")
    @classmethod
    def parse_views(cls, value: Any) -> Any:
        if isinstance(value, str):
            digits = value.replace(",", "").strip()
            return int(digits) if digits.isdigit() else None
        return value


class YouthPolicyRecord(RawRecord):
    kind: Literal["youth_policy"] = "youth_policy"
    plcyNo: str | None = None
    plcyNm: str | None = None
    plcyKywdNm: str | None = None
    plcyExplnCn: str | None = None
    lclsfNm: str | None = None
    mclsfNm: str | None = None
    sprvsnInstCdNm: str | None = None
    aplyUrlAddr: str | None = None
    zipCd: str | None = None
    sprtTrgtMinAge: str | None = None
    sprtTrgtMaxAge: str | None = None
    plcySprtCn: str | None = None
    bizPrdBgngYmd: str | None = None
    bizPrdEndYmd: str | None = None


SourceRecord = Annotated[
    FinlifeCompanyRecord
    | FinlifeSavingBaseRecord
    | FinlifeSavingOptionRecord
    | FinlifeLoanBaseRecord
    | FinlifeLoanOptionRecord
    | FinlifeCreditOptionRecord
    | LhNoticeRecord
    | ShAnnouncementRecord
    | YouthPolicyRecord,
    Field(discriminator="kind"),
]
