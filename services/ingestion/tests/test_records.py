from __future__ import annotations

import pytest
from ingestion.records import (
    FinlifeLoanOptionRecord,
    LhNoticeRecord,
    ShAnnouncementRecord,
    SourceRecord,
    YouthPolicyRecord,
)
from pydantic import TypeAdapter, ValidationError

pytestmark = pytest.mark.unit

SOURCE_RECORDS = TypeAdapter(list[SourceRecord])


def test_mixed_raw_dicts_resolve_by_kind() -> None:
    records = SOURCE_RECORDS.validate_python(
        [
            {"kind": "lh_notice", "PAN_NM": "행복주택 입주자 모집", "PAN_NT_ST_DT": "2025.03.01", "CLSG_DT": ""},
            {"kind": "finlife_loan_option", "fin_prdt_cd": "L1", "lend_rate_avg": 3.9, "mrtg_type_nm": " "},
            {"kind": "sh_announcement", "seq": 501, "title": "청년 매입임대", "views": "1,204"},
            {"kind": "youth_policy", "plcyNo": "P001", "plcyNm": "청년 월세 지원", "zipCd": "", "extra": "x"},
        ]
    )

    lh, loan, sh, youth = records
    assert isinstance(lh, LhNoticeRecord)
    assert lh.CLSG_DT is None
    assert isinstance(loan, FinlifeLoanOptionRecord)
    assert loan.lend_rate_avg == 3.9
    assert loan.mrtg_type_nm is None
    assert isinstance(sh, ShAnnouncementRecord)
    assert sh.seq == "501"
    assert sh.views == 1204
    assert isinstance(youth, YouthPolicyRecord)
    assert youth.zipCd is None


def test_blank_strings_read_as_missing_on_direct_construction() -> None:
    record = LhNoticeRecord(PAN_NM="  ", PAN_NT_ST_DT="2025.03.01")

    assert record.PAN_NM is None
    assert record.kind == "lh_notice"


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(ValidationError):
        SOURCE_RECORDS.validate_python([{"kind": "unknown", "title": "x"}])
