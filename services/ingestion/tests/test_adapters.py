from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from ingestion.adapters import (
    SH_BOARDS,
    Empty,
    Failure,
    FinlifeAdapter,
    LhNoticeAdapter,
    Page,
    ShAnnouncementAdapter,
    YouthPolicyAdapter,
)
from ingestion.records import FinlifeSavingOptionRecord, LhNoticeRecord

pytestmark = pytest.mark.unit

SH_LIST_HTML = """
<html><body>
<table id="listTb">
  <thead><tr><th>번호</th><th>제목</th><th>담당부서</th><th>등록일</th><th>조회수</th></tr></thead>
  <tbody>
    <tr>
      <td class="num">120</td>
      <td class="txtL"><a href="#" onclick="getDetailView('301'); return false;">
        2025년 강남구 청년안심주택 입주자 모집</a></td>
      <td>주거복지처</td>
      <td class="num">2025-03-01</td>
      <td class="num">1,204</td>
    </tr>
    <tr>
      <td class="num">119</td>
      <td class="txtL"><a href="#" onclick="getDetailView(302)">행복주택 추가모집</a></td>
      <td>주거복지처</td>
      <td class="num">2025.02.20</td>
      <td class="num">88</td>
    </tr>
    <tr><td colspan="5">공지 없음</td></tr>
  </tbody>
</table>
</body></html>
"""


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_finlife_page_carries_base_and_option_lists() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "result": {
                    "err_cd": "000",
                    "baseList": [
                        {
                            "fin_co_no": "0010001",
                            "fin_prdt_cd": "WR0001",
                            "kor_co_nm": "우리은행",
                            "fin_prdt_nm": "WON플러스예금",
                            "max_limit": None,
                        }
                    ],
                    "optionList": [
                        {
                            "fin_co_no": "0010001",
                            "fin_prdt_cd": "WR0001",
                            "save_trm": 12,
                            "intr_rate": 3.1,
                            "intr_rate2": 3.5,
                        }
                    ],
                }
            },
        )

    adapter = FinlifeAdapter(_client(handler), base_url="https://finlife.test/api", api_key="k")
    result = adapter.fetch_page(2, endpoint="DEPOSIT", group="020000")

    assert isinstance(result, Page)
    assert result.records[0].fin_prdt_nm == "WON플러스예금"
    option = result.options[0]
    assert isinstance(option, FinlifeSavingOptionRecord)
    assert option.save_trm == "12"
    request = seen[0]
    assert request.url.path == "/api/depositProductsSearch.json"
    assert request.url.params["auth"] == "k"
    assert request.url.params["pageNo"] == "2"
    assert request.url.params["topFinGrpNo"] == "020000"


def test_finlife_empty_base_list_is_exhaustion() -> None:
    adapter = FinlifeAdapter(
        _client(lambda request: httpx.Response(200, json={"result": {"err_cd": "000", "baseList": []}})),
        base_url="https://finlife.test/api",
    )

    assert isinstance(adapter.fetch_page(5, endpoint="SAVING"), Empty)


def test_finlife_error_code_is_a_failure() -> None:
    adapter = FinlifeAdapter(
        _client(
            lambda request: httpx.Response(
                200,
                json={"result": {"err_cd": "010", "err_msg": "미등록 인증키"}},
            )
        ),
        base_url="https://finlife.test/api",
    )

    result = adapter.fetch_page(1, endpoint="COMPANY", group="020000")

    assert isinstance(result, Failure)
    assert "010" in result.cause


def test_server_error_is_a_failure_not_exhaustion() -> None:
    adapter = LhNoticeAdapter(
        _client(lambda request: httpx.Response(503, text="maintenance")),
        base_url="https://lh.test/notices",
    )

    result = adapter.fetch_page(1)

    assert isinstance(result, Failure)
    assert "503" in result.cause


def test_transport_error_is_a_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    adapter = YouthPolicyAdapter(_client(handler), base_url="https://youth.test/getPlcy")

    assert isinstance(adapter.fetch_page(1), Failure)


def test_lh_reads_the_ds_list_node() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {"dsSch": [{"PAGE": "1"}]},
                {
                    "dsList": [
                        {
                            "PAN_ID": "2015122300018",
                            "PAN_NM": "행복주택 입주자 모집",
                            "CNP_CD_NM": "서울특별시",
                            "PAN_NT_ST_DT": "2025.03.01",
                            "CLSG_DT": "2025.03.20",
                        }
                    ]
                },
            ],
        )

    adapter = LhNoticeAdapter(_client(handler), base_url="https://lh.test/notices", api_key="svc")
    result = adapter.fetch_page(3, page_size=50)

    assert isinstance(result, Page)
    record = result.records[0]
    assert isinstance(record, LhNoticeRecord)
    assert record.PAN_NM == "행복주택 입주자 모집"
    params = seen[0].url.params
    assert params["ServiceKey"] == "svc"
    assert params["PAGE"] == "3"
    assert params["PG_SZ"] == "50"
    assert params["PAN_SS"] == "공고중"


def test_lh_empty_ds_list_is_exhaustion() -> None:
    adapter = LhNoticeAdapter(
        _client(lambda request: httpx.Response(200, json=[{"dsSch": []}, {"dsList": []}])),
        base_url="https://lh.test/notices",
    )

    assert isinstance(adapter.fetch_page(1), Empty)


def test_lh_response_without_ds_list_is_a_failure() -> None:
    adapter = LhNoticeAdapter(
        _client(lambda request: httpx.Response(200, json=[{"dsSch": []}])),
        base_url="https://lh.test/notices",
    )

    assert isinstance(adapter.fetch_page(1), Failure)


def test_sh_list_page_rows_become_records() -> None:
    adapter = ShAnnouncementAdapter(
        _client(lambda request: httpx.Response(200, text=SH_LIST_HTML)),
        base_url="https://sh.test",
    )

    records = adapter.parse_list_page(SH_LIST_HTML, SH_BOARDS["rent"], supply_type="10")

    assert [record.seq for record in records] == ["301", "302"]
    first = records[0]
    assert first.title == "2025년 강남구 청년안심주택 입주자 모집"
    assert first.department == "주거복지처"
    assert first.post_date == "2025-03-01"
    assert first.views == 1204
    assert first.supply_type_code == "10"
    assert first.detail_url is not None
    assert first.detail_url.startswith("https://sh.test/")
    assert "view.do?seq=301&multi_itm_seq=2" in first.detail_url


def test_sh_fetch_page_sends_board_filters() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=SH_LIST_HTML)

    adapter = ShAnnouncementAdapter(_client(handler), base_url="https://sh.test")
    result = adapter.fetch_page(2, board="sale", supply_type="02")

    assert isinstance(result, Page)
    params = seen[0].url.params
    assert params["page"] == "2"
    assert params["multi_itm_seq"] == "1"
    assert params["splyTy"] == "02"
    assert seen[0].url.path.endswith("/m_244/list.do")


def test_sh_page_without_rows_is_exhaustion() -> None:
    html = '<table id="listTb"><tbody><tr><td colspan="5">게시물이 없습니다</td></tr></tbody></table>'
    adapter = ShAnnouncementAdapter(
        _client(lambda request: httpx.Response(200, text=html)),
        base_url="https://sh.test",
    )

    assert isinstance(adapter.fetch_page(1), Empty)


def test_sh_page_without_list_table_is_a_failure() -> None:
    adapter = ShAnnouncementAdapter(
        _client(lambda request: httpx.Response(200, text="<html><body>점검 중</body></html>")),
        base_url="https://sh.test",
    )

    assert isinstance(adapter.fetch_page(1), Failure)


def test_youth_policy_page_and_filters() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "resultCode": 200,
                "result": {
                    "pagging": {"totCount": 1},
                    "youthPolicyList": [
                        {"plcyNo": "20250301005400110001", "plcyNm": "청년월세 지원", "zipCd": ""}
                    ],
                },
            },
        )

    adapter = YouthPolicyAdapter(_client(handler), base_url="https://youth.test/getPlcy", api_key="y")
    result = adapter.fetch_page(1, keyword="주거", region_code="11110")

    assert isinstance(result, Page)
    assert result.records[0].plcyNm == "청년월세 지원"
    assert result.records[0].zipCd is None
    params = seen[0].url.params
    assert params["apiKeyNm"] == "y"
    assert params["plcyKywdNm"] == "주거"
    assert params["zipCd"] == "11110"
    assert params["rtnType"] == "json"


def test_youth_policy_missing_list_is_exhaustion() -> None:
    adapter = YouthPolicyAdapter(
        _client(lambda request: httpx.Response(200, json={"result": {"pagging": {"totCount": 0}}})),
        base_url="https://youth.test/getPlcy",
    )

    assert isinstance(adapter.fetch_page(9), Empty)
