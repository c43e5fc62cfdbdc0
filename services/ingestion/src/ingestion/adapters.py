from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from ingestion.config import IngestionSettings
from ingestion.records import (
    FinlifeCompanyRecord,
    FinlifeCreditOptionRecord,
    FinlifeLoanBaseRecord,
    FinlifeLoanOptionRecord,
    FinlifeSavingBaseRecord,
    FinlifeSavingOptionRecord,
    LhNoticeRecord,
    RawRecord,
    ShAnnouncementRecord,
    SourceRecord,
    YouthPolicyRecord,
)

LOGGER = logging.getLogger("ynest.ingestion")

FINLIFE_GROUPS = ("020000", "030300")
DEFAULT_PAGE_SIZE = 100


class Page(BaseModel):
    status: Literal["page"] = "page"
    records: list[SourceRecord]
    options: list[SourceRecord] = Field(default_factory=list)


class Empty(BaseModel):
    status: Literal["empty"] = "empty"


class Failure(BaseModel):
    status: Literal["failure"] = "failure"
    cause: str


FetchResult = Page | Empty | Failure


class SourceAdapter:
    """Issues one paged request and reports Page, Empty or Failure.

    Transport errors, error statuses and unreadable bodies are returned as
    ``Failure`` so the caller can tell them apart from exhaustion. There is
    no retry.
    """

    source = "unknown"

    def __init__(self, client: httpx.Client, *, base_url: str, api_key: str = "") -> None:
        self.client = client
        self.base_url = base_url
        self.api_key = api_key

    def fetch_page(self, page_number: int, **params: Any) -> FetchResult:
        try:
            return self._fetch_page(page_number, **params)
        except (httpx.HTTPError, ValueError, TypeError, KeyError) as exc:
            cause = f"{type(exc).__name__}: {exc}"
            LOGGER.warning(
                json.dumps(
                    {
                        "event": "source_fetch_failed",
                        "source": self.source,
                        "page": page_number,
                        "params": {key: str(value) for key, value in params.items()},
                        "error": cause,
                    },
                    ensure_ascii=False,
                )
            )
            return Failure(cause=cause)

    def _fetch_page(self, page_number: int, **params: Any) -> FetchResult:
        raise NotImplementedError

    def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        response = self.client.get(url, params=params)
        response.raise_for_status()
        return response


def _parse_list(model: type[RawRecord], items: Any) -> list[Any]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise TypeError(f"Expected a list of records, got {type(items).__name__}")
    return [model.model_validate(item) for item in items]


@dataclass(frozen=True)
class FinlifeEndpoint:
    path: str
    base_model: type[RawRecord]
    option_model: type[RawRecord] | None = None


FINLIFE_ENDPOINTS: dict[str, FinlifeEndpoint] = {
    "COMPANY": FinlifeEndpoint("companySearch", FinlifeCompanyRecord),
    "DEPOSIT": FinlifeEndpoint(
        "depositProductsSearch",
        FinlifeSavingBaseRecord,
        FinlifeSavingOptionRecord,
    ),
    "SAVING": FinlifeEndpoint(
        "savingProductsSearch",
        FinlifeSavingBaseRecord,
        FinlifeSavingOptionRecord,
    ),
    "MORTGAGE_LOAN": FinlifeEndpoint(
        "mortgageLoanProductsSearch",
        FinlifeLoanBaseRecord,
        FinlifeLoanOptionRecord,
    ),
    "RENT_HOUSE_LOAN": FinlifeEndpoint(
        "rentHouseLoanProductsSearch",
        FinlifeLoanBaseRecord,
        FinlifeLoanOptionRecord,
    ),
    "CREDIT_LOAN": FinlifeEndpoint(
        "creditLoanProductsSearch",
        FinlifeLoanBaseRecord,
        FinlifeCreditOptionRecord,
    ),
}


class FinlifeAdapter(SourceAdapter):
    source = "finance"

    def _fetch_page(
        self,
        page_number: int,
        *,
        endpoint: str,
        group: str | None = None,
    ) -> FetchResult:
        spec = FINLIFE_ENDPOINTS[endpoint]
        params: dict[str, Any] = {"auth": self.api_key, "pageNo": page_number}
        if group:
            params["topFinGrpNo"] = group
        body = self._get(f"{self.base_url}/{spec.path}.json", params).json()
        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            raise ValueError("Finlife response has no result object")
        error_code = result.get("err_cd")
        if error_code not in (None, "000"):
            raise ValueError(f"Finlife error {error_code}: {result.get('err_msg')}")

        records = _parse_list(spec.base_model, result.get("baseList"))
        if not records:
            return Empty()
        options = (
            _parse_list(spec.option_model, result.get("optionList"))
            if spec.option_model is not None
            else []
        )
        return Page(records=records, options=options)


class LhNoticeAdapter(SourceAdapter):
    source = "lh"

    def _fetch_page(
        self,
        page_number: int,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        status: str = "공고중",
    ) -> FetchResult:
        params = {
            "ServiceKey": self.api_key,
            "PG_SZ": page_size,
            "PAGE": page_number,
            "PAN_SS": status,
            "_type": "json",
        }
        body = self._get(self.base_url, params).json()
        if not isinstance(body, list):
            raise ValueError("LH response is not a JSON array")
        for node in body:
            if isinstance(node, dict) and "dsList" in node:
                records = _parse_list(LhNoticeRecord, node["dsList"])
                return Page(records=records) if records else Empty()
        raise ValueError("LH response has no dsList node")


@dataclass(frozen=True)
class ShBoard:
    name: Literal["rent", "sale"]
    path: str
    multi_itm_seq: str
    category: str
    supply_types: dict[str, str]


SH_BOARDS: dict[str, ShBoard] = {
    "rent": ShBoard(
        name="rent",
        path="/main/lay2/program/S1T297C4476/www/brd/m_247/list.do",
        multi_itm_seq="2",
        category="주택임대",
        supply_types={
            "10": "청년안심주택",
            "07": "행복주택",
            "12": "사회주택",
            "11": "두레주택",
            "13": "도시형생활주택",
            "05": "장기안심주택",
            "04": "매입임대주택",
        },
    ),
    "sale": ShBoard(
        name="sale",
        path="/main/lay2/program/S1T294C296/www/brd/m_244/list.do",
        multi_itm_seq="1",
        category="주택분양",
        supply_types={
            "01": "일반분양",
            "02": "신혼희망타운",
            "03": "특별공급",
            "04": "공공분양",
            "05": "토지분양",
        },
    ),
}

DETAIL_VIEW_PATTERN = re.compile(r"getDetailView\('?(\d+)'?\)")
DATE_PATTERN = re.compile(r"\d{4}[.\-/]\d{2}[.\-/]\d{2}")


class ShAnnouncementAdapter(SourceAdapter):
    """Reads the provider's announcement boards, which are published as HTML."""

    source = "sh"

    def _fetch_page(
        self,
        page_number: int,
        *,
        board: str = "rent",
        supply_type: str | None = None,
    ) -> FetchResult:
        spec = SH_BOARDS[board]
        params: dict[str, Any] = {
            "page": page_number,
            "multi_itm_seq": spec.multi_itm_seq,
            "recrnotiState": "now",
        }
        if supply_type:
            params["splyTy"] = supply_type
        response = self._get(f"{self.base_url}{spec.path}", params)
        records = self.parse_list_page(response.text, spec, supply_type=supply_type)
        return Page(records=records) if records else Empty()

    def parse_list_page(
        self,
        html: str,
        board: ShBoard,
        *,
        supply_type: str | None = None,
    ) -> list[ShAnnouncementRecord]:
        soup = BeautifulSoup(html, "html.parser")
        table = soup.select_one("#listTb")
        if table is None:
            raise ValueError("SH list page has no #listTb table")

        view_path = board.path.replace("list.do", "view.do")
        records: list[ShAnnouncementRecord] = []
        for row in table.select("tbody tr"):
            link = row.select_one('td.txtL a[onclick*="getDetailView"]')
            if link is None:
                continue
            match = DETAIL_VIEW_PATTERN.search(link.get("onclick", ""))
            if match is None:
                continue
            seq = match.group(1)
            cells = row.find_all("td")
            numeric_cells = [cell.get_text(strip=True) for cell in row.select("td.num")]
            dates = [text for text in numeric_cells if DATE_PATTERN.fullmatch(text)]
            counts = [text for text in numeric_cells if text.replace(",", "").isdigit()]
            records.append(
                ShAnnouncementRecord(
                    seq=seq,
                    title=link.get_text(" ", strip=True),
                    board=board.name,
                    supply_type_code=supply_type,
                    department=cells[2].get_text(strip=True) if len(cells) > 2 else None,
                    post_date=dates[0] if dates else None,
                    close_date=dates[1] if len(dates) > 1 else None,
                    views=counts[-1] if counts else None,
                    detail_url=(
                        f"{self.base_url}{view_path}?seq={seq}"
                        f"&multi_itm_seq={board.multi_itm_seq}"
                    ),
                )
            )
        return records


class YouthPolicyAdapter(SourceAdapter):
    source = "youth"

    def _fetch_page(
        self,
        page_number: int,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        keyword: str | None = None,
        region_code: str | None = None,
    ) -> FetchResult:
        params: dict[str, Any] = {
            "apiKeyNm": self.api_key,
            "pageNum": page_number,
            "pageSize": page_size,
            "rtnType": "json",
        }
        if keyword:
            params["plcyKywdNm"] = keyword
        if region_code:
            params["zipCd"] = region_code
        body = self._get(self.base_url, params).json()
        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            raise ValueError("Youth policy response has no result object")
        records = _parse_list(YouthPolicyRecord, result.get("youthPolicyList"))
        return Page(records=records) if records else Empty()


@dataclass
class SourceAdapters:
    finance: FinlifeAdapter
    lh: LhNoticeAdapter
    sh: ShAnnouncementAdapter
    youth: YouthPolicyAdapter


def build_adapters(settings: IngestionSettings, client: httpx.Client) -> SourceAdapters:
    return SourceAdapters(
        finance=FinlifeAdapter(
            client,
            base_url=settings.finlife_base_url,
            api_key=settings.finlife_api_key,
        ),
        lh=LhNoticeAdapter(client, base_url=settings.lh_base_url, api_key=settings.lh_service_key),
        sh=ShAnnouncementAdapter(client, base_url=settings.sh_base_url),
        youth=YouthPolicyAdapter(
            client,
            base_url=settings.youth_base_url,
            api_key=settings.youth_api_key,
        ),
    )


def build_http_client(settings: IngestionSettings) -> httpx.Client:
    return httpx.Client(timeout=settings.http_timeout_seconds, follow_redirects=True)
