from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from ingestion.config import IngestionSettings
from ingestion.main import create_app

pytestmark = pytest.mark.integration

EMPTY_SH_PAGE = '<table id="listTb"><tbody></tbody></table>'


def provider_handler(*, lh_status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        page = request.url.params
        host = request.url.host
        if host == "finlife.test":
            if request.url.path.endswith("companySearch.json") and page.get("pageNo") == "1":
                return httpx.Response(
                    200,
                    json={
                        "result": {
                            "err_cd": "000",
                            "baseList": [
                                {
                                    "fin_co_no": f"00{page.get('topFinGrpNo')}",
                                    "kor_co_nm": f"테스트은행{page.get('topFinGrpNo')}",
                                    "homp_url": "https://bank.test",
                                }
                            ],
                        }
                    },
                )
            return httpx.Response(200, json={"result": {"err_cd": "000", "baseList": []}})
        if host == "lh.test":
            if lh_status != 200:
                return httpx.Response(lh_status, text="unavailable")
            records = (
                [
                    {
                        "PAN_NM": "행복주택 입주자 모집",
                        "CNP_CD_NM": "서울특별시",
                        "PAN_NT_ST_DT": "2025.03.01",
                        "CLSG_DT": "2025.03.20",
                    }
                ]
                if page.get("PAGE") == "1"
                else []
            )
            return httpx.Response(200, json=[{"dsSch": []}, {"dsList": records}])
        if host == "sh.test":
            return httpx.Response(200, text=EMPTY_SH_PAGE)
        if host == "youth.test":
            policies = (
                [{"plcyNo": "P001", "plcyNm": "청년월세 지원", "bizPrdBgngYmd": "20250101"}]
                if page.get("pageNum") == "1"
                else []
            )
            return httpx.Response(200, json={"result": {"youthPolicyList": policies}})
        return httpx.Response(404)

    return handler


def make_settings(tmp_path: Path, **overrides: object) -> IngestionSettings:
    return IngestionSettings(
        database_path=str(tmp_path / "listings.sqlite3"),
        finlife_base_url="https://finlife.test/finlifeapi",
        lh_base_url="https://lh.test/notices",
        sh_base_url="https://sh.test",
        youth_base_url="https://youth.test/getPlcy",
        **overrides,
    )


@pytest.fixture
def client(tmp_path: Path) -> Iterator[TestClient]:
    http_client = httpx.Client(transport=httpx.MockTransport(provider_handler()))
    app = create_app(settings=make_settings(tmp_path), http_client=http_client)
    with TestClient(app) as test_client:
        yield test_client
    http_client.close()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "ingestion"}
    assert response.headers.get("x-request-id")


def test_manual_run_covers_every_source(client: TestClient) -> None:
    response = client.post("/ingest/run", params={"max_pages": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["trigger"] == "manual"
    assert body["requested_sources"] == 4
    assert body["successful_sources"] == 4
    assert body["failed_sources"] == 0
    inserted = {result["source"]: result["inserted"] for result in body["results"]}
    assert inserted == {"finance": 2, "lh": 1, "sh": 0, "youth": 1}


def test_single_source_run_is_recorded_in_history(client: TestClient) -> None:
    first = client.post("/ingest/youth")
    second = client.post("/ingest/youth")

    assert first.status_code == 200
    assert first.json()["inserted"] == 1
    assert second.json()["inserted"] == 0
    assert second.json()["skipped"] == 1

    history = client.get("/ingest/history", params={"source": "youth"})
    assert history.status_code == 200
    runs = history.json()
    assert len(runs) == 2
    assert runs[0]["run_id"] > runs[1]["run_id"]
    assert all(run["trigger"] == "manual" for run in runs)


def test_unknown_source_returns_404(client: TestClient) -> None:
    response = client.post("/ingest/weather")

    assert response.status_code == 404


def test_schedule_lists_the_daily_job(client: TestClient) -> None:
    response = client.get("/ingest/schedule")

    assert response.status_code == 200
    body = response.json()
    assert body["enabled"] is False
    assert body["jobs"] == [{"name": "ingest_all", "at": ["06:00", "18:00"]}]
    assert body["next_run"]


def test_provider_outage_is_reported_per_source(tmp_path: Path) -> None:
    http_client = httpx.Client(transport=httpx.MockTransport(provider_handler(lh_status=503)))
    app = create_app(settings=make_settings(tmp_path), http_client=http_client)

    with TestClient(app) as client:
        response = client.post("/ingest/run")
        metrics = client.get("/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["failed_sources"] == 1
    statuses = {result["source"]: result["status"] for result in body["results"]}
    assert statuses["lh"] == "error"
    assert statuses["youth"] == "ok"
    assert metrics.json()["endpoints"]["POST /ingest/run"]["status_classes"]["2xx"] == 1


def test_bootstrap_runs_once_on_an_empty_store(tmp_path: Path) -> None:
    settings = make_settings(tmp_path, bootstrap_enabled=True)
    http_client = httpx.Client(transport=httpx.MockTransport(provider_handler()))

    with TestClient(create_app(settings=settings, http_client=http_client)) as client:
        runs = client.get("/ingest/history").json()

    assert len(runs) == 4
    assert {run["trigger"] for run in runs} == {"bootstrap"}
