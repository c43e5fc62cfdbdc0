from __future__ import annotations

import os

from pydantic import BaseModel

from store.repository import DEFAULT_DB_PATH

DEFAULT_FINLIFE_BASE_URL = "https://finlife.fss.or.kr/finlifeapi"
DEFAULT_LH_BASE_URL = "https://apis.data.go.kr/B552555/lhLeaseNoticeInfo1/lhLeaseNoticeInfo1"
DEFAULT_SH_BASE_URL = "https://www.i-sh.co.kr"
DEFAULT_YOUTH_BASE_URL = "https://www.youthcenter.go.kr/go/ythip/getPlcy"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


class IngestionSettings(BaseModel):
    database_path: str = DEFAULT_DB_PATH
    finlife_api_key: str = ""
    finlife_base_url: str = DEFAULT_FINLIFE_BASE_URL
    lh_service_key: str = ""
    lh_base_url: str = DEFAULT_LH_BASE_URL
    sh_base_url: str = DEFAULT_SH_BASE_URL
    youth_api_key: str = ""
    youth_base_url: str = DEFAULT_YOUTH_BASE_URL
    http_timeout_seconds: float = 15.0
    scheduler_enabled: bool = False
    bootstrap_enabled: bool = False

    @classmethod
    def from_env(cls) -> IngestionSettings:
        return cls(
            database_path=os.getenv("YNEST_DB_PATH", DEFAULT_DB_PATH),
            finlife_api_key=os.getenv("FINLIFE_API_KEY", "").strip(),
            finlife_base_url=os.getenv("FINLIFE_BASE_URL", DEFAULT_FINLIFE_BASE_URL).rstrip("/"),
            lh_service_key=os.getenv("LH_SERVICE_KEY", "").strip(),
            lh_base_url=os.getenv("LH_BASE_URL", DEFAULT_LH_BASE_URL),
            sh_base_url=os.getenv("SH_BASE_URL", DEFAULT_SH_BASE_URL).rstrip("/"),
            youth_api_key=os.getenv("YOUTH_API_KEY", "").strip(),
            youth_base_url=os.getenv("YOUTH_BASE_URL", DEFAULT_YOUTH_BASE_URL),
            scheduler_enabled=_env_flag("YNEST_SCHEDULER_ENABLED"),
            bootstrap_enabled=_env_flag("YNEST_BOOTSTRAP_ENABLED"),
        )
