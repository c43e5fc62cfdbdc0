from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import date

from common.observability import MetricsSnapshot, MetricsStore, install_observability
from common.utils import now_utc_iso
from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from store.models import UserProfile
from store.repository import DEFAULT_DB_PATH, ListingRepository

from recommender.digest import DailyDigest, build_daily_digest, loan_change_cutoff
from recommender.housing import RankedHousingNotice, housing_candidates, recommend_housing
from recommender.policy import RankedPolicy, recommend_policies
from recommender.recent import RecentNotices, recent_notices

LOGGER = logging.getLogger("ynest.recommender")


class HousingRecommendRequest(BaseModel):
    profile: UserProfile = Field(default_factory=UserProfile)
    limit: int = Field(default=10, ge=1, le=10)


class HousingRecommendResponse(BaseModel):
    generated_at: str
    candidates: int
    recommendations: list[RankedHousingNotice]


class PolicyRecommendRequest(BaseModel):
    profile: UserProfile = Field(default_factory=UserProfile)
    strict_region: bool = False
    limit: int = Field(default=10, ge=1, le=10)


class PolicyRecommendResponse(BaseModel):
    generated_at: str
    strict_region: bool
    candidates: int
    recommendations: list[RankedPolicy]


def create_app(*, database_path: str | None = None) -> FastAPI:
    resolved_path = database_path or os.getenv("YNEST_DB_PATH", DEFAULT_DB_PATH)
    repository = ListingRepository(database_path=resolved_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(repository.connect)
        app.state.repository = repository
        app.state.metrics = MetricsStore("recommender")
        try:
            yield
        finally:
            await run_in_threadpool(repository.close)

    app = FastAPI(title="YNest Recommender", version="0.7.0", lifespan=lifespan)
    install_observability(app, LOGGER)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "recommender"}

    @app.get("/metrics", response_model=MetricsSnapshot)
    async def metrics(request: Request) -> MetricsSnapshot:
        return request.app.state.metrics.snapshot()

    @app.post("/recommendations/housing", response_model=HousingRecommendResponse)
    async def housing(payload: HousingRecommendRequest, request: Request) -> HousingRecommendResponse:
        store: ListingRepository = request.app.state.repository
        lh_notices = await run_in_threadpool(store.list_lh_notices)
        sh_announcements = await run_in_threadpool(store.list_sh_announcements)
        candidates = housing_candidates(lh_notices, sh_announcements)
        return HousingRecommendResponse(
            generated_at=now_utc_iso(),
            candidates=len(candidates),
            recommendations=recommend_housing(payload.profile, candidates, limit=payload.limit),
        )

    @app.post("/recommendations/policies", response_model=PolicyRecommendResponse)
    async def policies(payload: PolicyRecommendRequest, request: Request) -> PolicyRecommendResponse:
        store: ListingRepository = request.app.state.repository
        stored = await run_in_threadpool(store.list_youth_policies)
        return PolicyRecommendResponse(
            generated_at=now_utc_iso(),
            strict_region=payload.strict_region,
            candidates=len(stored),
            recommendations=recommend_policies(
                payload.profile,
                stored,
                strict_region=payload.strict_region,
                limit=payload.limit,
            ),
        )

    @app.get("/notices/recent", response_model=RecentNotices)
    async def recent(
        request: Request,
        limit: int = Query(default=5, ge=1, le=50),
    ) -> RecentNotices:
        store: ListingRepository = request.app.state.repository
        return recent_notices(
            await run_in_threadpool(store.list_lh_notices),
            await run_in_threadpool(store.list_sh_announcements),
            await run_in_threadpool(store.list_youth_policies),
            limit=limit,
        )

    @app.get("/digest/daily", response_model=DailyDigest)
    async def daily_digest(request: Request) -> DailyDigest:
        store: ListingRepository = request.app.state.repository
        today = date.today()
        return build_daily_digest(
            await run_in_threadpool(store.list_lh_notices),
            await run_in_threadpool(store.list_sh_announcements),
            await run_in_threadpool(store.list_loan_rate_changes, loan_change_cutoff(today)),
            await run_in_threadpool(store.list_youth_policies),
            today=today,
        )

    return app


app = create_app()
