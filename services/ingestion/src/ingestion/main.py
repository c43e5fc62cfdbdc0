from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager

import httpx
from common.observability import MetricsSnapshot, MetricsStore, install_observability
from common.utils import now_utc_iso
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from store.models import SyncReport, SyncRun, SyncTrigger
from store.repository import ListingRepository

from ingestion.adapters import build_adapters, build_http_client
from ingestion.config import IngestionSettings
from ingestion.orchestrators import (
    BOOTSTRAP_BOUNDS,
    SCHEDULED_BOUNDS,
    SOURCE_NAMES,
    SyncBounds,
    run_all_sources,
    run_and_record,
)
from ingestion.scheduler import IngestionScheduler, JobDefinition

LOGGER = logging.getLogger("ynest.ingestion")


class RunBatchResponse(BaseModel):
    started_at: str
    finished_at: str
    trigger: SyncTrigger
    requested_sources: int
    successful_sources: int
    failed_sources: int
    total_inserted: int
    total_updated: int
    total_skipped: int
    results: list[SyncReport]


class ScheduledJob(BaseModel):
    name: str
    at: list[str]


class ScheduleResponse(BaseModel):
    enabled: bool
    next_run: str | None = None
    jobs: list[ScheduledJob]


def manual_bounds(max_pages: int | None) -> SyncBounds:
    if max_pages is None:
        return SyncBounds()
    return SyncBounds(
        company_pages=max_pages,
        product_pages=max_pages,
        loan_pages=max_pages,
        lh_pages=max_pages,
        sh_pages=min(max_pages, 50),
        youth_pages=max_pages,
    )


def build_batch(started_at: str, trigger: SyncTrigger, results: list[SyncReport]) -> RunBatchResponse:
    return RunBatchResponse(
        started_at=started_at,
        finished_at=now_utc_iso(),
        trigger=trigger,
        requested_sources=len(results),
        successful_sources=sum(1 for result in results if result.status == "ok"),
        failed_sources=sum(1 for result in results if result.status == "error"),
        total_inserted=sum(result.inserted for result in results),
        total_updated=sum(result.updated for result in results),
        total_skipped=sum(result.skipped for result in results),
        results=results,
    )


def create_app(
    *,
    database_path: str | None = None,
    settings: IngestionSettings | None = None,
    http_client: httpx.Client | None = None,
) -> FastAPI:
    resolved = settings or IngestionSettings.from_env()
    if database_path:
        resolved = resolved.model_copy(update={"database_path": database_path})

    repository = ListingRepository(database_path=resolved.database_path)
    client = http_client or build_http_client(resolved)
    adapters = build_adapters(resolved, client)

    def run_scheduled() -> list[SyncReport]:
        return run_all_sources(adapters, repository, bounds=SCHEDULED_BOUNDS, trigger="scheduled")

    scheduler = IngestionScheduler([JobDefinition(name="ingest_all", func=run_scheduled)])

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(repository.connect)
        app.state.repository = repository
        app.state.adapters = adapters
        app.state.scheduler = scheduler
        app.state.metrics = MetricsStore("ingestion")

        if resolved.bootstrap_enabled and not await run_in_threadpool(
            repository.has_finance_products
        ):
            LOGGER.info(json.dumps({"event": "bootstrap_start"}))
            await run_in_threadpool(
                run_all_sources,
                adapters,
                repository,
                bounds=BOOTSTRAP_BOUNDS,
                trigger="bootstrap",
            )

        scheduler_task: asyncio.Task | None = None
        if resolved.scheduler_enabled:
            scheduler_task = asyncio.create_task(scheduler.run())
        try:
            yield
        finally:
            if scheduler_task is not None:
                scheduler_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await scheduler_task
            if http_client is None:
                await run_in_threadpool(client.close)
            await run_in_threadpool(repository.close)

    app = FastAPI(title="YNest Ingestion", version="0.3.0", lifespan=lifespan)
    install_observability(app, LOGGER)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "ingestion"}

    @app.get("/metrics", response_model=MetricsSnapshot)
    async def metrics(request: Request) -> MetricsSnapshot:
        return request.app.state.metrics.snapshot()

    @app.post("/ingest/run", response_model=RunBatchResponse)
    async def run_all(
        request: Request,
        max_pages: int | None = Query(default=None, ge=1, le=100),
    ) -> RunBatchResponse:
        started_at = now_utc_iso()
        results = await run_in_threadpool(
            run_all_sources,
            request.app.state.adapters,
            request.app.state.repository,
            bounds=manual_bounds(max_pages),
            trigger="manual",
        )
        return build_batch(started_at, "manual", results)

    @app.post("/ingest/run/scheduled", response_model=RunBatchResponse)
    async def run_all_scheduled(request: Request) -> RunBatchResponse:
        started_at = now_utc_iso()
        results = await run_in_threadpool(
            run_all_sources,
            request.app.state.adapters,
            request.app.state.repository,
            bounds=SCHEDULED_BOUNDS,
            trigger="scheduled",
        )
        return build_batch(started_at, "scheduled", results)

    @app.get("/ingest/history", response_model=list[SyncRun])
    async def history(
        request: Request,
        limit: int = Query(default=100, ge=1, le=500),
        source: str | None = None,
    ) -> list[SyncRun]:
        return await run_in_threadpool(
            request.app.state.repository.list_sync_runs,
            limit=limit,
            source=source,
        )

    @app.get("/ingest/schedule", response_model=ScheduleResponse)
    async def schedule_overview(request: Request) -> ScheduleResponse:
        active: IngestionScheduler = request.app.state.scheduler
        next_run = active.next_run
        return ScheduleResponse(
            enabled=resolved.scheduler_enabled,
            next_run=next_run.isoformat() if next_run else None,
            jobs=[ScheduledJob(name=job.name, at=list(job.at)) for job in active.definitions],
        )

    @app.post("/ingest/{source}", response_model=SyncReport)
    async def run_one(
        source: str,
        request: Request,
        max_pages: int | None = Query(default=None, ge=1, le=100),
    ) -> SyncReport:
        if source not in SOURCE_NAMES:
            raise HTTPException(status_code=404, detail="Unknown source")
        return await run_in_threadpool(
            run_and_record,
            source,
            request.app.state.adapters,
            request.app.state.repository,
            bounds=manual_bounds(max_pages),
            trigger="manual",
        )

    return app


app = create_app()
