from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

import schedule

LOGGER = logging.getLogger("ynest.ingestion")

DEFAULT_RUN_TIMES = ("06:00", "18:00")


@dataclass(frozen=True)
class JobDefinition:
    name: str
    func: Callable[[], object]
    at: tuple[str, ...] = DEFAULT_RUN_TIMES


class IngestionScheduler:
    """Fires job definitions at fixed wall-clock times.

    Holds no business state: everything a job touches lives in the store.
    Runs are not serialized against manual triggers.
    """

    def __init__(
        self,
        jobs: Iterable[JobDefinition] = (),
        *,
        poll_seconds: float = 30.0,
        scheduler: schedule.Scheduler | None = None,
    ) -> None:
        self._scheduler = scheduler or schedule.Scheduler()
        self.poll_seconds = poll_seconds
        self.definitions: list[JobDefinition] = []
        for job in jobs:
            self.register(job)

    def register(self, job: JobDefinition) -> None:
        for at in job.at:
            self._scheduler.every().day.at(at).do(self._run_job, job).tag(job.name)
        self.definitions.append(job)

    def _run_job(self, job: JobDefinition) -> None:
        LOGGER.info(json.dumps({"event": "scheduled_job_start", "job": job.name}))
        try:
            job.func()
        except Exception:
            LOGGER.exception(json.dumps({"event": "scheduled_job_failed", "job": job.name}))
            return
        LOGGER.info(json.dumps({"event": "scheduled_job_complete", "job": job.name}))

    @property
    def jobs(self) -> list[schedule.Job]:
        return list(self._scheduler.get_jobs())

    @property
    def next_run(self) -> datetime | None:
        return self._scheduler.next_run

    def run_pending(self) -> None:
        self._scheduler.run_pending()

    def run_all(self) -> None:
        self._scheduler.run_all()

    def clear(self) -> None:
        self._scheduler.clear()
        self.definitions.clear()

    async def run(self) -> None:
        while True:
            await asyncio.to_thread(self.run_pending)
            await asyncio.sleep(self.poll_seconds)
