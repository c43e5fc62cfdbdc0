from __future__ import annotations

import json
import logging
import threading
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from common.utils import now_utc_iso

STATUS_CLASSES = ("2xx", "3xx", "4xx", "5xx")


class EndpointMetrics(BaseModel):
    count: int = 0
    status_classes: dict[str, int] = Field(default_factory=lambda: dict.fromkeys(STATUS_CLASSES, 0))
    latency_ms_sum: float = 0.0
    latency_ms_avg: float = 0.0


class MetricsSnapshot(BaseModel):
    service: str
    generated_at: str
    totals: dict[str, int]
    endpoints: dict[str, EndpointMetrics]


class MetricsStore:
    """In-process request counters, keyed by ``"<METHOD> <path>"``."""

    def __init__(self, service: str) -> None:
        self.service = service
        self._lock = threading.RLock()
        self._requests = 0
        self._errors = 0
        self._endpoints: dict[str, EndpointMetrics] = {}

    def observe(self, *, method: str, path: str, status_code: int, duration_ms: float) -> None:
        status_class = f"{status_code // 100}xx"
        with self._lock:
            self._requests += 1
            if status_code >= 400:
                self._errors += 1
            endpoint = self._endpoints.setdefault(f"{method} {path}", EndpointMetrics())
            endpoint.count += 1
            if status_class in endpoint.status_classes:
                endpoint.status_classes[status_class] += 1
            endpoint.latency_ms_sum += duration_ms
            endpoint.latency_ms_avg = endpoint.latency_ms_sum / endpoint.count

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                service=self.service,
                generated_at=now_utc_iso(),
                totals={"requests": self._requests, "errors": self._errors},
                endpoints={key: value.model_copy(deep=True) for key, value in self._endpoints.items()},
            )


def install_observability(app: FastAPI, logger: logging.Logger) -> None:
    """Attach request ids, per-endpoint metrics and a JSON request log line."""

    def finish(request: Request, request_id: str, status_code: int, started: float, **extra) -> dict:
        duration_ms = (time.perf_counter() - started) * 1000
        request.app.state.metrics.observe(
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        return {
            "event": "request_complete",
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 3),
            **extra,
        }

    @app.middleware("http")
    async def observability_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(json.dumps(finish(request, request_id, 500, started, error=str(exc))))
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"x-request-id": request_id},
            )

        response.headers["x-request-id"] = request_id
        logger.info(
            json.dumps(
                finish(
                    request,
                    request_id,
                    response.status_code,
                    started,
                    source_ip=request.client.host if request.client else None,
                )
            )
        )
        return response
