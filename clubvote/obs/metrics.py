"""Prometheus metrics for the API, the lifecycle worker and ballot submissions."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_LATENCY_SECONDS = Histogram(
    "http_request_latency_seconds",
    "Latency of HTTP requests in seconds.",
    labelnames=("method", "path"),
)
REQUEST_COUNTER = Counter(
    "http_requests_total",
    "Total number of HTTP requests processed.",
    labelnames=("method", "path", "status"),
)
ELECTIONS_OPENED_COUNTER = Counter(
    "elections_opened_total",
    "Elections whose ballot was published by the lifecycle scan.",
)
ELECTIONS_CLOSED_COUNTER = Counter(
    "elections_closed_total",
    "Elections whose ballot was unpublished by the lifecycle scan.",
)
ORPHANED_TRIGGERS_COUNTER = Counter(
    "orphaned_submission_triggers_removed_total",
    "Submission triggers removed because no active election owns their source.",
)
LIFECYCLE_ERROR_COUNTER = Counter(
    "election_lifecycle_errors_total",
    "Elections that failed during a lifecycle scan.",
)
VOTES_RECORDED_COUNTER = Counter(
    "votes_recorded_total",
    "Ballot submissions accepted into the validated results.",
)
VOTES_QUARANTINED_COUNTER = Counter(
    "votes_quarantined_total",
    "Ballot submissions diverted to the invalid results sheet.",
    labelnames=("reason",),
)
NOTIFICATION_FAILURE_COUNTER = Counter(
    "notification_failures_total",
    "Emails the mail relay failed to accept.",
    labelnames=("kind",),
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware that records request metrics for Prometheus scraping."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        method = request.method
        path = request.url.path
        start_time = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            REQUEST_LATENCY_SECONDS.labels(method=method, path=path).observe(
                time.perf_counter() - start_time
            )
            REQUEST_COUNTER.labels(method=method, path=path, status=status).inc()


metrics_router = APIRouter(tags=["observability"])


@metrics_router.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    """Expose Prometheus metrics for scraping."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "ELECTIONS_CLOSED_COUNTER",
    "ELECTIONS_OPENED_COUNTER",
    "LIFECYCLE_ERROR_COUNTER",
    "NOTIFICATION_FAILURE_COUNTER",
    "ORPHANED_TRIGGERS_COUNTER",
    "PrometheusMiddleware",
    "REQUEST_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "VOTES_QUARANTINED_COUNTER",
    "VOTES_RECORDED_COUNTER",
    "metrics_endpoint",
    "metrics_router",
]
