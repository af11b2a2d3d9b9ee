"""Observability utilities."""

from .metrics import (
    ELECTIONS_CLOSED_COUNTER,
    ELECTIONS_OPENED_COUNTER,
    LIFECYCLE_ERROR_COUNTER,
    NOTIFICATION_FAILURE_COUNTER,
    ORPHANED_TRIGGERS_COUNTER,
    REQUEST_COUNTER,
    REQUEST_LATENCY_SECONDS,
    VOTES_QUARANTINED_COUNTER,
    VOTES_RECORDED_COUNTER,
    PrometheusMiddleware,
    metrics_router,
)
from .tracing import (
    election_span,
    initialise_tracing,
    instrument_fastapi_app,
    instrument_sqlalchemy_engine,
)

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
    "election_span",
    "initialise_tracing",
    "instrument_fastapi_app",
    "instrument_sqlalchemy_engine",
    "metrics_router",
]
