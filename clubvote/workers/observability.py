"""Shared observability helpers for worker processes."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry.trace import Span

from clubvote.core.config import get_settings
from clubvote.core.logging import configure_logging
from clubvote.obs import election_span, initialise_tracing


def configure_worker(service_name: str) -> None:
    """Configure logging and tracing for a worker service."""

    configure_logging()
    settings = get_settings()
    if settings.enable_tracing:
        initialise_tracing(service_name=service_name, endpoint=settings.otel_exporter_endpoint)


@contextmanager
def worker_span(name: str, **attributes: Any) -> Iterator[Span]:
    """Context manager that starts a worker span and attaches optional attributes."""

    with election_span(name, **attributes) as span:
        yield span


__all__ = ["configure_worker", "worker_span"]
