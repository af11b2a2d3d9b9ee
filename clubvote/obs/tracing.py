"""OpenTelemetry tracing helpers for the API and the lifecycle worker."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Span

try:  # pragma: no cover - exporter may not be available in minimal environments
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
except ModuleNotFoundError:  # pragma: no cover
    OTLPSpanExporter = None  # type: ignore[assignment]

_SERVICE_NAME_ATTRIBUTE = "service.name"


def initialise_tracing(*, service_name: str, endpoint: str | None = None) -> None:
    """Install a global tracer provider unless one for ``service_name`` exists."""

    current = trace.get_tracer_provider()
    if (
        isinstance(current, TracerProvider)
        and current.resource.attributes.get(_SERVICE_NAME_ATTRIBUTE) == service_name
    ):
        return

    provider = TracerProvider(resource=Resource(attributes={_SERVICE_NAME_ATTRIBUTE: service_name}))
    if endpoint and OTLPSpanExporter is not None:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    else:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)


def instrument_fastapi_app(app: FastAPI) -> None:
    FastAPIInstrumentor().instrument_app(app)


def instrument_sqlalchemy_engine(engine: Any) -> None:
    SQLAlchemyInstrumentor().instrument(engine=engine)


@contextmanager
def election_span(name: str, **attributes: Any) -> Iterator[Span]:
    """Start a span for a lifecycle scan or a ballot submission."""

    tracer = trace.get_tracer("clubvote")
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        yield span


__all__ = [
    "election_span",
    "initialise_tracing",
    "instrument_fastapi_app",
    "instrument_sqlalchemy_engine",
]
