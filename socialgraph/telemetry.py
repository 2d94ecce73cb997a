"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics: social_operations_total, store_statement_seconds
  - EventSink: structured events handed to each engine component

Tracing is initialised once at startup; engine operations open their own
spans through the traced() decorator.
"""
import functools
import logging
from typing import Any, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram

from socialgraph.config import settings
from socialgraph.errors import SocialGraphError, StoreError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
OPERATIONS_TOTAL = Counter(
    "social_operations_total",
    "Engine operations by outcome ('ok' or the error kind)",
    ["operation", "outcome"],
)

STORE_STATEMENT_SECONDS = Histogram(
    "store_statement_seconds",
    "Latency of a single statement against the relational store",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

_SPAN_TYPES = (str, bool, int, float)


# ─────────────────────────── Event sink ───────────────────────────────────
class EventSink:
    """
    Structured event sink passed into each engine component.

    Every event becomes a log record (with the fields under ``extra``) and an
    event on the current span, so traces and logs line up.
    """

    def __init__(self, component: str, log: Optional[logging.Logger] = None) -> None:
        self.component = component
        self._log = log or logging.getLogger(f"socialgraph.engine.{component}")

    def emit(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        span = trace.get_current_span()
        span.add_event(
            event,
            {k: v for k, v in fields.items() if isinstance(v, _SPAN_TYPES)},
        )
        rendered = " ".join(f"{k}={v}" for k, v in fields.items())
        self._log.log(
            level,
            "%s.%s %s",
            self.component,
            event,
            rendered,
            extra={"event": event, "component": self.component, "fields": fields},
        )

    def warning(self, event: str, **fields: Any) -> None:
        self.emit(event, level=logging.WARNING, **fields)


def traced(operation: str):
    """
    Wrap an async engine method in a span and an outcome counter.

    StoreErrors leaving the method are stamped with ``operation`` so the
    caller knows which step hit the store.
    """

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            with tracer.start_as_current_span(operation) as span:
                try:
                    result = await fn(self, *args, **kwargs)
                except SocialGraphError as exc:
                    span.set_attribute("error.kind", exc.kind.value)
                    span.set_attribute("error.reason", exc.reason)
                    OPERATIONS_TOTAL.labels(operation=operation, outcome=exc.kind.value).inc()
                    if isinstance(exc, StoreError):
                        if exc.operation is None:
                            exc.operation = operation
                        self.events.emit(
                            "store_error",
                            level=logging.ERROR,
                            operation=operation,
                            cause=type(exc.cause).__name__,
                        )
                    raise
                OPERATIONS_TOTAL.labels(operation=operation, outcome="ok").inc()
                return result

        return wrapper

    return decorator


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    if settings.otel_enabled:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                insecure=True,
            )
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(
                "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
            )
        except Exception as exc:
            logger.warning("Could not connect to OTLP exporter: %s — traces disabled", exc)

    trace.set_tracer_provider(provider)


def instrument_engine(engine) -> None:  # noqa: ANN001
    """Attach SQLAlchemy statement spans to an async engine."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    FastAPIInstrumentor.instrument_app(app)
