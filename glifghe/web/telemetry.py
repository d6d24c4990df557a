"""
Observability setup for the web front end:
  - OpenTelemetry tracing → Jaeger (via OTLP gRPC); outbound API calls
    are traced through the httpx instrumentation
  - Prometheus metrics for the request cache and user mutations
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from prometheus_client import Counter

from glifghe.web.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
QUERY_CACHE_TOTAL = Counter(
    "glifghe_web_query_cache_total",
    "Request cache lookups",
    ["result"],  # 'hit' | 'shared' | 'fetch'
)

QUERY_FAILURES_TOTAL = Counter(
    "glifghe_web_query_failures_total",
    "Fetches that failed after all retries",
)

MUTATIONS_TOTAL = Counter(
    "glifghe_web_mutations_total",
    "User-triggered writes",
    ["name", "outcome"],  # outcome: 'ok' | 'error'
)


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

    if settings.otel_exporter_otlp_endpoint:
        try:
            exporter = OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint, insecure=True
            )
            provider.add_span_processor(BatchSpanProcessor(exporter))
        except Exception as exc:
            logger.warning("OTel exporter unavailable: %s", exc)

    trace.set_tracer_provider(provider)
    HTTPXClientInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    FastAPIInstrumentor.instrument_app(app)
