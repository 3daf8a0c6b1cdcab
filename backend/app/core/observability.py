from functools import lru_cache
from typing import Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import settings

SERVICE_NAME = "jobcost-api"
RESOURCE = Resource.create({"service.name": SERVICE_NAME, "deployment.env": settings.env})

_configured = False


def configure_tracing(otlp_endpoint: Optional[str] = None) -> None:
    tracer_provider = TracerProvider(resource=RESOURCE)
    endpoint = otlp_endpoint or settings.otlp_endpoint
    if endpoint:
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint))
        )
    trace.set_tracer_provider(tracer_provider)


def configure_metrics(otlp_endpoint: Optional[str] = None) -> None:
    endpoint = otlp_endpoint or settings.otlp_endpoint
    provider_kwargs = {"resource": RESOURCE}
    if endpoint:
        provider_kwargs["metric_readers"] = [PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=endpoint))]
    metrics.set_meter_provider(MeterProvider(**provider_kwargs))


def configure_observability() -> None:
    # global providers can only be set once per process
    global _configured
    if _configured:
        return
    configure_tracing()
    configure_metrics()
    _configured = True


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(SERVICE_NAME)


@lru_cache
def _timer_counter() -> metrics.Counter:
    return metrics.get_meter(SERVICE_NAME).create_counter("jobcost.timer_events", description="Timer lifecycle events")


def record_timer_event(event: str, company_id: str) -> None:
    """Count timer lifecycle events per company."""
    _timer_counter().add(1, {"event": event, "company_id": company_id})
