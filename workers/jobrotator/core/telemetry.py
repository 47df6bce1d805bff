from __future__ import annotations

from dataclasses import dataclass
import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from jobrotator.core.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"
# Per-request chatter from these drowns out per-chunk progress lines.
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "asyncpg")
OTLP_TRACES_PATH = "/v1/traces"

_BASE_LOG_RECORD_FACTORY = logging.getLogRecordFactory()
_LOG_CORRELATION_INSTALLED = False
_HTTPX_INSTRUMENTOR = HTTPXClientInstrumentor()


@dataclass(slots=True)
class GeneratorTelemetry:
    tracer_provider: TracerProvider | None = None
    httpx_instrumented: bool = False

    @property
    def enabled(self) -> bool:
        return self.tracer_provider is not None


def configure_generator_logging(level: int | str = logging.INFO) -> None:
    _install_log_correlation()
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)


def provider_label(settings: Settings) -> str:
    if settings.use_azure_openai:
        return "azure-openai"
    if settings.openai_api_key:
        return "openai"
    return "template"


def generator_resource(settings: Settings) -> Resource:
    return Resource.create(
        {
            SERVICE_NAME: settings.otel_service_name,
            DEPLOYMENT_ENVIRONMENT: settings.environment,
            "jobrotator.provider": provider_label(settings),
            "jobrotator.entity_table": settings.entity_table,
            "jobrotator.jobs_table": settings.jobs_table,
            "jobrotator.universe_size": settings.universe_size,
        }
    )


def resolve_otlp_endpoint(settings: Settings) -> str | None:
    """Pick the traces endpoint from settings, then the standard OTLP env vars.

    The generic ``OTEL_EXPORTER_OTLP_ENDPOINT`` names the collector root, so
    the traces path is appended to it; the other two are used as given.
    """
    explicit = settings.otel_exporter_otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
    if explicit:
        return explicit
    base = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not base:
        return None
    return base.rstrip("/") + OTLP_TRACES_PATH


def setup_generator_telemetry(settings: Settings) -> GeneratorTelemetry:
    if not settings.otel_enabled:
        return GeneratorTelemetry()

    if settings.otel_log_correlation:
        _install_log_correlation()

    provider = TracerProvider(
        resource=generator_resource(settings),
        sampler=ParentBased(TraceIdRatioBased(settings.otel_trace_sample_ratio)),
    )
    endpoint = resolve_otlp_endpoint(settings)
    if endpoint:
        headers = parse_otlp_headers(settings.otel_exporter_otlp_headers or os.getenv("OTEL_EXPORTER_OTLP_HEADERS"))
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=headers or None)))
    else:
        logger.info("OTel exporter endpoint not set; generation spans stay local for service=%s", settings.otel_service_name)
    trace.set_tracer_provider(provider)

    # Only provider calls travel over httpx; template-only runs have nothing to instrument.
    instrument_httpx = settings.provider_configured
    if instrument_httpx:
        _HTTPX_INSTRUMENTOR.instrument()
    return GeneratorTelemetry(tracer_provider=provider, httpx_instrumented=instrument_httpx)


def shutdown_generator_telemetry(telemetry: GeneratorTelemetry) -> None:
    if telemetry.httpx_instrumented:
        _HTTPX_INSTRUMENTOR.uninstrument()
    if telemetry.tracer_provider is not None:
        telemetry.tracer_provider.force_flush()
        telemetry.tracer_provider.shutdown()


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2``; entries without ``=`` are dropped."""
    if not raw:
        return {}
    parsed: dict[str, str] = {}
    for item in raw.split(","):
        key, separator, value = item.partition("=")
        if separator and key.strip():
            parsed[key.strip()] = value.strip()
    return parsed


def _install_log_correlation() -> None:
    global _LOG_CORRELATION_INSTALLED
    if _LOG_CORRELATION_INSTALLED:
        return

    def record_factory(*args: object, **kwargs: object) -> logging.LogRecord:
        record = _BASE_LOG_RECORD_FACTORY(*args, **kwargs)
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else "0" * 32
        record.span_id = format(context.span_id, "016x") if context.is_valid else "0" * 16
        return record

    logging.setLogRecordFactory(record_factory)
    _LOG_CORRELATION_INSTALLED = True
