"""OpenTelemetry + Prometheus fallback wiring for the vibedash backend."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Mapping

from fastapi import FastAPI

from vibedash import config

logger = logging.getLogger("vibedash.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_upload_counter: Any | None = None
_upload_latency_hist: Any | None = None
_lines_counter: Any | None = None
_parse_failure_counter: Any | None = None

_prom_enabled = False
_prom_upload_counter: Any | None = None
_prom_upload_latency_hist: Any | None = None
_prom_lines_counter: Any | None = None
_prom_parse_failure_counter: Any | None = None


def _signal_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip().rstrip("/")
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/v1"):
        endpoint = endpoint[: -len("/v1")]
    return f"{endpoint}{signal_path}"


def _label(value: str | None, fallback: str = "unknown") -> str:
    return (value or "").strip() or fallback


def _start_prometheus_fallback() -> None:
    global _prom_enabled
    global _prom_upload_counter, _prom_upload_latency_hist, _prom_lines_counter, _prom_parse_failure_counter

    try:
        from prometheus_client import Counter, Histogram, start_http_server

        start_http_server(config.PROM_PORT)
        _prom_upload_counter = Counter(
            "vibedash_transcript_uploads_total",
            "Transcript upload ingestions by outcome",
            ["result", "project"],
        )
        _prom_upload_latency_hist = Histogram(
            "vibedash_transcript_upload_latency_ms",
            "Time spent ingesting one transcript upload",
            ["result", "project"],
        )
        _prom_lines_counter = Counter(
            "vibedash_transcript_lines_total",
            "Newly stored transcript lines by message category",
            ["category", "project"],
        )
        _prom_parse_failure_counter = Counter(
            "vibedash_parse_failures_total",
            "Transcript lines or uploads that could not be processed",
            ["stage", "project"],
        )
        _prom_enabled = True
        logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Prometheus fallback not started: %s", exc)
        _prom_enabled = False


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _upload_counter, _upload_latency_hist, _lines_counter, _parse_failure_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (VIBEDASH_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    service_name = config.OTEL_SERVICE_NAME or "vibedash-backend"
    resource = Resource.create({"service.name": service_name, "service.namespace": "vibedash"})

    trace_provider = TracerProvider(resource=resource)
    trace_exporter = OTLPSpanExporter(endpoint=_signal_endpoint(config.OTEL_ENDPOINT, "/v1/traces") or None)
    trace_provider.add_span_processor(BatchSpanProcessor(trace_exporter))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=_signal_endpoint(config.OTEL_ENDPOINT, "/v1/metrics") or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("vibedash.backend")

    _upload_counter = meter.create_counter(
        "vibedash_transcript_uploads_total",
        unit="1",
        description="Transcript upload ingestions by outcome",
    )
    _upload_latency_hist = meter.create_histogram(
        "vibedash_transcript_upload_latency_ms",
        unit="ms",
        description="Time spent ingesting one transcript upload",
    )
    _lines_counter = meter.create_counter(
        "vibedash_transcript_lines_total",
        unit="1",
        description="Newly stored transcript lines by message category",
    )
    _parse_failure_counter = meter.create_counter(
        "vibedash_parse_failures_total",
        unit="1",
        description="Transcript lines or uploads that could not be processed",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("vibedash.backend")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        _start_prometheus_fallback()

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    for label, action in (
        ("instrumentor", lambda: app and _fastapi_instrumentor and _fastapi_instrumentor.uninstrument_app(app)),
        ("meter provider", lambda: _meter_provider is not None and _meter_provider.shutdown()),
        ("trace provider", lambda: _trace_provider is not None and _trace_provider.shutdown()),
    ):
        try:
            action()
        except Exception as exc:  # noqa: BLE001
            logger.debug("OpenTelemetry %s shutdown failed: %s", label, exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        yield span


def record_ingestion(result: str, duration_ms: float, *, project: str) -> None:
    latency = max(0.0, float(duration_ms))
    labels = {"result": _label(result), "project": _label(project)}
    if _enabled and _upload_counter is not None:
        _upload_counter.add(1, labels)
    if _enabled and _upload_latency_hist is not None:
        _upload_latency_hist.record(latency, labels)
    if _prom_enabled and _prom_upload_counter is not None:
        _prom_upload_counter.labels(**labels).inc()
    if _prom_enabled and _prom_upload_latency_hist is not None:
        _prom_upload_latency_hist.labels(**labels).observe(latency)


def record_parser_failure(stage: str, *, project: str, count: int = 1) -> None:
    safe_count = max(0, int(count))
    if safe_count == 0:
        return
    labels = {"stage": _label(stage), "project": _label(project)}
    if _enabled and _parse_failure_counter is not None:
        _parse_failure_counter.add(safe_count, labels)
    if _prom_enabled and _prom_parse_failure_counter is not None:
        _prom_parse_failure_counter.labels(**labels).inc(safe_count)


def record_line_categories(counts: Mapping[str, int], *, project: str) -> None:
    """Count newly stored lines per message category."""
    for category, count in counts.items():
        safe_count = max(0, int(count))
        if safe_count == 0:
            continue
        labels = {"category": _label(category), "project": _label(project)}
        if _enabled and _lines_counter is not None:
            _lines_counter.add(safe_count, labels)
        if _prom_enabled and _prom_lines_counter is not None:
            _prom_lines_counter.labels(**labels).inc(safe_count)
