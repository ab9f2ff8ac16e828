"""The observability handle owned by the application and passed to the middleware."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from loguru import logger
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    InMemoryMetricReader,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.metrics.view import ExplicitBucketHistogramAggregation, View
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)

from src.app.core.telemetry.tracing import LoggingSpanExporter, RecentSpanExporter
from src.app.runtime.config.config_data import TelemetryConfig

REQUEST_COUNTER = "http.server.requests"
REQUEST_DURATION = "http.server.duration"

INSTRUMENTATION_SCOPE = "src.app.api.http"


def _same_attributes(point: Any, attributes: Mapping[str, Any]) -> bool:
    return dict(point.attributes or {}) == dict(attributes)


class Telemetry:
    """Request counter, duration histogram and tracer for one application.

    Each instance owns its own tracer and meter providers; nothing is
    registered globally. Spans and metrics always stay readable in-process,
    and are also pushed over OTLP/HTTP when ``otlp_endpoint`` is given.
    """

    def __init__(
        self,
        service_name: str = "user-api",
        duration_buckets: Sequence[float] | None = None,
        max_finished_spans: int = 1000,
        log_spans: bool = True,
        enabled: bool = True,
        otlp_endpoint: str | None = None,
        export_interval_seconds: float = 60.0,
        span_exporters: Iterable[SpanExporter] = (),
    ) -> None:
        self.enabled = enabled
        self.service_name = service_name
        self.otlp_endpoint = otlp_endpoint
        self.duration_buckets = tuple(
            sorted(duration_buckets or TelemetryConfig().duration_buckets)
        )
        resource = Resource.create({SERVICE_NAME: service_name})

        # --- Tracing ---
        self.finished_spans = RecentSpanExporter(max_finished_spans)
        self.span_exporters: list[SpanExporter] = [self.finished_spans, *span_exporters]
        self.tracer_provider = TracerProvider(resource=resource, shutdown_on_exit=False)
        for exporter in self.span_exporters:
            self.tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))
        if log_spans:
            self._add_span_exporter(LoggingSpanExporter(), batched=False)
        if otlp_endpoint:
            self._add_span_exporter(
                OTLPSpanExporter(endpoint=f"{otlp_endpoint}/v1/traces"), batched=True
            )
        self.tracer = self.tracer_provider.get_tracer(INSTRUMENTATION_SCOPE)

        # --- Metrics ---
        self.metric_reader = InMemoryMetricReader()
        self.metric_readers: list[MetricReader] = [self.metric_reader]
        if otlp_endpoint:
            self.metric_readers.append(
                PeriodicExportingMetricReader(
                    OTLPMetricExporter(endpoint=f"{otlp_endpoint}/v1/metrics"),
                    export_interval_millis=export_interval_seconds * 1000,
                )
            )
        self.meter_provider = MeterProvider(
            resource=resource,
            metric_readers=self.metric_readers,
            views=[
                View(
                    instrument_name=REQUEST_DURATION,
                    aggregation=ExplicitBucketHistogramAggregation(
                        boundaries=self.duration_buckets
                    ),
                )
            ],
            shutdown_on_exit=False,
        )
        meter = self.meter_provider.get_meter(INSTRUMENTATION_SCOPE)
        self.requests = meter.create_counter(
            REQUEST_COUNTER,
            unit="1",
            description="Inbound requests, counted before the handler runs",
        )
        self.duration = meter.create_histogram(
            REQUEST_DURATION,
            unit="s",
            description="Time spent handling a request",
        )
        if otlp_endpoint:
            logger.info("Exporting telemetry over OTLP to {}", otlp_endpoint)

    def _add_span_exporter(self, exporter: SpanExporter, batched: bool) -> None:
        if batched:
            self.tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
        else:
            self.tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))
        self.span_exporters.append(exporter)

    @classmethod
    def from_config(cls, config: TelemetryConfig) -> Telemetry:
        return cls(
            service_name=config.service_name,
            duration_buckets=config.duration_buckets,
            max_finished_spans=config.max_finished_spans,
            log_spans=config.log_spans,
            enabled=config.enabled,
            otlp_endpoint=config.otlp_endpoint,
            export_interval_seconds=config.export_interval_seconds,
        )

    # --- Reading metrics back ---
    def _collect(self) -> dict[str, list[Any]]:
        """Current data points of every instrument, keyed by instrument name."""
        data = self.metric_reader.get_metrics_data()
        points: dict[str, list[Any]] = {}
        if data is None:
            return points
        for resource_metrics in data.resource_metrics:
            for scope_metrics in resource_metrics.scope_metrics:
                for metric in scope_metrics.metrics:
                    points.setdefault(metric.name, []).extend(metric.data.data_points)
        return points

    def request_count(self, attributes: Mapping[str, Any]) -> int:
        """Requests counted under exactly these attributes."""
        for point in self._collect().get(REQUEST_COUNTER, []):
            if _same_attributes(point, attributes):
                return point.value
        return 0

    def total_requests(self) -> int:
        return sum(point.value for point in self._collect().get(REQUEST_COUNTER, []))

    def duration_count(self, attributes: Mapping[str, Any]) -> int:
        """Durations recorded under exactly these attributes."""
        for point in self._collect().get(REQUEST_DURATION, []):
            if _same_attributes(point, attributes):
                return point.count
        return 0

    def snapshot(self) -> dict[str, Any]:
        """Current metric values, suitable for a JSON response."""
        points = self._collect()
        return {
            "service": self.service_name,
            "counters": {
                REQUEST_COUNTER: [
                    {"tags": dict(point.attributes or {}), "value": point.value}
                    for point in points.get(REQUEST_COUNTER, [])
                ]
            },
            "histograms": {
                REQUEST_DURATION: {
                    "unit": "s",
                    "buckets": list(self.duration_buckets),
                    "series": [
                        {
                            "tags": dict(point.attributes or {}),
                            "count": point.count,
                            "sum": point.sum,
                            "min": point.min if point.count else None,
                            "max": point.max if point.count else None,
                            "bucket_counts": list(point.bucket_counts),
                        }
                        for point in points.get(REQUEST_DURATION, [])
                    ],
                }
            },
        }

    def shutdown(self) -> None:
        """Flush pending exports and stop the providers."""
        self.tracer_provider.shutdown()
        self.meter_provider.shutdown()
