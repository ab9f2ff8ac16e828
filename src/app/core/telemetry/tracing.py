"""Span helpers and exporters on top of the OpenTelemetry SDK.

Request spans are OpenTelemetry spans. The helpers here annotate them without
leaking email addresses, and the exporters keep recent spans in memory or
write them to the application log.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from opentelemetry.trace import Span, Status, StatusCode, format_span_id, format_trace_id
from opentelemetry.util.types import AttributeValue

from src.app.core.telemetry.redaction import looks_like_email, mask_email


def set_attributes(span: Span, attributes: Mapping[str, AttributeValue]) -> None:
    """Set attributes on ``span``, masking anything that looks like an email."""
    for key, value in attributes.items():
        if isinstance(value, str) and looks_like_email(value):
            value = mask_email(value)
        span.set_attribute(key, value)


def mark_error(span: Span, message: str) -> None:
    span.set_status(Status(StatusCode.ERROR, message))


def status_of(span: Span | ReadableSpan) -> Status | None:
    """The span's current status, or None for spans that do not record one."""
    return getattr(span, "status", None)


def span_to_dict(span: ReadableSpan) -> dict[str, Any]:
    duration_ms = None
    if span.start_time is not None and span.end_time is not None:
        duration_ms = round((span.end_time - span.start_time) / 1_000_000, 3)
    return {
        "name": span.name,
        "trace_id": format_trace_id(span.context.trace_id),
        "span_id": format_span_id(span.context.span_id),
        "parent_span_id": format_span_id(span.parent.span_id) if span.parent else None,
        "status": span.status.status_code.name.lower(),
        "status_message": span.status.description,
        "duration_ms": duration_ms,
        "attributes": dict(span.attributes or {}),
    }


class RecentSpanExporter(SpanExporter):
    """Keeps the most recent finished spans for inspection."""

    def __init__(self, max_spans: int = 1000) -> None:
        self._spans: deque[ReadableSpan] = deque(maxlen=max_spans)
        self._lock = threading.Lock()
        self._stopped = False

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        if self._stopped:
            return SpanExportResult.FAILURE
        with self._lock:
            self._spans.extend(spans)
        return SpanExportResult.SUCCESS

    def get_finished_spans(self) -> list[ReadableSpan]:
        with self._lock:
            return list(self._spans)

    def clear(self) -> None:
        with self._lock:
            self._spans.clear()

    def shutdown(self) -> None:
        self._stopped = True


class LoggingSpanExporter(SpanExporter):
    """Writes finished spans to the application log."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        for span in spans:
            data = span_to_dict(span)
            logger.bind(span=data).debug(
                "span.end {} status={} duration_ms={}",
                span.name,
                data["status"],
                data["duration_ms"],
            )
        return SpanExportResult.SUCCESS
