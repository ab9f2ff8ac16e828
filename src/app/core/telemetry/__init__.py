"""Request telemetry: OpenTelemetry tracing and metrics plus redaction helpers."""

from .redaction import email_domain, mask_email
from .telemetry import REQUEST_COUNTER, REQUEST_DURATION, Telemetry
from .tracing import (
    LoggingSpanExporter,
    RecentSpanExporter,
    mark_error,
    set_attributes,
    span_to_dict,
    status_of,
)

__all__ = [
    "Telemetry",
    "REQUEST_COUNTER",
    "REQUEST_DURATION",
    "RecentSpanExporter",
    "LoggingSpanExporter",
    "mark_error",
    "set_attributes",
    "span_to_dict",
    "status_of",
    "email_domain",
    "mask_email",
]
