"""Per-request metrics and tracing."""

from __future__ import annotations

import time
from collections.abc import Iterable
from http import HTTPStatus
from typing import Any

from fastapi import Request
from opentelemetry.propagate import extract
from opentelemetry.trace import Span, SpanKind, Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.routing import Match
from starlette.types import ASGIApp, Scope

from src.app.core.telemetry import Telemetry, status_of

# Every path no route claims shares this tag, so scanners cannot mint series
UNMATCHED_ROUTE = "<unmatched>"


def _match_template(routes: Iterable[Any], scope: Scope) -> str | None:
    for route in routes:
        match, child_scope = route.matches(scope)
        if match != Match.FULL:
            continue
        children = getattr(route, "routes", None)
        if children is None:
            return getattr(route, "path_format", None) or getattr(route, "path", None)
        # Mounts and included routers: look inside, keeping any mount prefix
        nested_scope = {**scope, **child_scope}
        template = _match_template(children, nested_scope)
        if template is not None:
            root_path = scope.get("root_path", "")
            prefix = nested_scope.get("root_path", root_path)[len(root_path):]
            return f"{prefix}{template}"
    return None


def resolve_route_path(request: Request) -> str:
    """Return the route template that will serve this request.

    Routing happens after the middleware runs, so the router is asked
    directly, descending into mounted apps and included routers. Requests
    that match no route get ``UNMATCHED_ROUTE``.
    """
    app = request.scope.get("app")
    router = getattr(app, "router", None)
    template = _match_template(getattr(router, "routes", ()), request.scope)
    return template if template is not None else UNMATCHED_ROUTE


def _status_reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return f"HTTP {status_code}"


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Counts, times and traces every request through an injected ``Telemetry``.

    The server span continues any W3C ``traceparent`` sent by the caller and
    is published on ``request.state.span`` so that handlers can annotate it.
    The response (or exception) is passed through unchanged.
    """

    def __init__(self, app: ASGIApp, telemetry: Telemetry) -> None:
        super().__init__(app)
        self.telemetry = telemetry

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.telemetry.enabled:
            return await call_next(request)

        method = request.method
        path = resolve_route_path(request)
        span_name = method if path == UNMATCHED_ROUTE else f"{method} {path}"
        start = time.perf_counter()

        with self.telemetry.tracer.start_as_current_span(
            span_name,
            context=extract(request.headers),
            kind=SpanKind.SERVER,
            attributes={"http.request.method": method, "http.route": path},
        ) as span:
            request.state.span = span
            self.telemetry.requests.add(1, {"method": method, "path": path})
            try:
                response = await call_next(request)
            except Exception:
                # Leaving the block marks the span with the exception itself
                self._record(span, method, path, 500, start)
                raise
            self._record(span, method, path, response.status_code, start)
            self._set_status(span, response.status_code)
            return response

    def _record(
        self, span: Span, method: str, path: str, status_code: int, start: float
    ) -> None:
        elapsed = time.perf_counter() - start
        self.telemetry.duration.record(
            elapsed, {"method": method, "path": path, "status_code": status_code}
        )
        span.set_attribute("http.response.status_code", status_code)

    @staticmethod
    def _set_status(span: Span, status_code: int) -> None:
        current = status_of(span)
        if current is not None and current.status_code is StatusCode.ERROR:
            # Keep the message the handler chose
            return
        if status_code >= 400:
            span.set_status(Status(StatusCode.ERROR, _status_reason(status_code)))
        else:
            span.set_status(Status(StatusCode.OK))
