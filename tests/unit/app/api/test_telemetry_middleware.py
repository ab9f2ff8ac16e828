"""Unit tests for TelemetryMiddleware."""

from __future__ import annotations

import pytest
from fastapi import APIRouter, FastAPI, Request
from fastapi.testclient import TestClient
from opentelemetry.trace import StatusCode
from starlette.responses import PlainTextResponse, Response

from src.app.api.http.middleware.telemetry import (
    UNMATCHED_ROUTE,
    TelemetryMiddleware,
    resolve_route_path,
)
from src.app.core.telemetry import Telemetry, mark_error


def build_app(telemetry: Telemetry) -> FastAPI:
    app = FastAPI()
    app.add_middleware(TelemetryMiddleware, telemetry=telemetry)

    @app.get("/items/{item_id}")
    def get_item(item_id: int, request: Request) -> dict[str, int]:
        request.state.span.set_attribute("item.id", item_id)
        return {"id": item_id}

    @app.get("/missing")
    def missing() -> Response:
        return PlainTextResponse("nope", status_code=404)

    @app.get("/gone")
    def gone(request: Request) -> Response:
        mark_error(request.state.span, "Item was archived")
        return PlainTextResponse("gone", status_code=410)

    @app.get("/boom")
    def boom() -> None:
        raise RuntimeError("kaboom")

    orders = APIRouter(prefix="/orders")

    @orders.get("/{order_id}/lines/{line_no}")
    def get_line(order_id: int, line_no: int) -> dict[str, int]:
        return {"order": order_id, "line": line_no}

    app.include_router(orders)

    reports = FastAPI()

    @reports.get("/daily/{day}")
    def daily(day: str) -> dict[str, str]:
        return {"day": day}

    app.mount("/reports", reports)
    return app


def make_request(app: FastAPI, method: str, path: str) -> Request:
    return Request(
        {
            "type": "http",
            "app": app,
            "method": method,
            "path": path,
            "root_path": "",
            "query_string": b"",
            "headers": [],
        }
    )


def last_span(telemetry: Telemetry):
    return telemetry.finished_spans.get_finished_spans()[-1]


class TestResolveRoutePath:
    def test_matches_route_template(self, telemetry):
        app = build_app(telemetry)

        assert resolve_route_path(make_request(app, "GET", "/items/42")) == "/items/{item_id}"

    def test_included_router_template(self, telemetry):
        app = build_app(telemetry)

        path = resolve_route_path(make_request(app, "GET", "/orders/7/lines/2"))

        assert path == "/orders/{order_id}/lines/{line_no}"

    def test_mounted_app_template_keeps_mount_prefix(self, telemetry):
        app = build_app(telemetry)

        path = resolve_route_path(make_request(app, "GET", "/reports/daily/monday"))

        assert path == "/reports/daily/{day}"

    def test_unmatched_path_uses_placeholder(self, telemetry):
        app = build_app(telemetry)

        assert resolve_route_path(make_request(app, "GET", "/nowhere")) == UNMATCHED_ROUTE

    def test_method_mismatch_uses_placeholder(self, telemetry):
        app = build_app(telemetry)

        assert resolve_route_path(make_request(app, "POST", "/items/42")) == UNMATCHED_ROUTE


class TestDispatch:
    @pytest.mark.asyncio
    async def test_counts_before_handler_runs(self, telemetry):
        app = build_app(telemetry)
        middleware = TelemetryMiddleware(app, telemetry=telemetry)
        tags = {"method": "GET", "path": "/items/{item_id}"}
        seen: list[int] = []

        async def call_next(request: Request) -> Response:
            seen.append(telemetry.request_count(tags))
            return Response(status_code=200)

        await middleware.dispatch(make_request(app, "GET", "/items/1"), call_next)

        assert seen == [1]

    @pytest.mark.asyncio
    async def test_response_passes_through_unchanged(self, telemetry):
        app = build_app(telemetry)
        middleware = TelemetryMiddleware(app, telemetry=telemetry)
        expected = Response(content=b"body", status_code=201)

        async def call_next(request: Request) -> Response:
            return expected

        response = await middleware.dispatch(
            make_request(app, "GET", "/items/1"), call_next
        )

        assert response is expected

    @pytest.mark.asyncio
    async def test_exception_records_500_and_reraises(self, telemetry):
        app = build_app(telemetry)
        middleware = TelemetryMiddleware(app, telemetry=telemetry)
        error = ValueError("downstream")

        async def call_next(request: Request) -> Response:
            raise error

        with pytest.raises(ValueError) as exc_info:
            await middleware.dispatch(make_request(app, "GET", "/boom"), call_next)

        assert exc_info.value is error
        assert telemetry.duration_count(
            {"method": "GET", "path": "/boom", "status_code": 500}
        ) == 1
        span = last_span(telemetry)
        assert span.status.status_code is StatusCode.ERROR
        assert "downstream" in span.status.description
        assert span.attributes["http.response.status_code"] == 500
        assert span.events[0].attributes["exception.type"] == "ValueError"

    @pytest.mark.asyncio
    async def test_disabled_telemetry_records_nothing(self):
        telemetry = Telemetry(enabled=False, log_spans=False)
        app = build_app(telemetry)
        middleware = TelemetryMiddleware(app, telemetry=telemetry)
        states: list[bool] = []

        async def call_next(request: Request) -> Response:
            states.append(hasattr(request.state, "span"))
            return Response(status_code=200)

        await middleware.dispatch(make_request(app, "GET", "/items/1"), call_next)

        assert states == [False]
        assert telemetry.total_requests() == 0
        assert telemetry.finished_spans.get_finished_spans() == []


class TestThroughApplication:
    def test_success_is_counted_timed_and_traced(self, telemetry):
        client = TestClient(build_app(telemetry))

        response = client.get("/items/7")

        assert response.status_code == 200
        assert telemetry.request_count({"method": "GET", "path": "/items/{item_id}"}) == 1
        assert telemetry.duration_count(
            {"method": "GET", "path": "/items/{item_id}", "status_code": 200}
        ) == 1
        span = last_span(telemetry)
        assert span.name == "GET /items/{item_id}"
        assert span.status.status_code is StatusCode.OK
        assert span.attributes["http.route"] == "/items/{item_id}"
        assert span.attributes["item.id"] == 7

    def test_included_router_is_tagged_with_template(self, telemetry):
        client = TestClient(build_app(telemetry))

        client.get("/orders/1/lines/1")
        client.get("/orders/2/lines/5")

        template = "/orders/{order_id}/lines/{line_no}"
        assert telemetry.request_count({"method": "GET", "path": template}) == 2
        assert last_span(telemetry).name == f"GET {template}"

    def test_client_error_marks_span_as_error(self, telemetry):
        client = TestClient(build_app(telemetry))

        assert client.get("/missing").status_code == 404

        span = last_span(telemetry)
        assert span.status.status_code is StatusCode.ERROR
        assert span.status.description == "Not Found"

    def test_handler_error_message_is_kept(self, telemetry):
        client = TestClient(build_app(telemetry))

        assert client.get("/gone").status_code == 410

        span = last_span(telemetry)
        assert span.status.status_code is StatusCode.ERROR
        assert span.status.description == "Item was archived"

    def test_unrouted_paths_share_one_series(self, telemetry):
        client = TestClient(build_app(telemetry))

        for i in range(50):
            assert client.get(f"/scan/{i}").status_code == 404

        snapshot = telemetry.snapshot()
        assert snapshot["counters"]["http.server.requests"] == [
            {"tags": {"method": "GET", "path": UNMATCHED_ROUTE}, "value": 50}
        ]
        assert len(snapshot["histograms"]["http.server.duration"]["series"]) == 1
        assert last_span(telemetry).name == "GET"

    def test_incoming_trace_context_is_continued(self, telemetry):
        client = TestClient(build_app(telemetry))
        trace_id = "4bf92f3577b34da6a3ce929d0e0e4736"
        parent_id = "00f067aa0ba902b7"

        client.get("/items/1", headers={"traceparent": f"00-{trace_id}-{parent_id}-01"})

        span = last_span(telemetry)
        assert span.context.trace_id == int(trace_id, 16)
        assert span.parent.span_id == int(parent_id, 16)
        assert span.parent.is_remote

    def test_unhandled_exception_is_not_swallowed(self, telemetry):
        client = TestClient(build_app(telemetry))

        with pytest.raises(RuntimeError, match="kaboom"):
            client.get("/boom")

        assert telemetry.duration_count(
            {"method": "GET", "path": "/boom", "status_code": 500}
        ) == 1
