"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from src.app.api.http.app_data import ApplicationDependencies, build_dependencies
from src.app.api.http.middleware.telemetry import TelemetryMiddleware
from src.app.api.http.routers import health, telemetry as telemetry_router, users
from src.app.api.utils.app_startup import configure_logging
from src.app.core.telemetry import Telemetry
from src.app.entities.core.user import UserRepository
from src.app.runtime.config.config_data import ConfigData
from src.app.runtime.context import get_config
from src.app.runtime.init_db import seed_demo_users

__all__ = ["app", "create_app"]


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, environment: str = "development") -> None:
        super().__init__(app)
        self.environment = environment

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        response.headers.setdefault(
            "Permissions-Policy", "geolocation=(), microphone=()"
        )
        # HSTS only in prod
        if self.environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        return response


# --- Request logging middleware ---
async def log_requests(request: Request, call_next):
    # Correlation / tracing
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    # Prefer proxy headers if you run behind a reverse proxy (set up trust chain!)
    xff = request.headers.get("x-forwarded-for")
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else "unknown"
    )

    # query strings may contain emails; never log them
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip,
        "user_agent": request.headers.get("user-agent", "unknown"),
        "http_version": request.scope.get("http_version", "1.1"),
    }

    start = time.perf_counter()

    # Everything that logs within this block inherits base_ctx
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

            # Attach correlation id
            response.headers.setdefault("X-Request-ID", request_id)
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            # Avoid duplicate logs from ServerErrorMiddleware by returning here.
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )


# --- FastAPI app setup ---
def create_app(
    config: ConfigData | None = None,
    repository: UserRepository | None = None,
    telemetry: Telemetry | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        config: Configuration to run with; defaults to the active context's
        repository: User store to use instead of the configured backend
        telemetry: Telemetry handle to record into; built from config if omitted
    """
    config = config or get_config()
    owns_telemetry = telemetry is None
    telemetry = telemetry or Telemetry.from_config(config.telemetry)
    is_production = config.app.environment == "production"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config)
        logger.info("Starting up application in {} environment", config.app.environment)

        deps = build_dependencies(config, telemetry, repository)
        app.state.app_dependencies = deps
        if config.store.seed_demo_users:
            seed_demo_users(deps.user_service)
        try:
            yield
        finally:
            logger.info("Shutting down application")
            app_dependencies: ApplicationDependencies = app.state.app_dependencies
            app_dependencies.close()
            if owns_telemetry:
                telemetry.shutdown()

    app = FastAPI(
        title="User API",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )
    app.state.telemetry = telemetry

    # Starlette runs the last-added middleware first; telemetry sits innermost
    app.add_middleware(TelemetryMiddleware, telemetry=telemetry)
    app.middleware("http")(log_requests)
    app.add_middleware(SecurityHeadersMiddleware, environment=config.app.environment)

    # --- CORS configuration ---
    if is_production and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )

    # --- Router registration ---
    app.include_router(users.router)
    app.include_router(health.router)
    if config.telemetry.expose_metrics:
        app.include_router(telemetry_router.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Let uvicorn use its default logging, but our InterceptHandler will:
    # - Keep INFO/WARNING logs (startup, shutdown, connection issues)
    # - Drop ERROR logs (duplicate exceptions)
    # - Drop access logs (we handle in middleware)
    main_config = get_config()
    uvicorn.run(
        app,
        host=main_config.app.host,
        port=main_config.app.port,
        access_log=False,  # We handle access logging in middleware
    )
