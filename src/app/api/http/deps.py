"""FastAPI dependency implementations."""

from __future__ import annotations

from fastapi import Request
from opentelemetry.trace import Span

from src.app.api.http.app_data import ApplicationDependencies
from src.app.core.services import UserService
from src.app.core.telemetry import Telemetry
from src.app.runtime.config.config_data import ConfigData


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    """Get the dependencies wired at startup."""
    return request.app.state.app_dependencies


def get_app_config(request: Request) -> ConfigData:
    """Get the configuration the application was created with."""
    return get_app_dependencies(request).config


def get_user_service(request: Request) -> UserService:
    """Get the User service instance."""
    app_deps = get_app_dependencies(request)
    return app_deps.user_service


def get_telemetry(request: Request) -> Telemetry:
    """Get the Telemetry handle."""
    app_deps = get_app_dependencies(request)
    return app_deps.telemetry


def get_request_span(request: Request) -> Span | None:
    """Get the span opened for this request, if telemetry is enabled."""
    return getattr(request.state, "span", None)
