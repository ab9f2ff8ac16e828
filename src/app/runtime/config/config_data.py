"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field, field_validator


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default=None, description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./users.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @computed_field
    @property
    def is_in_memory(self) -> bool:
        """True for SQLite databases that live only inside the process."""
        return self.is_sqlite and (
            self.url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in self.url
        )


class StoreConfig(BaseModel):
    """User store configuration model."""

    backend: Literal["memory", "sql"] = Field(
        default="sql", description="Persistence backend for user records"
    )
    seed_demo_users: bool = Field(
        default=False, description="Insert the demo users when the store is empty"
    )


class TelemetryConfig(BaseModel):
    """Request telemetry configuration model."""

    enabled: bool = Field(default=True, description="Record request telemetry")
    service_name: str = Field(default="user-api", description="Service name on spans")
    duration_buckets: list[float] = Field(
        default_factory=lambda: [
            0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0,
        ],
        description="Upper bounds (seconds) of the request duration histogram",
    )
    max_finished_spans: int = Field(
        default=1000, description="Finished spans kept in memory for inspection"
    )
    log_spans: bool = Field(default=True, description="Emit finished spans to the log")
    expose_metrics: bool = Field(
        default=True, description="Serve the metrics snapshot endpoint"
    )
    otlp_endpoint: str | None = Field(
        default=None,
        description="Base URL of an OTLP/HTTP collector; export is off when unset",
    )
    export_interval_seconds: float = Field(
        default=60.0, gt=0, description="How often metrics are pushed to the collector"
    )

    @field_validator("otlp_endpoint")
    @classmethod
    def _blank_endpoint_is_unset(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip().rstrip("/")

    @field_validator("duration_buckets")
    @classmethod
    def _sorted_buckets(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("duration_buckets must not be empty")
        if any(b <= 0 for b in value):
            raise ValueError("duration_buckets must be positive")
        return sorted(set(value))


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    store: StoreConfig = Field(
        default_factory=StoreConfig, description="User store configuration"
    )
    telemetry: TelemetryConfig = Field(
        default_factory=TelemetryConfig, description="Telemetry configuration"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )

    def warn_on_risky_settings(self) -> None:
        """Log settings that are allowed but questionable for the environment."""
        if self.app.environment != "production":
            return
        if self.store.backend == "memory":
            logger.warning(
                "In-memory user store in production; data is lost on restart"
            )
        if self.database.is_sqlite and self.store.backend == "sql":
            logger.warning(
                "SQLite is not recommended for production use. "
                "Consider PostgreSQL for better performance and reliability."
            )
