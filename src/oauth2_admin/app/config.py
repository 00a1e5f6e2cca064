"""
Configuration Module for the Administration Service

Settings are loaded from environment variables through pydantic-settings, with defaults suitable for a local
development stack. Shared resources (database engine, session factory, Redis client, metrics client, background
tasks) are attached to the aiohttp application under typed AppKeys so handlers and tasks can reach them without
globals.
"""

import asyncio
import logging
from typing import Final, Literal, Optional

from aiohttp import web
from pydantic import AliasChoices, Field, RedisDsn, field_validator
from pydantic_settings import BaseSettings
from redis import asyncio as redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from oauth2_admin.app.metrics import MetricsClient
from oauth2_admin.model.health import HealthGauge

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the administration service.

    Environment variables map onto fields by name. The database and Redis connection strings also accept the
    conventional ``DATABASE_URL`` and ``REDIS_URL`` names.
    """

    debug: bool = False
    """
    Enable debug mode for verbose logging.
    Set with DEBUG=true environment variable.
    """

    app_env: Literal["development", "staging", "production"] = "production"
    """
    Deployment environment. Anti-forgery checks are disabled in development.
    Set with APP_ENV environment variable.
    """

    http_port: int = Field(alias="port", default=5100)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    redis_dsn: RedisDsn = Field(
        "redis://valkey:6379/1?decode_responses=True",
        validation_alias=AliasChoices("redis_dsn", "redis_url"),
    )  # type: ignore
    """
    Redis connection string for the operator session store.
    Set with REDIS_DSN or REDIS_URL environment variables.
    """

    pg_dsn: str = Field(
        "postgresql+asyncpg://postgres:password@db/oauth2",
        validation_alias=AliasChoices("pg_dsn", "database_url"),
    )
    """
    SQLAlchemy async connection string for the record store.
    Set with PG_DSN or DATABASE_URL environment variables.
    """

    create_tables: bool = False
    """
    Create missing tables at startup instead of relying on migrations. Intended for development.
    Set with CREATE_TABLES=true environment variable.
    """

    csrf_header_name: str = "X-CSRF-Token"
    """Request header carrying the anti-forgery token."""

    session_cookie_name: str = "session_id"
    """Cookie holding the operator session id."""

    session_key_prefix: str = "admin_session"
    """Redis hash key prefix for operator sessions. The full key is ``{prefix}:{session_id}``."""

    token_sweep_interval: int = 60
    """
    Seconds between expiry sweeps of the tokens table.
    Set with TOKEN_SWEEP_INTERVAL environment variable.
    """

    audit_event_limit: int = 10
    """
    Number of recent audit events returned by the admin API.
    Set with AUDIT_EVENT_LIMIT environment variable.
    """

    metrics_backend: Literal["telegraf", "none"] = "telegraf"
    """
    Metrics backend selection.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    statsd_prefix: str = "oauth2_admin"
    """
    Prefix for all metric names from this service.
    Set with STATSD_PREFIX environment variable.
    """

    @field_validator("token_sweep_interval", "audit_event_limit")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @property
    def csrf_enabled(self) -> bool:
        return self.app_env != "development"


SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

DatabaseAppKey: Final = web.AppKey("database", AsyncEngine)
"""AppKey for accessing the SQLAlchemy async database engine"""

DatabaseSessionMakerAppKey: Final = web.AppKey(
    "database_session_maker", async_sessionmaker[AsyncSession]
)
"""AppKey for accessing the SQLAlchemy async session factory"""

RedisClientAppKey: Final = web.AppKey("redis_client", redis.Redis)
"""AppKey for accessing the Redis client holding operator sessions"""

HealthGaugeAppKey: Final = web.AppKey("health_gauge", HealthGauge)
"""AppKey for accessing the health monitoring gauge"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for the metrics client"""

TickHealthTaskAppKey: Final = web.AppKey("tick_health_task", asyncio.Task[None])
"""AppKey for the background task that drains the health gauge"""

TokenExpiryTaskAppKey: Final = web.AppKey("token_expiry_task", asyncio.Task[None])
"""AppKey for the background task that removes expired tokens"""
