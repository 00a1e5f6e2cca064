import asyncio
import contextlib
import logging
from time import time
from typing import Optional

from aiohttp import web
import redis.asyncio as redis
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from oauth2_admin.app.config import (
    DatabaseAppKey,
    DatabaseSessionMakerAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    RedisClientAppKey,
    Settings,
    SettingsAppKey,
    TickHealthTaskAppKey,
    TokenExpiryTaskAppKey,
)
from oauth2_admin.app.csrf import ADMIN_PATH_PREFIX, csrf_middleware
from oauth2_admin.app.handlers.clients import (
    handle_create_client,
    handle_delete_client,
    handle_get_client,
    handle_list_clients,
    handle_update_client,
)
from oauth2_admin.app.handlers.dashboard import handle_audit_events, handle_stats
from oauth2_admin.app.handlers.helpers import error_response
from oauth2_admin.app.handlers.internal import (
    handle_internal_alive,
    handle_internal_ready,
)
from oauth2_admin.app.handlers.users import (
    handle_create_user,
    handle_delete_user,
    handle_get_user,
    handle_list_users,
    handle_update_user,
)
from oauth2_admin.app.metrics import create_metrics_client
from oauth2_admin.app.tasks import tick_health_task, token_expiry_task
from oauth2_admin.errors import AdminException, InternalError, MethodNotAllowed, NotFound
from oauth2_admin.model.base import Base
from oauth2_admin.model.health import HealthGauge

logger = logging.getLogger(__name__)


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    engine = create_async_engine(settings.pg_dsn)
    app[DatabaseAppKey] = engine
    app[DatabaseSessionMakerAppKey] = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    if settings.create_tables:
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    redis_pool = redis.ConnectionPool.from_url(str(settings.redis_dsn))
    app[RedisClientAppKey] = redis.Redis(connection_pool=redis_pool)

    metrics_client = create_metrics_client(
        settings.metrics_backend,
        host=settings.statsd_host,
        port=settings.statsd_port,
        prefix=settings.statsd_prefix,
        debug=settings.debug,
    )
    await metrics_client.connect()
    app[MetricsClientAppKey] = metrics_client

    logger.info("Startup complete")

    app[TickHealthTaskAppKey] = asyncio.create_task(tick_health_task(app))
    app[TokenExpiryTaskAppKey] = asyncio.create_task(token_expiry_task(app))

    yield

    logger.info("Shutting down background tasks")

    app[TickHealthTaskAppKey].cancel()
    app[TokenExpiryTaskAppKey].cancel()

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[TickHealthTaskAppKey]

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[TokenExpiryTaskAppKey]

    await app[DatabaseAppKey].dispose()
    await app[RedisClientAppKey].aclose()
    await redis_pool.aclose()
    await app[MetricsClientAppKey].close()


@web.middleware
async def security_headers_middleware(request: web.Request, handler):
    response = await handler(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    if request.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store"
    return response


def _route_path(request: web.Request) -> str:
    # Tag with the route template so that ids do not explode metric cardinality.
    resource = request.match_info.route.resource
    if resource is None:
        return request.path
    return resource.canonical


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    request_path = _route_path(request)

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except web.HTTPException as e:
        response_status_code = e.status
        raise e
    except Exception as e:
        metrics_client.increment(
            "server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


@web.middleware
async def error_middleware(request: web.Request, handler):
    """
    Translate AdminException into its JSON error body. Anything unexpected becomes a generic 500.

    Routing failures under the admin prefix (unknown path, wrong method) get the same JSON body.
    """
    try:
        return await handler(request)
    except AdminException as e:
        if e.status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e.description)
        return error_response(e)
    except web.HTTPNotFound:
        if not request.path.startswith(ADMIN_PATH_PREFIX):
            raise
        return error_response(NotFound.route(request.path))
    except web.HTTPMethodNotAllowed as e:
        if not request.path.startswith(ADMIN_PATH_PREFIX):
            raise
        response = error_response(MethodNotAllowed.method(request.method, request.path))
        response.headers["Allow"] = ",".join(sorted(e.allowed_methods))
        return response
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unexpected error handling %s %s", request.method, request.path)
        await request.app[HealthGaugeAppKey].womp()
        return error_response(InternalError.unexpected())


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except (AdminException, web.HTTPException):
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


def create_app(settings: Settings) -> web.Application:
    """
    Build the application with its routes and middlewares.

    Shared resources (database, Redis, metrics) are not created here; ``start_web_server`` installs them through a
    cleanup context, and tests attach their own.
    """
    app = web.Application(
        middlewares=[
            security_headers_middleware,
            statsd_middleware,
            error_middleware,
            sentry_middleware,
            csrf_middleware,
        ]
    )

    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge()

    if not settings.csrf_enabled:
        logger.info("CSRF protection DISABLED for development environment")

    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
        ]
    )

    app.add_routes(
        [
            web.get("/api/admin/stats", handle_stats),
            web.get("/api/admin/audit-events", handle_audit_events),
            web.get("/api/admin/users", handle_list_users),
            web.post("/api/admin/users", handle_create_user),
            web.get("/api/admin/users/{user_id}", handle_get_user),
            web.put("/api/admin/users/{user_id}", handle_update_user),
            web.delete("/api/admin/users/{user_id}", handle_delete_user),
            web.get("/api/admin/clients", handle_list_clients),
            web.post("/api/admin/clients", handle_create_client),
            web.get("/api/admin/clients/{client_id}", handle_get_client),
            web.put("/api/admin/clients/{client_id}", handle_update_client),
            web.delete("/api/admin/clients/{client_id}", handle_delete_client),
        ]
    )

    return app


async def start_web_server(settings: Optional[Settings] = None):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=False,
            integrations=[AioHttpIntegration()],
        )

    app = create_app(settings)
    app.cleanup_ctx.append(background_tasks)

    return app
