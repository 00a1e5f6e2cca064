import asyncio
import logging
from typing import NoReturn

from aiohttp import web
import sentry_sdk

from oauth2_admin.app.config import (
    DatabaseSessionMakerAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    SettingsAppKey,
)
from oauth2_admin.model.base import utc_now
from oauth2_admin.store.tokens import purge_expired_tokens

logger = logging.getLogger(__name__)


async def tick_health_task(app: web.Application) -> NoReturn:
    """
    Tick the health gauge every 30 seconds, reducing the health score by 1 each time.
    """

    logger.info("Starting health gauge task")

    health_gauge = app[HealthGaugeAppKey]
    while True:
        await health_gauge.tick()
        await asyncio.sleep(30)


async def sweep_expired_tokens(app: web.Application) -> int:
    """Run one expiry pass over the tokens table and report how many records were removed."""
    database_session_maker = app[DatabaseSessionMakerAppKey]
    metrics_client = app[MetricsClientAppKey]

    now = utc_now()
    async with database_session_maker() as database_session:
        async with database_session.begin():
            removed = await purge_expired_tokens(database_session, now)

    if removed > 0:
        logger.info("Removed %d expired tokens", removed)
    metrics_client.increment("task.token_expiry.removed", removed)
    return removed


async def token_expiry_task(app: web.Application) -> NoReturn:
    """
    Background task that deletes tokens once their ``expires_at`` has passed.

    Runs every ``TOKEN_SWEEP_INTERVAL`` seconds. Between passes an expired token can still be read, which is why
    ``store.tokens.is_expired`` exists.
    """
    logger.info("Starting token expiry task")

    settings = app[SettingsAppKey]
    health_gauge = app[HealthGaugeAppKey]

    while True:
        try:
            await sweep_expired_tokens(app)
        except Exception as e:
            sentry_sdk.capture_exception(e)
            logger.exception("Token expiry sweep failed")
            await health_gauge.womp()

        await asyncio.sleep(settings.token_sweep_interval)
