from datetime import timedelta
from unittest.mock import Mock

from aiohttp import web

from oauth2_admin.app.config import (
    DatabaseSessionMakerAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
)
from oauth2_admin.app.tasks import sweep_expired_tokens
from oauth2_admin.model.base import utc_now
from oauth2_admin.model.health import HealthGauge
from oauth2_admin.model.tokens import TOKEN_TYPE_AUTHORIZATION_CODE, Token
from oauth2_admin.store.tokens import find_by_signature, save_token


async def test_sweep_expired_tokens(session_maker):
    metrics_client = Mock()
    app = web.Application()
    app[DatabaseSessionMakerAppKey] = session_maker
    app[MetricsClientAppKey] = metrics_client
    app[HealthGaugeAppKey] = HealthGauge()

    now = utc_now()
    async with session_maker() as session:
        async with session.begin():
            for signature, offset in (("old", -3600), ("new", 3600)):
                await save_token(
                    session,
                    Token(
                        signature=signature,
                        client_id="abc",
                        user_id="",
                        scopes=["openid"],
                        token_type=TOKEN_TYPE_AUTHORIZATION_CODE,
                        expires_at=now + timedelta(seconds=offset),
                    ),
                )

    assert await sweep_expired_tokens(app) == 1
    metrics_client.increment.assert_called_once_with("task.token_expiry.removed", 1)

    async with session_maker() as session:
        async with session.begin():
            assert await find_by_signature(session, "old") is None
            assert await find_by_signature(session, "new") is not None


class TestHealthGauge:
    async def test_threshold(self):
        gauge = HealthGauge(health_threshold=2)
        assert await gauge.is_healthy()
        await gauge.womp(3)
        assert not await gauge.is_healthy()
        await gauge.tick()
        assert await gauge.is_healthy()

    async def test_tick_floor(self):
        gauge = HealthGauge()
        await gauge.tick()
        assert await gauge.womp() == 1
