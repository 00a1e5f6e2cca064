"""
Anti-forgery protection for the administration API.

Every state-changing request under ``/api/admin/`` must carry a token in the ``X-CSRF-Token`` header that matches
the ``csrf_token`` bound to the operator's session. The session id arrives in the ``session_id`` cookie and the
session itself is a Redis hash at ``admin_session:{session_id}``, written by the login flow (or by
``oauth2-admin-util bind-csrf-token``). Requests that fail the check are answered with 403 before any handler runs.

In development (``APP_ENV=development``) the check is skipped.
"""

import hmac
import logging
import secrets
from typing import Dict, Optional

from aiohttp import web
from redis import asyncio as redis

from oauth2_admin.app.config import (
    MetricsClientAppKey,
    RedisClientAppKey,
    Settings,
    SettingsAppKey,
)
from oauth2_admin.app.handlers.helpers import ADMIN_SESSION_REQUEST_KEY, error_response
from oauth2_admin.errors import AuthorizationError

logger = logging.getLogger(__name__)

ADMIN_PATH_PREFIX = "/api/admin/"
SAFE_METHODS = frozenset(("GET", "HEAD", "OPTIONS", "TRACE"))
CSRF_TOKEN_FIELD = "csrf_token"


def _normalize(value) -> str:
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


def session_key(settings: Settings, session_id: str) -> str:
    return f"{settings.session_key_prefix}:{session_id}"


async def load_operator_session(
    redis_client: redis.Redis, settings: Settings, session_id: str
) -> Dict[str, str]:
    raw = await redis_client.hgetall(session_key(settings, session_id))
    return {_normalize(k): _normalize(v) for k, v in raw.items()}


async def bind_csrf_token(
    redis_client: redis.Redis,
    settings: Settings,
    session_id: str,
    token: Optional[str] = None,
    actor_id: Optional[str] = None,
    expires_in: Optional[int] = None,
) -> str:
    """Bind an anti-forgery token (a fresh random one unless given) to ``session_id`` and return it."""
    if token is None:
        token = secrets.token_urlsafe(32)
    mapping = {CSRF_TOKEN_FIELD: token}
    if actor_id:
        mapping["actor_id"] = actor_id

    key = session_key(settings, session_id)
    await redis_client.hset(key, mapping=mapping)
    if expires_in:
        await redis_client.expire(key, expires_in)
    return token


def check_csrf_token(
    settings: Settings, presented: Optional[str], session: Dict[str, str]
) -> None:
    if not presented:
        raise AuthorizationError.csrf_token_missing()
    expected = session.get(CSRF_TOKEN_FIELD)
    if not expected:
        raise AuthorizationError.csrf_token_invalid()
    if not hmac.compare_digest(presented.encode(), expected.encode()):
        raise AuthorizationError.csrf_token_invalid()


@web.middleware
async def csrf_middleware(request: web.Request, handler):
    if not request.path.startswith(ADMIN_PATH_PREFIX):
        return await handler(request)

    # Reads never touch the operator session or Redis.
    if request.method in SAFE_METHODS:
        return await handler(request)

    settings = request.app[SettingsAppKey]

    session: Dict[str, str] = {}
    session_id = request.cookies.get(settings.session_cookie_name)
    if session_id:
        session = await load_operator_session(
            request.app[RedisClientAppKey], settings, session_id
        )
    request[ADMIN_SESSION_REQUEST_KEY] = session

    if not settings.csrf_enabled:
        return await handler(request)

    try:
        check_csrf_token(
            settings, request.headers.get(settings.csrf_header_name), session
        )
    except AuthorizationError as e:
        logger.info("Rejected %s %s: %s", request.method, request.path, e.description)
        request.app[MetricsClientAppKey].increment(
            "admin.csrf.rejected", 1, tag_dict={"method": request.method}
        )
        return error_response(e)

    return await handler(request)
