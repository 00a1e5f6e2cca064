import logging
from typing import Dict, Type, TypeVar

from aiohttp import web
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from oauth2_admin.errors import AdminException, ValidationError, from_pydantic
from oauth2_admin.service.audit import Actor

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ADMIN_SESSION_REQUEST_KEY = web.RequestKey("admin_session", Dict[str, str])
"""Request key under which the anti-forgery middleware stores the operator session hash."""


def error_response(e: AdminException) -> web.Response:
    return web.json_response(e.to_dict(), status=e.status)


async def read_request(request: web.Request, model: Type[ModelT]) -> ModelT:
    """Parse the JSON request body into ``model``, raising ValidationError on any problem."""
    try:
        data = await request.read()
    except OSError as e:
        raise ValidationError.invalid_json() from e

    try:
        return model.model_validate_json(data)
    except PydanticValidationError as e:
        raise from_pydantic(e) from e


def operator_session(request: web.Request) -> Dict[str, str]:
    return request.get(ADMIN_SESSION_REQUEST_KEY) or {}


def actor_from_request(request: web.Request) -> Actor:
    """
    Describe the operator behind ``request`` for the audit trail.

    The login flow may store an ``actor_id`` in the operator session hash. Without one the actor is recorded as
    ``admin``.
    """
    session = operator_session(request)
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    ip_address = forwarded_for.split(",")[0].strip() or (request.remote or "")
    return Actor(
        actor_id=session.get("actor_id") or "admin",
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent", ""),
    )
