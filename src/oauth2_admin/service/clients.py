"""
Client Administration Service

Registers, reads, updates and removes OAuth2 clients. The server generates ``client_id`` and the client secret; the
secret is returned in plaintext exactly once, by :func:`create_client`, and only its argon2 hash is stored.

Create and update use distinct request models. :class:`CreateClientRequest` has no identifier or secret fields at
all. :class:`UpdateClientRequest` treats every field as optional and applies only the fields present in the payload.
It accepts ``client_id`` and ``client_secret`` solely so that an attempt to change them is rejected instead of being
silently ignored.
"""

import logging
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from ulid import ULID

from oauth2_admin.errors import ValidationError
from oauth2_admin.model.audit import CLIENT_CREATED, CLIENT_DELETED, CLIENT_UPDATED
from oauth2_admin.model.base import utc_now
from oauth2_admin.model.clients import (
    GRANT_TYPES,
    JWKS_URL_MAX_LENGTH,
    NAME_MAX_LENGTH,
    RESPONSE_TYPES,
    Client,
)
from oauth2_admin.service.audit import Actor, record_event
from oauth2_admin.service.credentials import (
    generate_client_id,
    generate_client_secret,
    hash_secret,
    verify_secret,
)
from oauth2_admin.service.forms import (
    invalid_uris,
    is_absolute_uri,
    optional_url,
    parse_redirect_uris,
    parse_scopes,
    parse_tokens,
    unknown_tokens,
)
from oauth2_admin.store.records import clients

logger = logging.getLogger(__name__)

MUTABLE_CLIENT_FIELDS = (
    "name",
    "redirect_uris",
    "grant_types",
    "response_types",
    "scopes",
    "jwks_url",
)


def _free_text(value: Any, parser: Callable[[Any], List[str]]) -> Any:
    # Anything that is not text is left for pydantic's own type check to reject.
    if isinstance(value, str):
        return parser(value)
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return parser(value)
    return value


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("must not be null")
    return value


class ClientFields(BaseModel):
    """Shaping and validation rules shared by the create and update request models."""

    @field_validator("redirect_uris", mode="before", check_fields=False)
    @classmethod
    def shape_redirect_uris(cls, v: Any) -> Any:
        return _free_text(v, parse_redirect_uris)

    @field_validator("grant_types", "response_types", mode="before", check_fields=False)
    @classmethod
    def shape_tokens(cls, v: Any) -> Any:
        return _free_text(v, parse_tokens)

    @field_validator("scopes", mode="before", check_fields=False)
    @classmethod
    def shape_scopes(cls, v: Any) -> Any:
        return _free_text(v, parse_scopes)

    @field_validator("name", check_fields=False)
    @classmethod
    def check_name(cls, v: Optional[str]) -> str:
        v = _not_null(v).strip()
        if not v:
            raise ValueError("must not be blank")
        if len(v) > NAME_MAX_LENGTH:
            raise ValueError(f"must be at most {NAME_MAX_LENGTH} characters")
        return v

    @field_validator("redirect_uris", check_fields=False)
    @classmethod
    def check_redirect_uris(cls, v: Optional[List[str]]) -> List[str]:
        if not _not_null(v):
            raise ValueError("at least one redirect URI is required")
        bad = invalid_uris(v)
        if bad:
            raise ValueError(f"not an absolute URI: {', '.join(bad)}")
        return v

    @field_validator("grant_types", check_fields=False)
    @classmethod
    def check_grant_types(cls, v: Optional[List[str]]) -> List[str]:
        if not _not_null(v):
            raise ValueError("at least one grant type is required")
        unknown = unknown_tokens(v, GRANT_TYPES)
        if unknown:
            raise ValueError(f"unsupported grant type: {', '.join(unknown)}")
        return v

    @field_validator("response_types", check_fields=False)
    @classmethod
    def check_response_types(cls, v: Optional[List[str]]) -> List[str]:
        unknown = unknown_tokens(_not_null(v), RESPONSE_TYPES)
        if unknown:
            raise ValueError(f"unsupported response type: {', '.join(unknown)}")
        return v

    @field_validator("scopes", check_fields=False)
    @classmethod
    def check_scopes(cls, v: Optional[List[str]]) -> List[str]:
        return _not_null(v)

    @field_validator("jwks_url", check_fields=False)
    @classmethod
    def check_jwks_url(cls, v: Optional[str]) -> Optional[str]:
        v = optional_url(v)
        if v is not None and len(v) > JWKS_URL_MAX_LENGTH:
            raise ValueError(f"must be at most {JWKS_URL_MAX_LENGTH} characters")
        if v is not None and not (
            is_absolute_uri(v) and v.lower().startswith(("https://", "http://"))
        ):
            raise ValueError("must be an absolute http(s) URL")
        return v


class CreateClientRequest(ClientFields):
    name: str
    redirect_uris: List[str]
    grant_types: List[str]
    response_types: List[str] = []
    scopes: List[str] = []
    jwks_url: Optional[str] = None


class UpdateClientRequest(ClientFields):
    name: Optional[str] = None
    redirect_uris: Optional[List[str]] = None
    grant_types: Optional[List[str]] = None
    response_types: Optional[List[str]] = None
    scopes: Optional[List[str]] = None
    jwks_url: Optional[str] = None

    # Accepted only to be compared against the stored values.
    client_id: Optional[str] = None
    client_secret: Optional[str] = None


class ClientView(BaseModel):
    client_id: str
    name: str
    redirect_uris: List[str]
    grant_types: List[str]
    response_types: List[str]
    scopes: List[str]
    jwks_url: Optional[str] = None

    @classmethod
    def from_record(cls, client: Client) -> "ClientView":
        return cls(
            client_id=client.client_id,
            name=client.name,
            redirect_uris=list(client.redirect_uris),
            grant_types=list(client.grant_types),
            response_types=list(client.response_types),
            scopes=list(client.scopes),
            jwks_url=client.jwks_url,
        )


class CreatedClient(ClientView):
    """The view returned by registration. This is the only place the plaintext secret ever appears."""

    client_secret: str


async def create_client(
    database_session: AsyncSession,
    request: CreateClientRequest,
    actor: Optional[Actor] = None,
) -> CreatedClient:
    now = utc_now()
    client_secret = generate_client_secret()
    client = Client(
        guid=str(ULID()),
        client_id=generate_client_id(),
        client_secret_hash=hash_secret(client_secret),
        name=request.name,
        redirect_uris=list(request.redirect_uris),
        grant_types=list(request.grant_types),
        response_types=list(request.response_types),
        scopes=list(request.scopes),
        jwks_url=request.jwks_url,
        created_at=now,
        updated_at=now,
    )

    async with database_session.begin():
        await clients.insert(database_session, client)
        await record_event(
            database_session,
            CLIENT_CREATED,
            client.client_id,
            f"Created client {client.name}",
            actor,
        )
        view = ClientView.from_record(client)

    logger.info("Registered client %s", view.client_id)
    return CreatedClient(**view.model_dump(), client_secret=client_secret)


async def get_client(database_session: AsyncSession, client_id: str) -> ClientView:
    async with database_session.begin():
        client = await clients.find_by_id(database_session, client_id)
        return ClientView.from_record(client)


async def list_clients(database_session: AsyncSession) -> List[ClientView]:
    async with database_session.begin():
        records = await clients.find_all(database_session, order_by=Client.name)
        return [ClientView.from_record(client) for client in records]


async def update_client(
    database_session: AsyncSession,
    client_id: str,
    request: UpdateClientRequest,
    actor: Optional[Actor] = None,
) -> ClientView:
    """
    Apply the fields present in ``request`` to an existing client.

    Absent fields keep their stored values. A present ``client_id`` or ``client_secret`` that differs from the stored
    one fails with ValidationError and nothing is written.
    """
    provided = request.model_fields_set

    async with database_session.begin():
        client = await clients.find_by_id(database_session, client_id)

        if "client_id" in provided and request.client_id != client.client_id:
            raise ValidationError.immutable_field("client_id")
        if "client_secret" in provided and (
            request.client_secret is None
            or not verify_secret(request.client_secret, client.client_secret_hash)
        ):
            raise ValidationError.immutable_field("client_secret")

        patch = {
            field: getattr(request, field)
            for field in MUTABLE_CLIENT_FIELDS
            if field in provided
        }
        patch["updated_at"] = utc_now()

        client = await clients.update(database_session, client_id, patch)
        changed = sorted(field for field in patch if field != "updated_at")
        await record_event(
            database_session,
            CLIENT_UPDATED,
            client_id,
            f"Updated client {client.name}: {', '.join(changed) or 'no fields'}",
            actor,
        )
        return ClientView.from_record(client)


async def delete_client(
    database_session: AsyncSession,
    client_id: str,
    actor: Optional[Actor] = None,
) -> None:
    async with database_session.begin():
        await clients.delete(database_session, client_id)
        await record_event(
            database_session,
            CLIENT_DELETED,
            client_id,
            f"Deleted client {client_id}",
            actor,
        )
    logger.info("Removed client %s", client_id)


async def verify_client_secret(
    database_session: AsyncSession, client_id: str, client_secret: str
) -> bool:
    """Check a presented secret against the stored hash. Unknown clients never verify."""
    async with database_session.begin():
        client = await clients.find_one(database_session, client_id)
        if client is None:
            return False
        return verify_secret(client_secret, client.client_secret_hash)
