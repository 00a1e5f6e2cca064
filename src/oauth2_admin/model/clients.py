"""OAuth2 client registration model.

Provides the SQLAlchemy model for registered relying parties. ``client_id`` is unique through
``idx_clients_client_id``; the secret is kept as an argon2 hash and the plaintext is never stored.
"""
from typing import Optional

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from oauth2_admin.model.base import Base, guidpk, str255, str512, strlist, utcdatetime

GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
GRANT_TYPE_CLIENT_CREDENTIALS = "client_credentials"
GRANT_TYPE_REFRESH_TOKEN = "refresh_token"
GRANT_TYPE_DEVICE_CODE = "urn:ietf:params:oauth:grant-type:device_code"
GRANT_TYPE_JWT_BEARER = "urn:ietf:params:oauth:grant-type:jwt-bearer"
GRANT_TYPES = (
    GRANT_TYPE_AUTHORIZATION_CODE,
    GRANT_TYPE_CLIENT_CREDENTIALS,
    GRANT_TYPE_REFRESH_TOKEN,
    GRANT_TYPE_DEVICE_CODE,
    GRANT_TYPE_JWT_BEARER,
)

RESPONSE_TYPES = ("code", "token", "id_token", "none")

# Widths of the name and jwks_url columns.
NAME_MAX_LENGTH = 255
JWKS_URL_MAX_LENGTH = 512


class Client(Base):
    """A registered OAuth2 client.

    ``client_id`` and ``client_secret_hash`` are written once at creation and never change afterwards.
    """

    __tablename__ = "clients"

    guid: Mapped[guidpk]
    client_id: Mapped[str] = mapped_column(String(64), nullable=False)
    client_secret_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str255]
    redirect_uris: Mapped[strlist]
    grant_types: Mapped[strlist]
    response_types: Mapped[strlist]
    scopes: Mapped[strlist]
    jwks_url: Mapped[Optional[str512]]
    created_at: Mapped[utcdatetime]
    updated_at: Mapped[utcdatetime]

    __table_args__ = (Index("idx_clients_client_id", "client_id", unique=True),)

