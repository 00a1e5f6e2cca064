"""Issued token storage model.

Authorization codes, refresh tokens and device codes are written by the token-issuing flow. Only a signature (hash)
of the token value is stored. Records are never updated; the expiry sweep deletes them once ``expires_at`` passes.
"""
from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from oauth2_admin.model.base import Base, guidpk, str255, strlist, utcdatetime

TOKEN_TYPE_AUTHORIZATION_CODE = "auth_code"
TOKEN_TYPE_REFRESH_TOKEN = "refresh_token"
TOKEN_TYPE_DEVICE_CODE = "device_code"


class Token(Base):
    __tablename__ = "tokens"

    guid: Mapped[guidpk]
    signature: Mapped[str255]
    client_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    scopes: Mapped[strlist]
    token_type: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_at: Mapped[utcdatetime]
    created_at: Mapped[utcdatetime]

    __table_args__ = (
        Index("idx_tokens_signature", "signature"),
        Index("idx_tokens_expires_at", "expires_at"),
    )
