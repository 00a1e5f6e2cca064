"""
Token storage and expiry.

Tokens are written by the token-issuing flow and removed by the expiry sweep once ``expires_at`` is reached, with no
grace period. The sweep runs on an interval, so a read can still return a token whose ``expires_at`` has passed but
which has not been purged yet. Callers that need correctness rather than display must check :func:`is_expired`.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from ulid import ULID

from oauth2_admin.model.base import as_utc, utc_now
from oauth2_admin.model.tokens import Token
from oauth2_admin.store.records import tokens

logger = logging.getLogger(__name__)


async def save_token(database_session: AsyncSession, token: Token) -> Token:
    if not token.guid:
        token.guid = str(ULID())
    if token.created_at is None:
        token.created_at = utc_now()
    return await tokens.insert(database_session, token)


async def find_by_signature(
    database_session: AsyncSession, signature: str
) -> Optional[Token]:
    """
    Return the newest token stored under ``signature``, if any.

    The signature index is not unique, so several records may match. Expired tokens are returned as-is.
    """
    stmt = (
        select(Token)
        .where(Token.signature == signature)
        .order_by(Token.created_at.desc())
    )
    return (await database_session.scalars(stmt)).first()


def is_expired(token: Token, now: Optional[datetime] = None) -> bool:
    if now is None:
        now = utc_now()
    return as_utc(token.expires_at) <= now


async def count_active_tokens(
    database_session: AsyncSession, now: Optional[datetime] = None
) -> int:
    if now is None:
        now = utc_now()
    return await tokens.count(database_session, Token.expires_at > now)


async def purge_expired_tokens(database_session: AsyncSession, now: datetime) -> int:
    """Delete every token whose ``expires_at`` is at or before ``now``. Returns the number removed."""
    stmt = delete(Token).where(Token.expires_at <= now)
    result = await database_session.execute(stmt)
    removed = result.rowcount or 0
    if removed:
        logger.debug("Purged %d expired tokens", removed)
    return removed
