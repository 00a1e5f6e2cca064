"""
Unit tests for token storage and expiry in oauth2_admin.store.tokens

Expiry is exercised with an injected clock.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_admin.model.tokens import TOKEN_TYPE_AUTHORIZATION_CODE, TOKEN_TYPE_REFRESH_TOKEN, Token
from oauth2_admin.store.tokens import (
    count_active_tokens,
    find_by_signature,
    is_expired,
    purge_expired_tokens,
    save_token,
)

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_token(signature: str, expires_at: datetime, token_type: str = TOKEN_TYPE_AUTHORIZATION_CODE) -> Token:
    return Token(
        signature=signature,
        client_id="abc123",
        user_id="01J00000000000000000000000",
        scopes=["openid"],
        token_type=token_type,
        expires_at=expires_at,
        created_at=NOW - timedelta(minutes=5),
    )


class TestTokenStore:
    async def test_save_assigns_guid(self, session: AsyncSession):
        async with session.begin():
            token = await save_token(session, make_token("sig-1", NOW + timedelta(minutes=10)))
            assert token.guid

    async def test_find_by_signature(self, session: AsyncSession):
        async with session.begin():
            await save_token(session, make_token("sig-1", NOW + timedelta(minutes=10)))

        async with session.begin():
            found = await find_by_signature(session, "sig-1")
            assert found is not None
            assert found.client_id == "abc123"
            assert await find_by_signature(session, "sig-unknown") is None

    async def test_expired_but_unpurged_token_is_still_readable(self, session: AsyncSession):
        async with session.begin():
            await save_token(session, make_token("sig-old", NOW - timedelta(seconds=1)))

        async with session.begin():
            found = await find_by_signature(session, "sig-old")
            assert found is not None
            assert is_expired(found, NOW)


class TestExpiry:
    def test_boundary_is_expired(self):
        assert is_expired(make_token("s", NOW), NOW)
        assert not is_expired(make_token("s", NOW + timedelta(microseconds=1)), NOW)

    async def test_purge_removes_only_past_tokens(self, session: AsyncSession):
        async with session.begin():
            await save_token(session, make_token("past", NOW - timedelta(hours=1)))
            await save_token(session, make_token("at-now", NOW))
            await save_token(
                session,
                make_token("future", NOW + timedelta(hours=1), TOKEN_TYPE_REFRESH_TOKEN),
            )

        async with session.begin():
            removed = await purge_expired_tokens(session, NOW)
        assert removed == 2

        async with session.begin():
            assert await find_by_signature(session, "past") is None
            assert await find_by_signature(session, "at-now") is None
            assert await find_by_signature(session, "future") is not None

    async def test_count_active_tokens(self, session: AsyncSession):
        async with session.begin():
            await save_token(session, make_token("past", NOW - timedelta(hours=1)))
            await save_token(session, make_token("future", NOW + timedelta(hours=1)))

        async with session.begin():
            assert await count_active_tokens(session, NOW) == 1
