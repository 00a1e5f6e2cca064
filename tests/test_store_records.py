"""
Unit tests for the Record Store Adapter in oauth2_admin.store.records

Covers insert, lookup, listing, partial update, delete and the mapping of unique index violations to
ConflictError.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from ulid import ULID

from oauth2_admin.errors import ConflictError, NotFound
from oauth2_admin.model.base import utc_now
from oauth2_admin.model.clients import Client
from oauth2_admin.model.users import User
from oauth2_admin.store.records import clients, users


def make_user(username: str, role: str = "user") -> User:
    now = utc_now()
    return User(
        guid=str(ULID()),
        username=username,
        hashed_password="$argon2id$placeholder",
        role=role,
        created_at=now,
        updated_at=now,
    )


def make_client(client_id: str, name: str = "Test Client") -> Client:
    now = utc_now()
    return Client(
        guid=str(ULID()),
        client_id=client_id,
        client_secret_hash="$argon2id$placeholder",
        name=name,
        redirect_uris=["https://client.example.com/callback"],
        grant_types=["authorization_code"],
        response_types=["code"],
        scopes=["openid"],
        created_at=now,
        updated_at=now,
    )


class TestInsertAndFind:
    async def test_insert_then_find_by_id(self, session: AsyncSession):
        user = make_user("alice")
        async with session.begin():
            await users.insert(session, user)

        async with session.begin():
            found = await users.find_by_id(session, user.guid)
            assert found.username == "alice"

    async def test_find_by_id_missing(self, session: AsyncSession):
        async with session.begin():
            with pytest.raises(NotFound) as excinfo:
                await users.find_by_id(session, "missing")
        assert excinfo.value.status == 404

    async def test_find_one_missing_returns_none(self, session: AsyncSession):
        async with session.begin():
            assert await clients.find_one(session, "missing") is None

    async def test_find_all_empty(self, session: AsyncSession):
        async with session.begin():
            assert await users.find_all(session) == []

    async def test_find_all_ordered(self, session: AsyncSession):
        async with session.begin():
            for name in ("zed", "amy", "kim"):
                await users.insert(session, make_user(name))

        async with session.begin():
            found = await users.find_all(session, order_by=User.username)
            assert [user.username for user in found] == ["amy", "kim", "zed"]

    async def test_count(self, session: AsyncSession):
        async with session.begin():
            await users.insert(session, make_user("one", role="admin"))
            await users.insert(session, make_user("two"))

        async with session.begin():
            assert await users.count(session) == 2
            assert await users.count(session, User.role == "admin") == 1


class TestUniqueness:
    async def test_duplicate_username_is_conflict(self, session_maker):
        async with session_maker() as session:
            async with session.begin():
                await users.insert(session, make_user("alice"))

        async with session_maker() as session:
            with pytest.raises(ConflictError) as excinfo:
                async with session.begin():
                    await users.insert(session, make_user("alice"))
        assert excinfo.value.kind == "conflict"
        assert "username" in excinfo.value.description

    async def test_duplicate_client_id_is_conflict(self, session_maker):
        async with session_maker() as session:
            async with session.begin():
                await clients.insert(session, make_client("abc123"))

        async with session_maker() as session:
            with pytest.raises(ConflictError):
                async with session.begin():
                    await clients.insert(session, make_client("abc123", name="Other"))

        async with session_maker() as session:
            async with session.begin():
                assert await clients.count(session) == 1

    async def test_ensure_unique(self, session: AsyncSession):
        async with session.begin():
            await users.insert(session, make_user("alice"))
            await users.ensure_unique(session, "username", "bob")
            with pytest.raises(ConflictError):
                await users.ensure_unique(session, "username", "alice")


class TestUpdateAndDelete:
    async def test_partial_update(self, session: AsyncSession):
        client = make_client("abc123")
        async with session.begin():
            await clients.insert(session, client)

        async with session.begin():
            updated = await clients.update(session, "abc123", {"name": "Renamed"})
            assert updated.name == "Renamed"
            assert updated.grant_types == ["authorization_code"]

    async def test_update_missing(self, session: AsyncSession):
        async with session.begin():
            with pytest.raises(NotFound):
                await clients.update(session, "missing", {"name": "x"})

    async def test_update_into_existing_username_is_conflict(self, session_maker):
        first = make_user("alice")
        second = make_user("bob")
        async with session_maker() as session:
            async with session.begin():
                await users.insert(session, first)
                await users.insert(session, second)

        async with session_maker() as session:
            with pytest.raises(ConflictError):
                async with session.begin():
                    await users.update(session, second.guid, {"username": "alice"})

    async def test_delete_twice(self, session: AsyncSession):
        async with session.begin():
            await clients.insert(session, make_client("abc123"))

        async with session.begin():
            await clients.delete(session, "abc123")

        async with session.begin():
            with pytest.raises(NotFound):
                await clients.delete(session, "abc123")
