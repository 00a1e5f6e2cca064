"""
User Administration Service

Manages provider user accounts. Passwords are derived with argon2 before they reach the store and are never echoed
back. Username uniqueness is enforced by the ``idx_users_username`` index, so two concurrent creates for the same
username resolve to one success and one ConflictError.
"""

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from ulid import ULID

from oauth2_admin.errors import ValidationError
from oauth2_admin.model.audit import USER_CREATED, USER_DELETED, USER_UPDATED
from oauth2_admin.model.base import utc_now
from oauth2_admin.model.users import User
from oauth2_admin.service.audit import Actor, record_event
from oauth2_admin.service.credentials import hash_secret, verify_secret
from oauth2_admin.store.records import users

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 1024

Role = Literal["admin", "user"]


def _check_username(v: str) -> str:
    v = v.strip()
    if len(v) < USERNAME_MIN_LENGTH:
        raise ValueError(f"must be at least {USERNAME_MIN_LENGTH} characters")
    if len(v) > USERNAME_MAX_LENGTH:
        raise ValueError(f"must be at most {USERNAME_MAX_LENGTH} characters")
    return v


def _check_password(v: str) -> str:
    if len(v) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(v) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"must be at most {PASSWORD_MAX_LENGTH} characters")
    return v


class CreateUserRequest(BaseModel):
    username: str
    password: str
    role: Role

    @field_validator("username")
    @classmethod
    def username_check(cls, v: str) -> str:
        return _check_username(v)

    @field_validator("password")
    @classmethod
    def password_check(cls, v: str) -> str:
        return _check_password(v)


class UpdateUserRequest(BaseModel):
    """
    A partial user update. Absent fields are left unchanged.

    An empty or null ``password`` also means "keep the current password", which lets the admin console submit its
    edit form without re-entering it.
    """

    id: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None

    @field_validator("username")
    @classmethod
    def username_check(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("must not be null")
        return _check_username(v)

    @field_validator("password")
    @classmethod
    def password_check(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return _check_password(v)

    @field_validator("role")
    @classmethod
    def role_check(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("must not be null")
        return v


class UserView(BaseModel):
    id: str
    username: str
    role: str

    @classmethod
    def from_record(cls, user: User) -> "UserView":
        return cls(id=user.guid, username=user.username, role=user.role)


async def create_user(
    database_session: AsyncSession,
    request: CreateUserRequest,
    actor: Optional[Actor] = None,
) -> UserView:
    now = utc_now()
    user = User(
        guid=str(ULID()),
        username=request.username,
        hashed_password=hash_secret(request.password),
        role=request.role,
        created_at=now,
        updated_at=now,
    )

    async with database_session.begin():
        await users.ensure_unique(database_session, "username", user.username)
        await users.insert(database_session, user)
        await record_event(
            database_session,
            USER_CREATED,
            user.guid,
            f"Created user {user.username} with role {user.role}",
            actor,
        )
        view = UserView.from_record(user)

    logger.info("Created user %s", view.id)
    return view


async def get_user(database_session: AsyncSession, user_id: str) -> UserView:
    async with database_session.begin():
        user = await users.find_by_id(database_session, user_id)
        return UserView.from_record(user)


async def list_users(database_session: AsyncSession) -> List[UserView]:
    async with database_session.begin():
        records = await users.find_all(database_session, order_by=User.username)
        return [UserView.from_record(user) for user in records]


async def update_user(
    database_session: AsyncSession,
    user_id: str,
    request: UpdateUserRequest,
    actor: Optional[Actor] = None,
) -> UserView:
    provided = request.model_fields_set

    async with database_session.begin():
        user = await users.find_by_id(database_session, user_id)

        if "id" in provided and request.id != user.guid:
            raise ValidationError.immutable_field("id")

        patch = {}
        if "username" in provided and request.username != user.username:
            await users.ensure_unique(database_session, "username", request.username)
            patch["username"] = request.username
        if "role" in provided:
            patch["role"] = request.role
        if request.password is not None:
            patch["hashed_password"] = hash_secret(request.password)
        patch["updated_at"] = utc_now()

        user = await users.update(database_session, user_id, patch)
        changed = sorted(
            "password" if field == "hashed_password" else field
            for field in patch
            if field != "updated_at"
        )
        await record_event(
            database_session,
            USER_UPDATED,
            user_id,
            f"Updated user {user.username}: {', '.join(changed) or 'no fields'}",
            actor,
        )
        return UserView.from_record(user)


async def delete_user(
    database_session: AsyncSession,
    user_id: str,
    actor: Optional[Actor] = None,
) -> None:
    async with database_session.begin():
        await users.delete(database_session, user_id)
        await record_event(
            database_session,
            USER_DELETED,
            user_id,
            f"Deleted user {user_id}",
            actor,
        )
    logger.info("Deleted user %s", user_id)


async def verify_user_password(
    database_session: AsyncSession, username: str, password: str
) -> Optional[UserView]:
    """Return the user when ``password`` matches, otherwise None. Unknown usernames and wrong passwords look alike."""
    async with database_session.begin():
        records = await users.find_all(database_session, User.username == username)
        if not records or not verify_secret(password, records[0].hashed_password):
            return None
        return UserView.from_record(records[0])
