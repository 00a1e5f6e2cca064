"""
Record Store Adapter

A uniform interface over the persisted Users, Clients and Tokens. Each :class:`RecordStore` wraps one mapped table and
one lookup key. Every call takes the caller's ``AsyncSession`` so that the caller decides the transaction boundary;
the adapter only flushes, it never commits.

Uniqueness is the store's job. ``insert`` and ``update`` flush immediately and translate the unique index violation
raised by the database into :class:`ConflictError`. Two concurrent inserts racing on the same ``username`` or
``client_id`` therefore resolve to exactly one success, without any application-level locking.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from oauth2_admin.errors import ConflictError, NotFound
from oauth2_admin.model.base import Base
from oauth2_admin.model.clients import Client
from oauth2_admin.model.tokens import Token
from oauth2_admin.model.users import User

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Base)


class RecordStore(Generic[RecordT]):
    """
    Store operations for one record type.

    Args:
        model: The mapped class this store reads and writes.
        key: The attribute used by ``find_by_id``, ``update`` and ``delete``.
        label: Human-readable record name used in error descriptions.
        unique_fields: Fields backed by a unique index. Used to name the field in conflict errors.
    """

    def __init__(
        self,
        model: Type[RecordT],
        key: InstrumentedAttribute,
        label: str,
        unique_fields: Sequence[str] = (),
    ) -> None:
        self.model = model
        self.key = key
        self.label = label
        self.unique_fields = tuple(unique_fields)

    async def ensure_unique(
        self, database_session: AsyncSession, field: str, value: Any
    ) -> None:
        """
        Raise ConflictError if a record already holds ``value`` in ``field``.

        This is an early, friendlier check only. The unique index remains the authority, and ``insert`` still
        reports a conflict when a concurrent writer wins between this read and the flush.
        """
        stmt = select(self.model).where(getattr(self.model, field) == value).limit(1)
        existing = (await database_session.scalars(stmt)).first()
        if existing is not None:
            raise ConflictError.duplicate(self.label, field)

    async def insert(self, database_session: AsyncSession, record: RecordT) -> RecordT:
        database_session.add(record)
        await self._flush(database_session)
        return record

    async def find_by_id(self, database_session: AsyncSession, key: str) -> RecordT:
        record = await self.find_one(database_session, key)
        if record is None:
            raise NotFound.record(self.label, key)
        return record

    async def find_one(
        self, database_session: AsyncSession, key: str
    ) -> Optional[RecordT]:
        stmt = select(self.model).where(self.key == key)
        return (await database_session.scalars(stmt)).first()

    async def find_all(
        self,
        database_session: AsyncSession,
        *criteria: Any,
        order_by: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> List[RecordT]:
        stmt = select(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await database_session.scalars(stmt)).all())

    async def update(
        self, database_session: AsyncSession, key: str, patch: Dict[str, Any]
    ) -> RecordT:
        """
        Apply ``patch`` to the record identified by ``key``.

        Each key in ``patch`` replaces the stored attribute; attributes not in ``patch`` are left unchanged. There is
        no version check, so the last writer wins.
        """
        record = await self.find_by_id(database_session, key)
        for field, value in patch.items():
            setattr(record, field, value)
        await self._flush(database_session)
        return record

    async def delete(self, database_session: AsyncSession, key: str) -> None:
        record = await self.find_by_id(database_session, key)
        await database_session.delete(record)
        await database_session.flush()

    async def count(self, database_session: AsyncSession, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int((await database_session.execute(stmt)).scalar_one())

    async def _flush(self, database_session: AsyncSession) -> None:
        try:
            await database_session.flush()
        except IntegrityError as e:
            logger.info("%s write rejected by a uniqueness constraint", self.label)
            raise self._conflict(e) from e

    def _conflict(self, e: IntegrityError) -> ConflictError:
        message = str(e.orig) if e.orig is not None else str(e)
        for field in self.unique_fields:
            if field in message:
                return ConflictError.duplicate(self.label, field)
        if len(self.unique_fields) == 1:
            return ConflictError.duplicate(self.label, self.unique_fields[0])
        return ConflictError.duplicate(self.label)


users = RecordStore(User, User.guid, "User", unique_fields=("username",))
clients = RecordStore(Client, Client.client_id, "Client", unique_fields=("client_id",))
tokens = RecordStore(Token, Token.guid, "Token")
