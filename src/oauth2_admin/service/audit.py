"""Audit trail of administrative mutations.

Events are written inside the same transaction as the mutation they describe, so a committed change always has its
audit record and a rolled back change never does.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from ulid import ULID

from oauth2_admin.model.audit import AuditEvent
from oauth2_admin.model.base import as_utc, utc_now
from oauth2_admin.store.records import RecordStore

audit_events = RecordStore(AuditEvent, AuditEvent.guid, "AuditEvent")


@dataclass(frozen=True)
class Actor:
    """Who performed an action and from where. Handlers build this from the request."""

    actor_id: str = "system"
    ip_address: str = ""
    user_agent: str = ""


SYSTEM = Actor()


class AuditEventView(BaseModel):
    timestamp: datetime
    event_type: str
    actor_id: str
    target_id: str
    details: str

    @classmethod
    def from_record(cls, event: AuditEvent) -> "AuditEventView":
        return cls(
            timestamp=as_utc(event.timestamp),
            event_type=event.event_type,
            actor_id=event.actor_id,
            target_id=event.target_id,
            details=event.details,
        )


async def record_event(
    database_session: AsyncSession,
    event_type: str,
    target_id: str,
    details: str,
    actor: Optional[Actor] = None,
) -> AuditEvent:
    """Add an audit event to the caller's open transaction."""
    if actor is None:
        actor = SYSTEM
    event = AuditEvent(
        guid=str(ULID()),
        timestamp=utc_now(),
        event_type=event_type,
        actor_id=actor.actor_id,
        target_id=target_id,
        ip_address=actor.ip_address[:64],
        user_agent=actor.user_agent[:512],
        details=details,
    )
    return await audit_events.insert(database_session, event)


async def list_recent_events(
    database_session: AsyncSession, limit: int = 10
) -> List[AuditEventView]:
    async with database_session.begin():
        events = await audit_events.find_all(
            database_session,
            order_by=AuditEvent.timestamp.desc(),
            limit=limit,
        )
        return [AuditEventView.from_record(event) for event in events]
