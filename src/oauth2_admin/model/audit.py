"""Audit trail of administrative mutations."""
from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from oauth2_admin.model.base import Base, guidpk, str255, utcdatetime

CLIENT_CREATED = "CLIENT_CREATED"
CLIENT_UPDATED = "CLIENT_UPDATED"
CLIENT_DELETED = "CLIENT_DELETED"
USER_CREATED = "USER_CREATED"
USER_UPDATED = "USER_UPDATED"
USER_DELETED = "USER_DELETED"


class AuditEvent(Base):
    """A single recorded action: who did what to which record, from where."""

    __tablename__ = "audit_events"

    guid: Mapped[guidpk]
    timestamp: Mapped[utcdatetime]
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_id: Mapped[str255]
    target_id: Mapped[str255]
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (Index("idx_audit_events_timestamp", "timestamp"),)
