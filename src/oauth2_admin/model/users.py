"""Provider user account model.

Usernames are globally unique through ``idx_users_username``. The password is only ever stored as an argon2 hash.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from oauth2_admin.model.base import Base, guidpk, str255, utcdatetime

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


class User(Base):
    """A resource owner who can sign in to the provider."""

    __tablename__ = "users"

    guid: Mapped[guidpk]
    username: Mapped[str255]
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[utcdatetime]
    updated_at: Mapped[utcdatetime]

    __table_args__ = (Index("idx_users_username", "username", unique=True),)
