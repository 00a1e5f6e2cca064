from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_admin.store.records import clients, users
from oauth2_admin.store.tokens import count_active_tokens


class DashboardStats(BaseModel):
    total_clients: int
    total_users: int
    active_tokens: int


async def get_stats(
    database_session: AsyncSession, now: Optional[datetime] = None
) -> DashboardStats:
    """Counts shown on the admin console landing page. Tokens past ``expires_at`` are not active."""
    async with database_session.begin():
        return DashboardStats(
            total_clients=await clients.count(database_session),
            total_users=await users.count(database_session),
            active_tokens=await count_active_tokens(database_session, now),
        )
