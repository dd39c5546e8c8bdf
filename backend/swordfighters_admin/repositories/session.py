"""
Session repository: server-side admin sessions.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.core.security import generate_session_id
from swordfighters_admin.models.base import utc_now
from swordfighters_admin.models.session import AdminSession


class SessionRepository:
    """
    Repository for admin session data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        admin_id: str,
        ttl: timedelta,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> AdminSession:
        admin_session = AdminSession(
            id=generate_session_id(),
            admin_id=admin_id,
            expires_at=(now or utc_now()) + ttl,
            user_agent=user_agent[:255] if user_agent else None,
            ip_address=ip_address[:64] if ip_address else None,
        )
        self.session.add(admin_session)
        await self.session.flush()
        return admin_session

    async def get_active(
        self,
        session_id: str,
        now: Optional[datetime] = None
    ) -> Optional[AdminSession]:
        """Return the session if it exists and has not expired."""
        stmt = select(AdminSession).where(
            AdminSession.id == session_id,
            AdminSession.expires_at > (now or utc_now()),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete(self, session_id: str) -> int:
        stmt = delete(AdminSession).where(AdminSession.id == session_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        stmt = delete(AdminSession).where(AdminSession.expires_at <= (now or utc_now()))
        result = await self.session.execute(stmt)
        return result.rowcount or 0
