"""
Session service: issue, resolve and revoke server-side admin sessions.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.core.security import create_session_token, decode_session_token
from swordfighters_admin.models.admin import Admin
from swordfighters_admin.models.session import AdminSession
from swordfighters_admin.repositories.admin import AdminRepository
from swordfighters_admin.repositories.session import SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class IssuedSession:
    """A freshly created session and the signed token for its cookie."""
    session: AdminSession
    token: str


class SessionService:
    """
    Binds browser cookies to server-side session rows.

    Attributes:
        session: Database session
        ttl: Lifetime of new sessions
    """

    def __init__(self, session: AsyncSession, ttl: timedelta):
        self.session = session
        self.ttl = ttl
        self.sessions = SessionRepository(session)
        self.admins = AdminRepository(session)

    async def issue(
        self,
        admin: Admin,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> IssuedSession:
        """Create a session row for the admin. The caller commits."""
        admin_session = await self.sessions.create(
            admin_id=admin.id,
            ttl=self.ttl,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        token = create_session_token(admin.id, admin_session.id, admin_session.expires_at)
        logger.info("Session issued", extra={"admin_id": admin.id})
        return IssuedSession(session=admin_session, token=token)

    async def resolve(self, token: Optional[str]) -> Optional[Admin]:
        """
        Return the admin behind a session token, or None.

        The token signature and expiry, the session row, its owner and the
        admin's active flag must all check out.
        """
        if not token:
            return None

        token_data = decode_session_token(token)
        if token_data is None:
            return None

        admin_session = await self.sessions.get_active(token_data.session_id)
        if admin_session is None or admin_session.admin_id != token_data.admin_id:
            return None

        admin = await self.admins.get_by_id(admin_session.admin_id)
        if admin is None or not admin.is_active:
            return None
        return admin

    async def revoke(self, token: Optional[str]) -> bool:
        """Delete the session named by the token, if any, and commit."""
        if not token:
            return False

        token_data = decode_session_token(token)
        if token_data is None:
            return False

        deleted = await self.sessions.delete(token_data.session_id)
        await self.session.commit()
        if deleted:
            logger.info("Session revoked", extra={"admin_id": token_data.admin_id})
        return bool(deleted)
