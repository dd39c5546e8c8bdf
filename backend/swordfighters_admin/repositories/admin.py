"""
Admin repository: identity lookups and the challenge store.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.models.admin import Admin, PendingChallenge
from swordfighters_admin.models.base import utc_now


class AdminRepository:
    """
    Repository for admin data access.

    Emails passed in must already be normalized (see
    ``core.validation.validate_email``).

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[Admin]:
        stmt = select(Admin).where(Admin.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, admin_id: str) -> Optional[Admin]:
        stmt = select(Admin).where(Admin.id == admin_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        name: Optional[str] = None,
        role: str = "admin",
        is_active: bool = True
    ) -> Admin:
        """
        Create a new admin.

        Args:
            email: Normalized email (must be unique)
            name: Display name; defaults to the email local-part
            role: Authorization role
            is_active: Whether the admin may authenticate

        Returns:
            The flushed Admin with its generated ID
        """
        admin = Admin(
            email=email,
            name=name or email.split("@", 1)[0],
            role=role,
            is_active=is_active,
        )
        self.session.add(admin)
        await self.session.flush()
        return admin

    async def get_or_create(self, email: str) -> tuple[Admin, bool]:
        """
        Look up an admin by email, provisioning one on first sight.

        Returns:
            (admin, created)
        """
        admin = await self.get_by_email(email)
        if admin is not None:
            return admin, False

        # A concurrent request may provision the same email first.
        try:
            async with self.session.begin_nested():
                admin = await self.create(email)
        except IntegrityError:
            admin = await self.get_by_email(email)
            if admin is None:
                raise
            return admin, False
        return admin, True

    async def set_challenge(
        self,
        admin: Admin,
        value: str,
        ttl: timedelta,
        now: Optional[datetime] = None
    ) -> PendingChallenge:
        """Store a new challenge, overwriting any outstanding one."""
        pending = admin.issue_challenge(value, ttl, now=now)
        await self.session.flush()
        return pending

    async def clear_challenge(self, admin: Admin) -> None:
        admin.clear_challenge()
        await self.session.flush()

    async def record_login(self, admin: Admin, now: Optional[datetime] = None) -> None:
        """Stamp last_login_at and consume the challenge."""
        admin.last_login_at = now or utc_now()
        admin.clear_challenge()
        await self.session.flush()

    async def clear_expired_challenges(self, now: Optional[datetime] = None) -> int:
        """
        Clear every challenge whose expiry has passed in one bulk update.

        Returns:
            Number of admin rows cleared
        """
        stmt = (
            update(Admin)
            .where(Admin.challenge_expires_at.is_not(None))
            .where(Admin.challenge_expires_at <= (now or utc_now()))
            .values(current_challenge=None, challenge_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
