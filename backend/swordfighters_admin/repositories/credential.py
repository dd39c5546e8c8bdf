"""
Credential repository: the per-admin set of registered authenticators.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from swordfighters_admin.core.exceptions import DuplicateCredentialError
from swordfighters_admin.models.base import utc_now
from swordfighters_admin.models.credential import DEFAULT_DEVICE_NAME, WebAuthnCredential


class CredentialRepository:
    """
    Repository for WebAuthn credential data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_admin(self, admin_id: str) -> list[WebAuthnCredential]:
        """All credentials of an admin, newest first."""
        stmt = (
            select(WebAuthnCredential)
            .where(WebAuthnCredential.admin_id == admin_id)
            .order_by(WebAuthnCredential.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_credential_id(self, credential_id: str) -> Optional[WebAuthnCredential]:
        stmt = select(WebAuthnCredential).where(
            WebAuthnCredential.credential_id == credential_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_admin(self, record_id: str, admin_id: str) -> Optional[WebAuthnCredential]:
        """
        Fetch a credential by its record ID, scoped to its owner.

        Returns None when the record does not exist or belongs to another admin.
        """
        stmt = select(WebAuthnCredential).where(
            WebAuthnCredential.id == record_id,
            WebAuthnCredential.admin_id == admin_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_for_admin(self, admin_id: str) -> int:
        stmt = select(func.count()).select_from(WebAuthnCredential).where(
            WebAuthnCredential.admin_id == admin_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def create(
        self,
        admin_id: str,
        credential_id: str,
        public_key: str,
        counter: int = 0,
        transports: Optional[Iterable[str]] = None,
        device_name: str = DEFAULT_DEVICE_NAME
    ) -> WebAuthnCredential:
        """
        Persist a newly registered credential.

        Raises:
            DuplicateCredentialError: If the credential ID is already registered
        """
        if await self.get_by_credential_id(credential_id) is not None:
            raise DuplicateCredentialError("This security key is already registered")

        credential = WebAuthnCredential(
            admin_id=admin_id,
            credential_id=credential_id,
            public_key=public_key,
            counter=max(int(counter or 0), 0),
            transports=list(transports or []),
            device_name=device_name,
        )

        # A concurrent registration may insert the same credential ID first.
        try:
            async with self.session.begin_nested():
                self.session.add(credential)
                await self.session.flush()
        except IntegrityError as e:
            raise DuplicateCredentialError("This security key is already registered") from e
        return credential

    async def record_use(
        self,
        credential: WebAuthnCredential,
        new_counter: int,
        now: Optional[datetime] = None
    ) -> None:
        """Advance the signature counter (never backwards) and stamp last use."""
        credential.counter = max(int(credential.counter or 0), int(new_counter))
        credential.last_used_at = now or utc_now()
        await self.session.flush()

    async def delete_unless_last(self, record_id: str, admin_id: str) -> bool:
        """
        Delete one of an admin's credentials only if another one remains.

        The admin's credential rows are locked first (PostgreSQL; SQLite
        serializes writers) and the remaining-count check is part of the
        DELETE itself, so concurrent deletes cannot empty the set.

        Returns:
            True if the credential was deleted
        """
        await self.session.execute(
            select(WebAuthnCredential.id)
            .where(WebAuthnCredential.admin_id == admin_id)
            .with_for_update()
        )

        sibling = aliased(WebAuthnCredential)
        remaining = (
            select(func.count())
            .select_from(sibling)
            .where(sibling.admin_id == admin_id)
            .scalar_subquery()
        )
        stmt = (
            delete(WebAuthnCredential)
            .where(
                WebAuthnCredential.id == record_id,
                WebAuthnCredential.admin_id == admin_id,
                remaining > 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)
