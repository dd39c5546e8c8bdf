"""
Credential management for the signed-in admin.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.core.exceptions import LastCredentialError, NotFoundError
from swordfighters_admin.core.validation import validate_record_id
from swordfighters_admin.models.admin import Admin
from swordfighters_admin.repositories.credential import CredentialRepository

logger = logging.getLogger(__name__)


class CredentialService:
    """List and remove the current admin's security keys."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.credentials = CredentialRepository(session)

    async def list_credentials(self, admin: Admin) -> List[Dict[str, Any]]:
        """Public view of every key, newest first. Key material is never included."""
        credentials = await self.credentials.list_for_admin(admin.id)
        return [c.to_public_dict() for c in credentials]

    async def delete_credential(self, admin: Admin, record_id: Any) -> None:
        """
        Remove one of the admin's keys.

        Raises:
            InvalidInputError: Blank record ID
            NotFoundError: No such key for this admin
            LastCredentialError: It is the admin's only key
        """
        record_id = validate_record_id(record_id)

        credential = await self.credentials.get_for_admin(record_id, admin.id)
        if credential is None:
            raise NotFoundError("Credential not found")

        if not await self.credentials.delete_unless_last(credential.id, admin.id):
            raise LastCredentialError("Cannot delete your last security key")

        remaining = await self.credentials.count_for_admin(admin.id)
        await self.session.commit()

        logger.info(
            "Security key removed",
            extra={"admin_id": admin.id, "credential_record_id": record_id, "remaining": remaining}
        )
