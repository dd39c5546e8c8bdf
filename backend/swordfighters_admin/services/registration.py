"""
Registration ceremony service.

Provisions an admin on first sight of an email, issues attestation
options bound to a single-use challenge, and persists the verified
credential.

Every terminal outcome of ``complete()`` (success, expiry, verification
failure, duplicate key) clears the admin's challenge and commits that
before any error is raised, so a challenge can never be replayed.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.core.exceptions import (
    AdminAuthError,
    CeremonyVerificationError,
    ChallengeError,
    DuplicateCredentialError,
    VerificationFailedError,
)
from swordfighters_admin.core.validation import (
    sanitize_device_name,
    validate_credential_payload,
    validate_email,
)
from swordfighters_admin.models.admin import Admin
from swordfighters_admin.repositories.admin import AdminRepository
from swordfighters_admin.repositories.credential import CredentialRepository
from swordfighters_admin.services.challenges import is_valid_challenge
from swordfighters_admin.services.interfaces.ceremony_verifier import (
    CredentialDescriptor,
    ICeremonyVerifier,
)

logger = logging.getLogger(__name__)

MAX_TRANSPORTS = 10
MAX_TRANSPORT_LENGTH = 32


def extract_transports(credential: Dict[str, Any]) -> List[str]:
    """
    Pull transport hints out of a registration response.

    Anything that is not a short string is ignored.
    """
    response = credential.get("response")
    if not isinstance(response, dict):
        return []
    transports = response.get("transports")
    if not isinstance(transports, list):
        return []
    return [
        t for t in transports
        if isinstance(t, str) and 0 < len(t) <= MAX_TRANSPORT_LENGTH
    ][:MAX_TRANSPORTS]


class RegistrationService:
    """
    Runs the two halves of the registration ceremony.

    Attributes:
        session: Database session (committed by this service)
        verifier: Ceremony verifier bound to the relying party
        challenge_ttl: Lifetime of an issued challenge
    """

    def __init__(
        self,
        session: AsyncSession,
        verifier: ICeremonyVerifier,
        challenge_ttl: timedelta
    ):
        self.session = session
        self.verifier = verifier
        self.challenge_ttl = challenge_ttl
        self.admins = AdminRepository(session)
        self.credentials = CredentialRepository(session)

    async def begin(self, email: Any, invite_token: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate registration options for an email.

        The admin is created on first sight. Credentials already registered
        to the admin are excluded so the same authenticator cannot be
        enrolled twice. Calling this again replaces the outstanding
        challenge.

        Args:
            email: Raw email value from the request
            invite_token: Accepted for forward compatibility; only logged

        Returns:
            JSON-ready PublicKeyCredentialCreationOptions

        Raises:
            InvalidInputError: If the email is invalid
            AdminAuthError: 500 if the options cannot be generated
        """
        normalized = validate_email(email)

        try:
            admin, created = await self.admins.get_or_create(normalized)
            if created:
                logger.info("Provisioned admin", extra={"admin_id": admin.id})
            if invite_token:
                logger.info("Registration requested with invite token", extra={"admin_id": admin.id})

            existing = await self.credentials.list_for_admin(admin.id)
            exclude = [
                CredentialDescriptor(c.credential_id, list(c.transports or []))
                for c in existing
                if c.credential_id
            ]

            ceremony = self.verifier.registration_options(
                user_id=admin.id.encode("utf-8"),
                user_name=admin.email,
                user_display_name=admin.name or admin.email,
                exclude=exclude,
            )
            await self.admins.set_challenge(admin, ceremony.challenge, self.challenge_ttl)
            await self.session.commit()
        except AdminAuthError:
            raise
        except Exception as e:
            logger.error("Failed to generate registration options", exc_info=True)
            raise AdminAuthError(
                "Failed to generate registration options",
                detail=str(e),
                status_code=500,
            ) from e

        logger.info(
            "Registration options issued",
            extra={"admin_id": admin.id, "excluded": len(exclude)}
        )
        return ceremony.options

    async def complete(
        self,
        email: Any,
        credential: Any,
        device_name: Any = None
    ) -> Dict[str, Any]:
        """
        Verify a registration response and store the new credential.

        Raises:
            InvalidInputError: If the email or credential payload is invalid
            ChallengeError: No outstanding challenge, or it has expired
            VerificationFailedError: The response does not verify
            DuplicateCredentialError: The authenticator is already registered
        """
        normalized = validate_email(email)
        payload = validate_credential_payload(credential)

        admin = await self.admins.get_by_email(normalized)
        pending = admin.challenge if admin is not None else None
        if pending is None:
            raise ChallengeError("Invalid registration session")

        if not is_valid_challenge(admin):
            await self._consume_challenge(admin)
            logger.info("Registration challenge expired", extra={"admin_id": admin.id})
            raise ChallengeError("Registration challenge has expired. Please try again.")

        try:
            verified = self.verifier.verify_registration(
                credential=payload,
                expected_challenge=pending.value,
            )
        except CeremonyVerificationError as e:
            await self._consume_challenge(admin)
            logger.warning(
                "Registration verification failed",
                extra={"admin_id": admin.id, "reason": str(e)}
            )
            raise VerificationFailedError("Registration verification failed", detail=str(e)) from e

        try:
            stored = await self.credentials.create(
                admin_id=admin.id,
                credential_id=verified.credential_id,
                public_key=verified.public_key,
                counter=verified.sign_count,
                transports=extract_transports(payload),
                device_name=sanitize_device_name(device_name),
            )
        except DuplicateCredentialError:
            await self._consume_challenge(admin)
            logger.warning("Duplicate credential registration", extra={"admin_id": admin.id})
            raise

        await self.admins.clear_challenge(admin)
        await self.session.commit()

        logger.info(
            "Security key registered",
            extra={"admin_id": admin.id, "credential_record_id": stored.id}
        )
        return {"verified": True, "message": "Security key registered successfully"}

    async def _consume_challenge(self, admin: Admin) -> None:
        await self.admins.clear_challenge(admin)
        await self.session.commit()
