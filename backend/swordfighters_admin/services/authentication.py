"""
Authentication ceremony service.

Issues assertion options limited to the admin's registered keys and, on a
verified response, advances the key's signature counter, records the
login and opens a server-side session.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.core.exceptions import (
    AdminAuthError,
    CeremonyVerificationError,
    ChallengeError,
    ForbiddenError,
    NoCredentialsError,
    NotFoundError,
    VerificationFailedError,
)
from swordfighters_admin.core.validation import validate_credential_payload, validate_email
from swordfighters_admin.models.admin import Admin
from swordfighters_admin.repositories.admin import AdminRepository
from swordfighters_admin.repositories.credential import CredentialRepository
from swordfighters_admin.services.challenges import is_valid_challenge
from swordfighters_admin.services.interfaces.ceremony_verifier import (
    CredentialDescriptor,
    ICeremonyVerifier,
)
from swordfighters_admin.services.sessions import IssuedSession, SessionService

logger = logging.getLogger(__name__)


@dataclass
class AuthenticationResult:
    """
    Outcome of a successful authentication.

    Attributes:
        admin: Client-safe admin profile (id, email, name, role)
        issued: The new session and its cookie token
    """
    admin: Dict[str, Any]
    issued: IssuedSession


class AuthenticationService:
    """
    Runs the two halves of the authentication ceremony.

    Attributes:
        session: Database session (committed by this service)
        verifier: Ceremony verifier bound to the relying party
        challenge_ttl: Lifetime of an issued challenge
        sessions: Session service used to open the login session
    """

    def __init__(
        self,
        session: AsyncSession,
        verifier: ICeremonyVerifier,
        challenge_ttl: timedelta,
        sessions: SessionService
    ):
        self.session = session
        self.verifier = verifier
        self.challenge_ttl = challenge_ttl
        self.sessions = sessions
        self.admins = AdminRepository(session)
        self.credentials = CredentialRepository(session)

    async def begin(self, email: Any) -> Dict[str, Any]:
        """
        Generate authentication options for a known, active admin.

        Raises:
            InvalidInputError: If the email is invalid
            NotFoundError: Unknown admin
            ForbiddenError: Inactive admin
            NoCredentialsError: Admin has no registered key
        """
        normalized = validate_email(email)

        admin = await self.admins.get_by_email(normalized)
        if admin is None:
            raise NotFoundError("Admin not found")
        if not admin.is_active:
            raise ForbiddenError("Account is inactive")

        registered = await self.credentials.list_for_admin(admin.id)
        allow = [
            CredentialDescriptor(c.credential_id, list(c.transports or []))
            for c in registered
            if c.credential_id
        ]
        if not allow:
            raise NoCredentialsError("No security keys registered. Please register a key first.")

        try:
            ceremony = self.verifier.authentication_options(allow=allow)
            await self.admins.set_challenge(admin, ceremony.challenge, self.challenge_ttl)
            await self.session.commit()
        except AdminAuthError:
            raise
        except Exception as e:
            logger.error("Failed to generate authentication options", exc_info=True)
            raise AdminAuthError(
                "Failed to generate authentication options",
                detail=str(e),
                status_code=500,
            ) from e

        logger.info(
            "Authentication options issued",
            extra={"admin_id": admin.id, "allowed": len(allow)}
        )
        return ceremony.options

    async def complete(
        self,
        email: Any,
        credential: Any,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> AuthenticationResult:
        """
        Verify an authentication response and open a session.

        Raises:
            InvalidInputError: If the email or credential payload is invalid
            ChallengeError: No outstanding challenge, or it has expired
            ForbiddenError: The admin was deactivated mid-ceremony
            NotFoundError: The asserted credential is not one of the admin's (400)
            VerificationFailedError: The assertion does not verify (401)
        """
        normalized = validate_email(email)
        payload = validate_credential_payload(credential)

        admin = await self.admins.get_by_email(normalized)
        pending = admin.challenge if admin is not None else None
        if pending is None:
            raise ChallengeError("Invalid authentication session")

        if not admin.is_active:
            await self._consume_challenge(admin)
            raise ForbiddenError("Account is inactive")

        if not is_valid_challenge(admin):
            await self._consume_challenge(admin)
            logger.info("Authentication challenge expired", extra={"admin_id": admin.id})
            raise ChallengeError("Authentication challenge has expired. Please try again.")

        credential_id = payload.get("id")
        stored = None
        if isinstance(credential_id, str) and credential_id:
            stored = await self.credentials.get_by_credential_id(credential_id)
        if stored is None or stored.admin_id != admin.id:
            await self._consume_challenge(admin)
            logger.warning("Assertion for unknown credential", extra={"admin_id": admin.id})
            raise NotFoundError("Credential not found", status_code=400)

        try:
            new_counter = self.verifier.verify_authentication(
                credential=payload,
                expected_challenge=pending.value,
                public_key=stored.public_key,
                current_counter=stored.counter or 0,
            )
        except CeremonyVerificationError as e:
            await self._consume_challenge(admin)
            logger.warning(
                "Authentication verification failed",
                extra={"admin_id": admin.id, "reason": str(e)}
            )
            raise VerificationFailedError(
                "Authentication failed",
                detail=str(e),
                status_code=401,
            ) from e

        await self.credentials.record_use(stored, new_counter)
        await self.admins.record_login(admin)
        issued = await self.sessions.issue(admin, user_agent=user_agent, ip_address=ip_address)
        await self.session.commit()

        logger.info(
            "Admin authenticated",
            extra={"admin_id": admin.id, "credential_record_id": stored.id}
        )
        return AuthenticationResult(admin=admin.public_profile(), issued=issued)

    async def _consume_challenge(self, admin: Admin) -> None:
        await self.admins.clear_challenge(admin)
        await self.session.commit()
