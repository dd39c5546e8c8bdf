"""
FastAPI dependency functions.

Provides the database session, the ceremony verifier, service factories
and the cookie-based current-admin dependency.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from swordfighters_admin.core.config import settings
from swordfighters_admin.core.database import get_db
from swordfighters_admin.core.exceptions import NotAuthenticatedError
from swordfighters_admin.models.admin import Admin
from swordfighters_admin.services.authentication import AuthenticationService
from swordfighters_admin.services.credentials import CredentialService
from swordfighters_admin.services.interfaces.ceremony_verifier import ICeremonyVerifier
from swordfighters_admin.services.registration import RegistrationService
from swordfighters_admin.services.sessions import SessionService
from swordfighters_admin.services.webauthn_verifier import WebAuthnCeremonyVerifier


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


@lru_cache
def get_verifier() -> ICeremonyVerifier:
    """
    Ceremony verifier bound to the configured relying party.

    Tests replace it through ``app.dependency_overrides[get_verifier]``.
    """
    return WebAuthnCeremonyVerifier.from_settings(settings)


def challenge_ttl() -> timedelta:
    return timedelta(seconds=settings.challenge_ttl_seconds)


def get_session_service(db: DatabaseSession) -> SessionService:
    return SessionService(db, ttl=timedelta(minutes=settings.session_expire_minutes))


def get_registration_service(
    db: DatabaseSession,
    verifier: Annotated[ICeremonyVerifier, Depends(get_verifier)],
) -> RegistrationService:
    return RegistrationService(db, verifier, challenge_ttl())


def get_authentication_service(
    db: DatabaseSession,
    verifier: Annotated[ICeremonyVerifier, Depends(get_verifier)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> AuthenticationService:
    return AuthenticationService(db, verifier, challenge_ttl(), sessions)


def get_credential_service(db: DatabaseSession) -> CredentialService:
    return CredentialService(db)


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


async def get_current_admin(
    token: Annotated[Optional[str], Depends(get_session_token)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> Admin:
    """
    Dependency resolving the signed-in admin from the session cookie.

    The cookie's signature and expiry, the server-side session row and the
    admin's active flag are all checked.

    Raises:
        NotAuthenticatedError: 401 on any failure

    Example:
        @router.get("/credentials")
        async def list_credentials(admin: CurrentAdmin):
            ...
    """
    admin = await sessions.resolve(token)
    if admin is None:
        raise NotAuthenticatedError("Not authenticated")
    return admin


CurrentAdmin = Annotated[Admin, Depends(get_current_admin)]
RegistrationServiceDep = Annotated[RegistrationService, Depends(get_registration_service)]
AuthenticationServiceDep = Annotated[AuthenticationService, Depends(get_authentication_service)]
CredentialServiceDep = Annotated[CredentialService, Depends(get_credential_service)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]
