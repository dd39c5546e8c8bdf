"""Business logic services"""

from swordfighters_admin.services.authentication import AuthenticationResult, AuthenticationService
from swordfighters_admin.services.challenges import ChallengeJanitor, is_valid_challenge
from swordfighters_admin.services.credentials import CredentialService
from swordfighters_admin.services.registration import RegistrationService
from swordfighters_admin.services.sessions import IssuedSession, SessionService
from swordfighters_admin.services.webauthn_verifier import WebAuthnCeremonyVerifier

__all__ = [
    'AuthenticationResult',
    'AuthenticationService',
    'ChallengeJanitor',
    'CredentialService',
    'IssuedSession',
    'RegistrationService',
    'SessionService',
    'WebAuthnCeremonyVerifier',
    'is_valid_challenge',
]
