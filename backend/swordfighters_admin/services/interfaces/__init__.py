"""Service interface contracts (ABCs)"""

from swordfighters_admin.services.interfaces.ceremony_verifier import (
    CeremonyOptions,
    CredentialDescriptor,
    ICeremonyVerifier,
    VerifiedCredential,
)

__all__ = [
    'ICeremonyVerifier',
    'CeremonyOptions',
    'CredentialDescriptor',
    'VerifiedCredential',
]
