"""
Ceremony verifier interface.

Defines the contract between the ceremony services and the library that
implements WebAuthn option generation and response verification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class CredentialDescriptor:
    """
    A credential the browser should include or exclude.

    Attributes:
        credential_id: base64url credential ID
        transports: Transport hints (usb, nfc, ble, hybrid, internal, ...)
    """
    credential_id: str
    transports: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CeremonyOptions:
    """
    Options for one ceremony.

    Attributes:
        challenge: base64url challenge embedded in ``options``
        options: JSON-ready options dict for the browser
    """
    challenge: str
    options: Dict[str, Any]


@dataclass(frozen=True)
class VerifiedCredential:
    """
    Result of a successful registration verification.

    Attributes:
        credential_id: base64url credential ID
        public_key: base64url COSE public key
        sign_count: Initial signature counter
    """
    credential_id: str
    public_key: str
    sign_count: int


class ICeremonyVerifier(ABC):
    """
    Abstract interface for WebAuthn ceremonies.

    Implementations are bound to one relying party (ID, name, expected
    origin). All methods are synchronous CPU-bound work. Verification
    failures of any kind (origin, RP ID, challenge, signature, counter,
    malformed payload) raise ``CeremonyVerificationError``.
    """

    @abstractmethod
    def registration_options(
        self,
        user_id: bytes,
        user_name: str,
        user_display_name: str,
        exclude: List[CredentialDescriptor]
    ) -> CeremonyOptions:
        """
        Generate registration (attestation) options.

        Args:
            user_id: Opaque user handle
            user_name: Account name shown by the authenticator (email)
            user_display_name: Friendly name
            exclude: Credentials already registered to this admin, so the
                same authenticator cannot be registered twice
        """

    @abstractmethod
    def verify_registration(
        self,
        credential: Dict[str, Any],
        expected_challenge: str
    ) -> VerifiedCredential:
        """
        Verify a registration response against the stored challenge.

        Raises:
            CeremonyVerificationError: On any mismatch
        """

    @abstractmethod
    def authentication_options(
        self,
        allow: List[CredentialDescriptor]
    ) -> CeremonyOptions:
        """
        Generate authentication (assertion) options limited to ``allow``.
        """

    @abstractmethod
    def verify_authentication(
        self,
        credential: Dict[str, Any],
        expected_challenge: str,
        public_key: str,
        current_counter: int
    ) -> int:
        """
        Verify an authentication response with the stored public key.

        Returns:
            The new signature counter reported by the authenticator

        Raises:
            CeremonyVerificationError: On any mismatch
        """
