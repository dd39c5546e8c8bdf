"""
WebAuthn ceremony verifier backed by the ``webauthn`` (py_webauthn) library.

The library performs the cryptographic ceremony (client data checks,
attestation and assertion parsing, COSE keys, signatures, counters). This
module only binds it to the configured relying party and converts between
the library's byte-oriented structs and the base64url strings we store.
"""

import json
import logging
from typing import Any, Dict, List

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from swordfighters_admin.core.config import Settings
from swordfighters_admin.core.exceptions import CeremonyVerificationError
from swordfighters_admin.services.interfaces.ceremony_verifier import (
    CeremonyOptions,
    CredentialDescriptor,
    ICeremonyVerifier,
    VerifiedCredential,
)

logger = logging.getLogger(__name__)

# Errors the library (or its parsing of a hostile payload) may raise for a bad response.
_VERIFICATION_ERRORS = (WebAuthnException, ValueError, TypeError, KeyError)


def _to_transports(values: List[str]) -> List[AuthenticatorTransport]:
    transports = []
    for value in values or []:
        try:
            transports.append(AuthenticatorTransport(value))
        except ValueError:
            logger.debug("Ignoring unknown transport hint", extra={"transport": value})
    return transports


def _to_descriptors(credentials: List[CredentialDescriptor]) -> List[PublicKeyCredentialDescriptor]:
    return [
        PublicKeyCredentialDescriptor(
            id=base64url_to_bytes(cred.credential_id),
            transports=_to_transports(cred.transports),
        )
        for cred in credentials
    ]


def _to_ceremony_options(options: Any) -> CeremonyOptions:
    options_dict = json.loads(options_to_json(options))
    return CeremonyOptions(challenge=options_dict["challenge"], options=options_dict)


class WebAuthnCeremonyVerifier(ICeremonyVerifier):
    """
    ICeremonyVerifier implementation for one relying party.

    Registration asks for no attestation, prefers discoverable credentials
    and user verification, and leaves authenticator attachment open so both
    platform authenticators (Touch ID) and roaming keys (YubiKey) work.
    """

    def __init__(
        self,
        rp_id: str,
        rp_name: str,
        origin: str,
        timeout_ms: int = 60000
    ):
        self.rp_id = rp_id
        self.rp_name = rp_name
        self.origin = origin
        self.timeout_ms = timeout_ms

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebAuthnCeremonyVerifier":
        return cls(
            rp_id=settings.rp_id,
            rp_name=settings.rp_name,
            origin=settings.origin,
            timeout_ms=settings.webauthn_timeout_ms,
        )

    def registration_options(
        self,
        user_id: bytes,
        user_name: str,
        user_display_name: str,
        exclude: List[CredentialDescriptor]
    ) -> CeremonyOptions:
        options = generate_registration_options(
            rp_id=self.rp_id,
            rp_name=self.rp_name,
            user_id=user_id,
            user_name=user_name,
            user_display_name=user_display_name,
            timeout=self.timeout_ms,
            attestation=AttestationConveyancePreference.NONE,
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
            exclude_credentials=_to_descriptors(exclude),
        )
        return _to_ceremony_options(options)

    def verify_registration(
        self,
        credential: Dict[str, Any],
        expected_challenge: str
    ) -> VerifiedCredential:
        try:
            verification = verify_registration_response(
                credential=credential,
                expected_challenge=base64url_to_bytes(expected_challenge),
                expected_rp_id=self.rp_id,
                expected_origin=self.origin,
            )
        except _VERIFICATION_ERRORS as e:
            raise CeremonyVerificationError(str(e)) from e

        return VerifiedCredential(
            credential_id=bytes_to_base64url(verification.credential_id),
            public_key=bytes_to_base64url(verification.credential_public_key),
            sign_count=verification.sign_count or 0,
        )

    def authentication_options(
        self,
        allow: List[CredentialDescriptor]
    ) -> CeremonyOptions:
        options = generate_authentication_options(
            rp_id=self.rp_id,
            timeout=self.timeout_ms,
            allow_credentials=_to_descriptors(allow),
            user_verification=UserVerificationRequirement.PREFERRED,
        )
        return _to_ceremony_options(options)

    def verify_authentication(
        self,
        credential: Dict[str, Any],
        expected_challenge: str,
        public_key: str,
        current_counter: int
    ) -> int:
        try:
            verification = verify_authentication_response(
                credential=credential,
                expected_challenge=base64url_to_bytes(expected_challenge),
                expected_rp_id=self.rp_id,
                expected_origin=self.origin,
                credential_public_key=base64url_to_bytes(public_key),
                credential_current_sign_count=current_counter,
            )
        except _VERIFICATION_ERRORS as e:
            raise CeremonyVerificationError(str(e)) from e

        return verification.new_sign_count
