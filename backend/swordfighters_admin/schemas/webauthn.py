"""
Pydantic schemas for the WebAuthn ceremony and credential endpoints.

Request models reject unknown fields and use strict string types so a
number or object sent as an email fails validation (400) instead of being
coerced. Deeper checks (trimming, format, empty values) happen in
``core.validation`` so the client gets a precise reason.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class _CeremonyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: StrictStr = Field(
        max_length=254,
        description="Admin email (trimmed and lower-cased server side)"
    )


class RegisterOptionsRequest(_CeremonyRequest):
    """
    Body of POST /webauthn/register/options.

    Attributes:
        email: Admin email; the admin is created on first sight
        invite_token: Reserved for invite-only enrollment (not enforced)
    """
    invite_token: Optional[StrictStr] = Field(
        default=None,
        alias="inviteToken",
        min_length=1,
        max_length=255,
        description="Invite token (accepted, not enforced)"
    )


class RegisterVerifyRequest(_CeremonyRequest):
    """
    Body of POST /webauthn/register/verify.

    Attributes:
        email: Admin email the options were issued for
        credential: Registration response from navigator.credentials.create()
        device_name: Optional label for the key
    """
    credential: Dict[str, Any] = Field(
        description="RegistrationResponseJSON from the browser"
    )
    device_name: Optional[StrictStr] = Field(
        default=None,
        alias="deviceName",
        max_length=100,
        description="Friendly label, e.g. 'YubiKey 5C'"
    )


class AuthenticateOptionsRequest(_CeremonyRequest):
    """Body of POST /webauthn/authenticate/options."""


class AuthenticateVerifyRequest(_CeremonyRequest):
    """Body of POST /webauthn/authenticate/verify."""
    credential: Dict[str, Any] = Field(
        description="AuthenticationResponseJSON from the browser"
    )


class AdminProfile(BaseModel):
    """Client-safe view of an admin."""
    id: str
    email: str
    name: str
    role: str


class RegisterVerifyResponse(BaseModel):
    verified: bool
    message: str


class AuthenticateVerifyResponse(BaseModel):
    verified: bool
    admin: AdminProfile


class CredentialSummary(BaseModel):
    """
    Display data for one registered key.

    Never carries the public key or the raw credential ID.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    device_name: str = Field(alias="deviceName")
    transports: List[str] = Field(default_factory=list)
    last_used_at: Optional[datetime] = Field(default=None, alias="lastUsedAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class CredentialListResponse(BaseModel):
    credentials: List[CredentialSummary]


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    """
    Error body used by every endpoint.

    ``details`` is only present outside production.
    """
    error: str
    details: Optional[Any] = None
