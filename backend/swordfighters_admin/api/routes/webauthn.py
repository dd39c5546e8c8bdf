"""
WebAuthn ceremony and credential management endpoints.

Registration and authentication are two-step ceremonies: an ``options``
call issues a single-use challenge (valid for five minutes) and the
matching ``verify`` call consumes it.
"""

from typing import Any, Dict

from fastapi import APIRouter, Request, Response, status

from swordfighters_admin.api.cookies import set_session_cookie
from swordfighters_admin.api.dependencies import (
    AuthenticationServiceDep,
    CredentialServiceDep,
    CurrentAdmin,
    RegistrationServiceDep,
)
from swordfighters_admin.middleware.rate_limit import get_client_ip
from swordfighters_admin.schemas.webauthn import (
    AdminProfile,
    AuthenticateOptionsRequest,
    AuthenticateVerifyRequest,
    AuthenticateVerifyResponse,
    CredentialListResponse,
    ErrorResponse,
    RegisterOptionsRequest,
    RegisterVerifyRequest,
    RegisterVerifyResponse,
    SuccessResponse,
)


router = APIRouter()

_CLIENT_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid input or ceremony state"},
}


@router.post(
    "/register/options",
    status_code=status.HTTP_200_OK,
    responses={**_CLIENT_ERRORS, 500: {"model": ErrorResponse}},
    summary="Begin registration",
)
async def register_options(
    body: RegisterOptionsRequest,
    service: RegistrationServiceDep,
) -> Dict[str, Any]:
    """
    Issue PublicKeyCredentialCreationOptions for an email.

    The admin is created on first sight. Keys already registered to the
    admin are listed in ``excludeCredentials``.

    Example:
        POST /api/admin/webauthn/register/options
        {"email": "owner@swordfighters.com"}
    """
    return await service.begin(body.email, invite_token=body.invite_token)


@router.post(
    "/register/verify",
    response_model=RegisterVerifyResponse,
    responses=_CLIENT_ERRORS,
    summary="Complete registration",
)
async def register_verify(
    body: RegisterVerifyRequest,
    service: RegistrationServiceDep,
) -> RegisterVerifyResponse:
    """
    Verify the browser's registration response and store the key.

    The outstanding challenge is cleared whatever the outcome.
    """
    result = await service.complete(
        body.email,
        body.credential,
        device_name=body.device_name,
    )
    return RegisterVerifyResponse(**result)


@router.post(
    "/authenticate/options",
    responses={
        **_CLIENT_ERRORS,
        403: {"model": ErrorResponse, "description": "Account is inactive"},
        404: {"model": ErrorResponse, "description": "Admin not found"},
    },
    summary="Begin authentication",
)
async def authenticate_options(
    body: AuthenticateOptionsRequest,
    service: AuthenticationServiceDep,
) -> Dict[str, Any]:
    """Issue PublicKeyCredentialRequestOptions limited to the admin's keys."""
    return await service.begin(body.email)


@router.post(
    "/authenticate/verify",
    response_model=AuthenticateVerifyResponse,
    responses={
        **_CLIENT_ERRORS,
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        403: {"model": ErrorResponse, "description": "Account is inactive"},
    },
    summary="Complete authentication",
)
async def authenticate_verify(
    body: AuthenticateVerifyRequest,
    request: Request,
    response: Response,
    service: AuthenticationServiceDep,
) -> AuthenticateVerifyResponse:
    """
    Verify the browser's assertion and open a session.

    On success the session cookie is set and the admin profile returned;
    no key material or challenge is ever echoed back.
    """
    result = await service.complete(
        body.email,
        body.credential,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request),
    )
    set_session_cookie(response, result.issued.token)
    return AuthenticateVerifyResponse(verified=True, admin=AdminProfile(**result.admin))


@router.get(
    "/credentials",
    response_model=CredentialListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List my security keys",
)
async def list_credentials(
    admin: CurrentAdmin,
    service: CredentialServiceDep,
) -> Dict[str, Any]:
    return {"credentials": await service.list_credentials(admin)}


@router.delete(
    "/credentials/{credential_id}",
    response_model=SuccessResponse,
    responses={
        **_CLIENT_ERRORS,
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse, "description": "Credential not found"},
    },
    summary="Remove a security key",
)
async def delete_credential(
    credential_id: str,
    admin: CurrentAdmin,
    service: CredentialServiceDep,
) -> SuccessResponse:
    """Remove one of my keys. The last remaining key cannot be removed."""
    await service.delete_credential(admin, credential_id)
    return SuccessResponse(success=True)
