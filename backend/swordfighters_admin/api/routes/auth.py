"""
Session endpoints for the admin dashboard.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Response

from swordfighters_admin.api.cookies import clear_session_cookie
from swordfighters_admin.api.dependencies import CurrentAdmin, SessionServiceDep, get_session_token
from swordfighters_admin.schemas.auth import SessionResponse
from swordfighters_admin.schemas.webauthn import AdminProfile, ErrorResponse, SuccessResponse


router = APIRouter()


@router.get(
    "/session",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
async def read_session(admin: CurrentAdmin) -> SessionResponse:
    """
    Current session.

    Example:
        GET /api/admin/auth/session
        Cookie: admin_session=eyJ...

        Response:
        {
            "authenticated": true,
            "admin": {"id": "...", "email": "owner@swordfighters.com", "name": "owner", "role": "admin"}
        }
    """
    return SessionResponse(authenticated=True, admin=AdminProfile(**admin.public_profile()))


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    response: Response,
    sessions: SessionServiceDep,
    token: Annotated[Optional[str], Depends(get_session_token)],
) -> SuccessResponse:
    """Revoke the server-side session and clear the cookie. Always succeeds."""
    await sessions.revoke(token)
    clear_session_cookie(response)
    return SuccessResponse(success=True)
