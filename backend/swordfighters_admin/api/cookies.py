"""
Session cookie helpers.
"""

from fastapi import Response

from swordfighters_admin.core.config import settings


def set_session_cookie(response: Response, token: str) -> None:
    """HttpOnly, SameSite=Lax; Secure in production."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_expire_minutes * 60,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
