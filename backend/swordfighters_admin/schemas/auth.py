"""
Pydantic schemas for session endpoints.
"""

from pydantic import BaseModel, Field

from swordfighters_admin.schemas.webauthn import AdminProfile


class SessionResponse(BaseModel):
    """
    Response model for GET /auth/session.

    Attributes:
        authenticated: Always true (unauthenticated requests get a 401)
        admin: The signed-in admin
    """
    authenticated: bool = Field(description="Whether the cookie names a live session")
    admin: AdminProfile
