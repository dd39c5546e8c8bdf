"""
Session token signing.

The session cookie carries a JWT (python-jose, HS256) naming the server-side
session row (``sid``) and the admin it is bound to (``sub``). The token alone
never authenticates a request; the session row must also exist.
"""

import secrets
from datetime import datetime, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from swordfighters_admin.core.config import settings


# JWT Algorithm
ALGORITHM = "HS256"


class SessionTokenData(BaseModel):
    """
    Session token payload.
    """
    admin_id: str
    session_id: str
    exp: Optional[datetime] = None


def generate_session_id() -> str:
    """Opaque, unguessable session identifier."""
    return secrets.token_urlsafe(32)


def create_session_token(admin_id: str, session_id: str, expires_at: datetime) -> str:
    """
    Create a signed session token.

    Args:
        admin_id: Admin the session belongs to
        session_id: Server-side session row ID
        expires_at: Naive UTC expiry (same as the session row)

    Returns:
        Encoded JWT string
    """
    to_encode = {
        "sub": admin_id,
        "sid": session_id,
        "exp": expires_at.replace(tzinfo=timezone.utc),
    }

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=ALGORITHM
    )


def decode_session_token(token: str) -> Optional[SessionTokenData]:
    """
    Decode and validate a session token.

    Returns:
        SessionTokenData if signature and expiry are valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[ALGORITHM]
        )
    except JWTError:
        return None

    admin_id = payload.get("sub")
    session_id = payload.get("sid")

    if not isinstance(admin_id, str) or not isinstance(session_id, str):
        return None

    exp = payload.get("exp")
    return SessionTokenData(
        admin_id=admin_id,
        session_id=session_id,
        exp=datetime.fromtimestamp(exp, tz=timezone.utc) if isinstance(exp, (int, float)) else None,
    )
