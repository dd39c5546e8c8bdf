"""
Admin identity model and its pending WebAuthn challenge.

An admin holds at most one outstanding ceremony challenge. The challenge
value and its expiry are stored in two columns but are only ever read and
written together through ``Admin.challenge``, ``issue_challenge()`` and
``clear_challenge()``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from swordfighters_admin.models.base import Base, TimestampMixin, UUIDMixin, utc_now


@dataclass(frozen=True)
class PendingChallenge:
    """
    A ceremony challenge awaiting its response.

    Attributes:
        value: base64url challenge handed to the browser
        expires_at: naive UTC expiry
    """
    value: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or utc_now())

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return bool(self.value) and not self.is_expired(now)


class Admin(Base, UUIDMixin, TimestampMixin):
    """
    Admin account authenticated with WebAuthn security keys.

    Attributes:
        id: UUID primary key (from UUIDMixin)
        email: Unique, trimmed, lower-cased email
        name: Display name (defaults to the email local-part)
        role: Authorization role
        is_active: Inactive admins cannot authenticate
        last_login_at: Timestamp of the last successful authentication
        current_challenge: Outstanding challenge value (see ``challenge``)
        challenge_expires_at: Outstanding challenge expiry (see ``challenge``)

    Security considerations:
        - Never serialize challenge or credential fields to clients
        - The challenge columns are both NULL or both set (CHECK constraint)
    """

    __tablename__ = "admins"

    email = Column(
        String(254),
        nullable=False,
        unique=True,
        index=True,
        doc="Normalized (trimmed, lower-case) email"
    )

    name = Column(String(255), nullable=False, doc="Display name")

    role = Column(String(32), nullable=False, default="admin", doc="Authorization role")

    is_active = Column(Boolean, nullable=False, default=True, doc="Whether the account may log in")

    last_login_at = Column(DateTime, nullable=True, doc="Last successful authentication")

    current_challenge = Column(Text, nullable=True, doc="Outstanding ceremony challenge")

    challenge_expires_at = Column(
        DateTime,
        nullable=True,
        index=True,
        doc="Expiry of the outstanding ceremony challenge"
    )

    credentials = relationship(
        "WebAuthnCredential",
        back_populates="admin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    sessions = relationship(
        "AdminSession",
        back_populates="admin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "(current_challenge IS NULL AND challenge_expires_at IS NULL) OR "
            "(current_challenge IS NOT NULL AND challenge_expires_at IS NOT NULL)",
            name="ck_admins_challenge_pair",
        ),
    )

    @property
    def challenge(self) -> Optional[PendingChallenge]:
        """The outstanding challenge, or None when either half is missing."""
        if not self.current_challenge or self.challenge_expires_at is None:
            return None
        return PendingChallenge(self.current_challenge, self.challenge_expires_at)

    def issue_challenge(
        self,
        value: str,
        ttl: timedelta,
        now: Optional[datetime] = None
    ) -> PendingChallenge:
        """Replace any outstanding challenge with a fresh one."""
        expires_at = (now or utc_now()) + ttl
        self.current_challenge = value
        self.challenge_expires_at = expires_at
        return PendingChallenge(value, expires_at)

    def clear_challenge(self) -> None:
        self.current_challenge = None
        self.challenge_expires_at = None

    def public_profile(self) -> dict:
        """Client-safe view of the admin."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"Admin(id={self.id!r}, role={self.role!r}, is_active={self.is_active!r})"
