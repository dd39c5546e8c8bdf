"""
WebAuthn credential model.

One row per registered authenticator. The signature counter is expected to
increase with every assertion and is never written backwards.
"""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import relationship

from swordfighters_admin.models.base import Base, TimestampMixin, UUIDMixin


DEFAULT_DEVICE_NAME = "Security Key"


class WebAuthnCredential(Base, UUIDMixin, TimestampMixin):
    """
    Registered public-key credential belonging to an admin.

    Attributes:
        id: UUID primary key, used by the credential management endpoints
        admin_id: Owning admin
        credential_id: base64url credential ID (unique system-wide)
        public_key: base64url COSE public key
        counter: Last accepted signature counter
        transports: Transport hints reported at registration
        device_name: Sanitized human-readable label
        last_used_at: Last successful authentication with this credential
    """

    __tablename__ = "webauthn_credentials"

    admin_id = Column(
        String(36),
        ForeignKey("admins.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    credential_id = Column(
        Text,
        nullable=False,
        unique=True,
        doc="base64url credential ID"
    )

    public_key = Column(Text, nullable=False, doc="base64url COSE public key")

    counter = Column(BigInteger, nullable=False, default=0, doc="Signature counter")

    transports = Column(JSON, nullable=False, default=list, doc="Transport hints")

    device_name = Column(
        String(100),
        nullable=False,
        default=DEFAULT_DEVICE_NAME,
        doc="Sanitized device label"
    )

    last_used_at = Column(DateTime, nullable=True)

    admin = relationship("Admin", back_populates="credentials")

    def to_public_dict(self) -> dict:
        """
        Display data for the credential list.

        Omits the public key and the raw credential ID.
        """
        return {
            "id": self.id,
            "deviceName": self.device_name,
            "transports": list(self.transports or []),
            "lastUsedAt": self.last_used_at.isoformat() if self.last_used_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"WebAuthnCredential(id={self.id!r}, admin_id={self.admin_id!r}, "
            f"device_name={self.device_name!r}, counter={self.counter!r})"
        )
