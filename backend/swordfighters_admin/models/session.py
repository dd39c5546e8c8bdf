"""
Server-side admin session model.

The browser only holds a signed token naming the session row; revoking a
session is a row delete.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from swordfighters_admin.models.base import Base, TimestampMixin, utc_now


class AdminSession(Base, TimestampMixin):
    """
    Authenticated admin session.

    Attributes:
        id: Opaque random session identifier (primary key)
        admin_id: Admin the session is bound to
        expires_at: Naive UTC expiry
        user_agent: User-Agent at login (truncated)
        ip_address: Client IP at login
    """

    __tablename__ = "admin_sessions"

    id = Column(String(64), primary_key=True)

    admin_id = Column(
        String(36),
        ForeignKey("admins.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    expires_at = Column(DateTime, nullable=False, index=True)

    user_agent = Column(String(255), nullable=True)

    ip_address = Column(String(64), nullable=True)

    admin = relationship("Admin", back_populates="sessions")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or utc_now())

    def __repr__(self) -> str:
        return f"AdminSession(admin_id={self.admin_id!r}, expires_at={self.expires_at!r})"
