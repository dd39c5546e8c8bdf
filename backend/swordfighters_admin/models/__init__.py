"""
SQLAlchemy ORM models for the admin API.

Import models from this module to ensure they're registered with SQLAlchemy.
"""

from swordfighters_admin.models.base import Base, TimestampMixin, UUIDMixin, utc_now
from swordfighters_admin.models.admin import Admin, PendingChallenge
from swordfighters_admin.models.credential import DEFAULT_DEVICE_NAME, WebAuthnCredential
from swordfighters_admin.models.session import AdminSession

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "utc_now",
    "Admin",
    "PendingChallenge",
    "WebAuthnCredential",
    "DEFAULT_DEVICE_NAME",
    "AdminSession",
]
