"""
Repository layer for data access.

Isolates database access from the ceremony and session services.
"""

from swordfighters_admin.repositories.admin import AdminRepository
from swordfighters_admin.repositories.credential import CredentialRepository
from swordfighters_admin.repositories.session import SessionRepository

__all__ = [
    "AdminRepository",
    "CredentialRepository",
    "SessionRepository",
]
