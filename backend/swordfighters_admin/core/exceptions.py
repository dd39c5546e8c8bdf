"""
Domain exceptions for the admin authentication API.

Every client-facing error carries an HTTP status and a message that is safe
to show. ``detail`` holds internal information (exception text) and is only
rendered outside production.
"""

from typing import Optional


class AdminAuthError(Exception):
    """Base exception for client-facing admin API errors"""

    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(AdminAuthError):
    """Raised when a request value fails validation"""
    status_code = 400


class ChallengeError(AdminAuthError):
    """Raised when there is no valid outstanding challenge"""
    status_code = 400


class NotFoundError(AdminAuthError):
    """Raised when an admin or credential does not exist"""
    status_code = 404


class ForbiddenError(AdminAuthError):
    """Raised when the admin account is inactive"""
    status_code = 403


class NoCredentialsError(AdminAuthError):
    """Raised when an admin tries to authenticate without a registered key"""
    status_code = 400


class LastCredentialError(AdminAuthError):
    """Raised when deleting the admin's only remaining credential"""
    status_code = 400


class DuplicateCredentialError(AdminAuthError):
    """Raised when a credential ID is already registered"""
    status_code = 400


class VerificationFailedError(AdminAuthError):
    """Raised when a ceremony response does not verify"""
    status_code = 400


class NotAuthenticatedError(AdminAuthError):
    """Raised when a request has no valid session"""
    status_code = 401


class CeremonyVerificationError(Exception):
    """
    Raised by a ceremony verifier when a response does not verify.

    Never rendered directly; services translate it into
    VerificationFailedError.
    """
