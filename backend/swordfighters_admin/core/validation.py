"""
Input validation and sanitization for ceremony requests.

Every helper accepts ``Any``: the type is checked before any string
operation so malformed JSON values produce a 400, never a crash.
"""

import re
from typing import Any

from swordfighters_admin.core.exceptions import InvalidInputError
from swordfighters_admin.models.credential import DEFAULT_DEVICE_NAME


MAX_EMAIL_LENGTH = 254
MAX_DEVICE_NAME_LENGTH = 100

# RFC 5322 simplified; the domain must contain at least one dot.
_DOMAIN_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    + _DOMAIN_LABEL
    + r"(?:\." + _DOMAIN_LABEL + r")+$"
)

# Markup-significant characters and control characters are dropped from labels.
DEVICE_NAME_STRIP_PATTERN = re.compile(r"[<>\"'`\\\x00-\x1f\x7f]")


def validate_email(value: Any) -> str:
    """
    Validate and normalize an email value.

    Args:
        value: Raw value from the request body (any JSON type)

    Returns:
        The trimmed, lower-cased email

    Raises:
        InvalidInputError: With a client-safe reason
    """
    if not isinstance(value, str):
        raise InvalidInputError("Email must be a string")

    trimmed = value.strip()

    if not trimmed:
        raise InvalidInputError("Email is required")

    if len(trimmed) > MAX_EMAIL_LENGTH:
        raise InvalidInputError("Email is too long")

    if not EMAIL_PATTERN.match(trimmed):
        raise InvalidInputError("Invalid email format")

    return trimmed.lower()


def sanitize_device_name(value: Any) -> str:
    """
    Clean a user-supplied device label.

    Dangerous characters are silently removed rather than rejected, the
    result is capped to 100 characters, and an empty result falls back to
    the default label.
    """
    if not isinstance(value, str):
        return DEFAULT_DEVICE_NAME

    cleaned = DEVICE_NAME_STRIP_PATTERN.sub("", value.strip())
    cleaned = cleaned[:MAX_DEVICE_NAME_LENGTH].strip()

    return cleaned or DEFAULT_DEVICE_NAME


def validate_credential_payload(value: Any) -> dict:
    """Require a non-empty JSON object as the credential response."""
    if not isinstance(value, dict) or not value:
        raise InvalidInputError("Valid credential object is required")
    return value


def validate_record_id(value: Any) -> str:
    """Require a non-blank identifier for credential management."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError("Valid credential ID is required")
    return value.strip()
