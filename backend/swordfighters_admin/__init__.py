"""Swordfighters admin authentication API (WebAuthn)."""

__version__ = "0.1.0"
