"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- An isolated in-memory database per test
- A fake ceremony verifier injected through dependency overrides
- An httpx AsyncClient bound to the app
"""

import itertools
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test_secret_key_at_least_32_characters_long_for_jwt"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JANITOR_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlalchemy import event  # noqa: E402

from swordfighters_admin.core.exceptions import CeremonyVerificationError  # noqa: E402
from swordfighters_admin.services.interfaces.ceremony_verifier import (  # noqa: E402
    CeremonyOptions,
    CredentialDescriptor,
    ICeremonyVerifier,
    VerifiedCredential,
)


API = "/api/admin"


class FakeCeremonyVerifier(ICeremonyVerifier):
    """
    Deterministic stand-in for the WebAuthn library.

    Responses built by ``registration_response``/``authentication_response``
    echo the challenge they answer; verification compares it with the
    stored one. Public keys are derived from the credential ID so an
    assertion only verifies against the key it was registered with.
    """

    def __init__(self):
        self._sequence = itertools.count(1)
        self.last_exclude: List[CredentialDescriptor] = []
        self.last_allow: List[CredentialDescriptor] = []
        self.fail_options = False

    def _next_challenge(self, kind: str) -> str:
        return f"{kind}-challenge-{next(self._sequence)}"

    def registration_options(self, user_id, user_name, user_display_name, exclude):
        if self.fail_options:
            raise RuntimeError("option generation exploded")
        self.last_exclude = list(exclude)
        challenge = self._next_challenge("reg")
        return CeremonyOptions(
            challenge=challenge,
            options={
                "challenge": challenge,
                "rp": {"id": "localhost", "name": "Swordfighters Admin"},
                "user": {"name": user_name, "displayName": user_display_name},
                "excludeCredentials": [
                    {"id": d.credential_id, "type": "public-key"} for d in exclude
                ],
                "timeout": 60000,
            },
        )

    def verify_registration(self, credential, expected_challenge):
        if credential.get("challenge") != expected_challenge:
            raise CeremonyVerificationError("Unexpected challenge")
        return VerifiedCredential(
            credential_id=credential["id"],
            public_key=f"pk-{credential['id']}",
            sign_count=credential.get("signCount", 0),
        )

    def authentication_options(self, allow):
        self.last_allow = list(allow)
        challenge = self._next_challenge("auth")
        return CeremonyOptions(
            challenge=challenge,
            options={
                "challenge": challenge,
                "rpId": "localhost",
                "allowCredentials": [
                    {"id": d.credential_id, "type": "public-key"} for d in allow
                ],
                "timeout": 60000,
            },
        )

    def verify_authentication(self, credential, expected_challenge, public_key, current_counter):
        if credential.get("challenge") != expected_challenge:
            raise CeremonyVerificationError("Unexpected challenge")
        if public_key != f"pk-{credential.get('id')}":
            raise CeremonyVerificationError("Signature mismatch")
        new_count = credential.get("signCount", current_counter + 1)
        if new_count != 0 and new_count <= current_counter:
            raise CeremonyVerificationError("Signature counter did not increase")
        return new_count


def registration_response(
    challenge: str,
    credential_id: str = "cred-1",
    transports: Optional[List[str]] = None,
    **extra: Any
) -> Dict[str, Any]:
    """Browser-shaped registration response answering ``challenge``."""
    return {
        "id": credential_id,
        "rawId": credential_id,
        "type": "public-key",
        "challenge": challenge,
        "response": {
            "clientDataJSON": "e30",
            "attestationObject": "o2NmbXRkbm9uZQ",
            "transports": transports if transports is not None else ["usb"],
        },
        **extra,
    }


def authentication_response(
    challenge: str,
    credential_id: str = "cred-1",
    **extra: Any
) -> Dict[str, Any]:
    """Browser-shaped authentication response answering ``challenge``."""
    return {
        "id": credential_id,
        "rawId": credential_id,
        "type": "public-key",
        "challenge": challenge,
        "response": {
            "clientDataJSON": "e30",
            "authenticatorData": "SZYN5YgO",
            "signature": "MEUCIQ",
        },
        **extra,
    }


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory():
    """
    Session factory over a fresh in-memory database.

    Tables are created before the test and the engine disposed after.
    """
    from swordfighters_admin.models import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    """Database session shared by the test and the app under test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def verifier() -> FakeCeremonyVerifier:
    return FakeCeremonyVerifier()


@pytest.fixture
async def client(db_session: AsyncSession, verifier: FakeCeremonyVerifier):
    """
    AsyncClient for the app with the database and verifier overridden.

    Yields:
        httpx.AsyncClient with a cookie jar (sessions persist across calls)
    """
    from swordfighters_admin.api.dependencies import get_verifier
    from swordfighters_admin.core.database import get_db
    from swordfighters_admin.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_verifier] = lambda: verifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def register_key(client: AsyncClient):
    """
    Run a full registration ceremony through the API.

    Returns:
        Async callable(email, credential_id="cred-1", device_name=None) -> verify response
    """
    async def _register(email: str, credential_id: str = "cred-1", device_name: Optional[str] = None):
        options = await client.post(f"{API}/webauthn/register/options", json={"email": email})
        assert options.status_code == 200, options.text
        body: Dict[str, Any] = {
            "email": email,
            "credential": registration_response(options.json()["challenge"], credential_id),
        }
        if device_name is not None:
            body["deviceName"] = device_name
        return await client.post(f"{API}/webauthn/register/verify", json=body)

    return _register


@pytest.fixture
def sign_in(client: AsyncClient):
    """
    Run a full authentication ceremony through the API.

    Returns:
        Async callable(email, credential_id="cred-1", **extra) -> verify response
    """
    async def _sign_in(email: str, credential_id: str = "cred-1", **extra: Any):
        options = await client.post(f"{API}/webauthn/authenticate/options", json={"email": email})
        assert options.status_code == 200, options.text
        return await client.post(
            f"{API}/webauthn/authenticate/verify",
            json={
                "email": email,
                "credential": authentication_response(options.json()["challenge"], credential_id, **extra),
            },
        )

    return _sign_in


@pytest.fixture
def make_registration_response():
    return registration_response


@pytest.fixture
def make_authentication_response():
    return authentication_response
