"""
Integration tests for the registration and authentication ceremonies.

Tests the complete flow end-to-end through the HTTP API:
- First registration provisions the admin and stores one key
- Sequential option calls: only the latest challenge verifies
- Authentication with and without registered keys
- Successful authentication updates timestamps and sets the session cookie
- Every terminal outcome clears the outstanding challenge

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from swordfighters_admin.core.config import settings
from swordfighters_admin.models import Admin, WebAuthnCredential
from swordfighters_admin.models.base import utc_now
from swordfighters_admin.repositories import AdminRepository, CredentialRepository


API = "/api/admin"
EMAIL = "owner@swordfighters.com"


async def admin_by_email(db_session, email=EMAIL):
    return await AdminRepository(db_session).get_by_email(email)


class TestRegistration:
    """Registration ceremony over HTTP."""

    @pytest.mark.asyncio
    async def test_new_admin_registers_one_key(self, client, db_session, make_registration_response):
        # Act: options
        options = await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})

        # Assert: admin provisioned with an outstanding challenge
        assert options.status_code == 200
        challenge = options.json()["challenge"]
        admin = await admin_by_email(db_session)
        assert admin is not None
        assert admin.challenge.value == challenge

        # Act: verify
        verify = await client.post(
            f"{API}/webauthn/register/verify",
            json={
                "email": EMAIL,
                "credential": make_registration_response(challenge),
                "deviceName": "YubiKey 5C",
            },
        )

        # Assert: one key stored and challenge consumed
        assert verify.status_code == 200
        assert verify.json() == {"verified": True, "message": "Security key registered successfully"}
        creds = await CredentialRepository(db_session).list_for_admin(admin.id)
        assert len(creds) == 1
        assert creds[0].device_name == "YubiKey 5C"
        assert admin.challenge is None

    @pytest.mark.asyncio
    async def test_options_echo_no_stored_state(self, client):
        response = await client.post(
            f"{API}/webauthn/register/options",
            json={"email": EMAIL, "inviteToken": "invite-123"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["name"] == EMAIL
        assert response.headers["Cache-Control"] == "no-store"

    @pytest.mark.asyncio
    async def test_second_options_call_supersedes_first(self, client, db_session, make_registration_response):
        # Arrange
        first = (await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})).json()
        second = (await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})).json()

        # Act
        verify = await client.post(
            f"{API}/webauthn/register/verify",
            json={"email": EMAIL, "credential": make_registration_response(second["challenge"])},
        )

        # Assert
        assert first["challenge"] != second["challenge"]
        assert verify.status_code == 200

    @pytest.mark.asyncio
    async def test_stale_challenge_fails(self, client, db_session, make_registration_response):
        # Arrange
        first = (await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})).json()
        await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})

        # Act
        verify = await client.post(
            f"{API}/webauthn/register/verify",
            json={"email": EMAIL, "credential": make_registration_response(first["challenge"])},
        )

        # Assert
        assert verify.status_code == 400
        assert verify.json()["error"] == "Registration verification failed"
        assert (await admin_by_email(db_session)).challenge is None

    @pytest.mark.asyncio
    async def test_verify_without_options(self, client, make_registration_response):
        response = await client.post(
            f"{API}/webauthn/register/verify",
            json={"email": EMAIL, "credential": make_registration_response("nope")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid registration session"

    @pytest.mark.asyncio
    async def test_expired_challenge(self, client, db_session, make_registration_response):
        # Arrange
        options = (await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})).json()
        admin = await admin_by_email(db_session)
        admin.challenge_expires_at = utc_now() - timedelta(seconds=1)
        await db_session.commit()

        # Act
        response = await client.post(
            f"{API}/webauthn/register/verify",
            json={"email": EMAIL, "credential": make_registration_response(options["challenge"])},
        )

        # Assert
        assert response.status_code == 400
        assert response.json()["error"] == "Registration challenge has expired. Please try again."
        assert admin.challenge is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("credential", [{}, "cred", 1, None, []])
    async def test_invalid_credential_object(self, client, credential):
        await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})

        response = await client.post(
            f"{API}/webauthn/register/verify",
            json={"email": EMAIL, "credential": credential},
        )

        assert response.status_code == 400
        assert response.json()["error"] in ("Valid credential object is required", "Validation error")

    @pytest.mark.asyncio
    async def test_device_name_is_sanitized(self, client, db_session, register_key):
        response = await register_key(EMAIL, device_name="<img src=x onerror='alert(1)'>Key")

        assert response.status_code == 200
        cred = await CredentialRepository(db_session).get_by_credential_id("cred-1")
        assert cred.device_name == "img src=x onerror=alert(1)Key"

    @pytest.mark.asyncio
    async def test_device_name_too_long_rejected(self, client, make_registration_response):
        options = (await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})).json()

        response = await client.post(
            f"{API}/webauthn/register/verify",
            json={
                "email": EMAIL,
                "credential": make_registration_response(options["challenge"]),
                "deviceName": "k" * 101,
            },
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_existing_keys_are_excluded(self, client, register_key):
        await register_key(EMAIL, credential_id="cred-1")

        response = await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})

        assert [c["id"] for c in response.json()["excludeCredentials"]] == ["cred-1"]

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_key_is_400_and_clears_challenge(
        self, client, db_session, register_key, make_registration_response
    ):
        # Arrange: the key is stored for one admin while another admin's
        # duplicate check still sees it as free
        await register_key("a@swordfighters.com", credential_id="dup")
        options = await client.post(
            f"{API}/webauthn/register/options", json={"email": "b@swordfighters.com"}
        )
        challenge = options.json()["challenge"]

        # Act
        with patch.object(CredentialRepository, "get_by_credential_id", AsyncMock(return_value=None)):
            response = await client.post(
                f"{API}/webauthn/register/verify",
                json={
                    "email": "b@swordfighters.com",
                    "credential": make_registration_response(challenge, credential_id="dup"),
                },
            )

        # Assert
        assert response.status_code == 400
        assert response.json()["error"] == "This security key is already registered"
        admin = await admin_by_email(db_session, "b@swordfighters.com")
        assert admin.challenge is None
        total = (await db_session.execute(select(func.count()).select_from(WebAuthnCredential))).scalar_one()
        assert total == 1

    @pytest.mark.asyncio
    async def test_option_generation_failure(self, client, verifier):
        verifier.fail_options = True

        response = await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to generate registration options"


class TestAuthentication:
    """Authentication ceremony over HTTP."""

    @pytest.mark.asyncio
    async def test_unknown_admin(self, client):
        response = await client.post(f"{API}/webauthn/authenticate/options", json={"email": EMAIL})

        assert response.status_code == 404
        assert response.json() == {"error": "Admin not found"}

    @pytest.mark.asyncio
    async def test_admin_without_keys(self, client):
        await client.post(f"{API}/webauthn/register/options", json={"email": EMAIL})

        response = await client.post(f"{API}/webauthn/authenticate/options", json={"email": EMAIL})

        assert response.status_code == 400
        assert response.json()["error"].startswith("No security keys registered")

    @pytest.mark.asyncio
    async def test_inactive_admin(self, client, db_session, register_key):
        await register_key(EMAIL)
        admin = await admin_by_email(db_session)
        admin.is_active = False
        await db_session.commit()

        response = await client.post(f"{API}/webauthn/authenticate/options", json={"email": EMAIL})

        assert response.status_code == 403
        assert response.json()["error"] == "Account is inactive"

    @pytest.mark.asyncio
    async def test_success_updates_timestamps_and_returns_profile(
        self, client, db_session, register_key, sign_in
    ):
        # Arrange
        await register_key(EMAIL)
        before = utc_now()

        # Act
        response = await sign_in(EMAIL)

        # Assert: profile only
        assert response.status_code == 200
        body = response.json()
        assert body["verified"] is True
        assert set(body["admin"]) == {"id", "email", "name", "role"}
        assert body["admin"]["email"] == EMAIL

        # Assert: timestamps and counter
        admin = await admin_by_email(db_session)
        cred = await CredentialRepository(db_session).get_by_credential_id("cred-1")
        assert admin.last_login_at >= before
        assert cred.last_used_at >= before
        assert cred.counter == 1
        assert admin.challenge is None

        # Assert: session cookie
        assert settings.session_cookie_name in response.cookies
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie

    @pytest.mark.asyncio
    async def test_response_never_contains_key_material(self, client, register_key, sign_in):
        await register_key(EMAIL)

        response = await sign_in(EMAIL)

        assert "pk-cred-1" not in response.text
        assert "challenge" not in response.text

    @pytest.mark.asyncio
    async def test_failed_assertion_is_401_and_clears_challenge(
        self, client, db_session, register_key, make_authentication_response
    ):
        # Arrange
        await register_key(EMAIL)
        await client.post(f"{API}/webauthn/authenticate/options", json={"email": EMAIL})

        # Act
        response = await client.post(
            f"{API}/webauthn/authenticate/verify",
            json={"email": EMAIL, "credential": make_authentication_response("forged")},
        )

        # Assert
        assert response.status_code == 401
        assert response.json()["error"] == "Authentication failed"
        assert (await admin_by_email(db_session)).challenge is None
        assert settings.session_cookie_name not in response.cookies

    @pytest.mark.asyncio
    async def test_unknown_credential(self, client, db_session, register_key, make_authentication_response):
        await register_key(EMAIL)
        options = (await client.post(f"{API}/webauthn/authenticate/options", json={"email": EMAIL})).json()

        response = await client.post(
            f"{API}/webauthn/authenticate/verify",
            json={"email": EMAIL, "credential": make_authentication_response(options["challenge"], "cred-x")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Credential not found"
        assert (await admin_by_email(db_session)).challenge is None

    @pytest.mark.asyncio
    async def test_verify_without_options(self, client, register_key, make_authentication_response):
        await register_key(EMAIL)

        response = await client.post(
            f"{API}/webauthn/authenticate/verify",
            json={"email": EMAIL, "credential": make_authentication_response("anything")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid authentication session"

    @pytest.mark.asyncio
    async def test_challenge_cannot_be_replayed(self, client, register_key, make_authentication_response):
        # Arrange
        await register_key(EMAIL)
        options = (await client.post(f"{API}/webauthn/authenticate/options", json={"email": EMAIL})).json()
        credential = make_authentication_response(options["challenge"])

        # Act
        first = await client.post(
            f"{API}/webauthn/authenticate/verify", json={"email": EMAIL, "credential": credential}
        )
        replay = await client.post(
            f"{API}/webauthn/authenticate/verify", json={"email": EMAIL, "credential": credential}
        )

        # Assert
        assert first.status_code == 200
        assert replay.status_code == 400
        assert replay.json()["error"] == "Invalid authentication session"


class TestMultipleAdmins:
    """Admins are isolated from each other."""

    @pytest.mark.asyncio
    async def test_one_admin_per_normalized_email(self, client, db_session):
        for email in ["owner@swordfighters.com", "OWNER@swordfighters.com", " owner@SWORDFIGHTERS.com "]:
            response = await client.post(f"{API}/webauthn/register/options", json={"email": email})
            assert response.status_code == 200

        count = (await db_session.execute(select(func.count()).select_from(Admin))).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_credentials_are_per_admin(self, client, db_session, register_key):
        await register_key("a@swordfighters.com", credential_id="cred-a")
        await register_key("b@swordfighters.com", credential_id="cred-b")

        response = await client.post(
            f"{API}/webauthn/authenticate/options", json={"email": "a@swordfighters.com"}
        )

        assert [c["id"] for c in response.json()["allowCredentials"]] == ["cred-a"]
        total = (await db_session.execute(select(func.count()).select_from(WebAuthnCredential))).scalar_one()
        assert total == 2
