"""
End-to-end tests for registration, login and two-factor authentication.
"""

import pyotp
import pytest

from app.exceptions import AuthenticationError
from conftest import STRONG_PASSWORD, bearer, register_user, set_user_flags


def login(client, email="alice@example.com", password=STRONG_PASSWORD, **extra):
    return client.post("/api/auth/login", json={"email": email, "password": password, **extra})


def enable_2fa(client, headers) -> str:
    setup = client.post("/api/auth/setup-2fa", headers=headers)
    assert setup.status_code == 200
    secret = setup.json()["secret"]
    verify = client.post(
        "/api/auth/verify-2fa", json={"code": pyotp.TOTP(secret).now()}, headers=headers
    )
    assert verify.status_code == 200
    return secret


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class TestRegister:
    def test_register_returns_token(self, client):
        body = register_user(client)
        assert body["message"] == "User created successfully"
        assert body["token"]
        assert body["user"]["username"] == "alice"
        assert body["user"]["email"] == "alice@example.com"
        assert body["user"]["has2FA"] is False
        assert "password" not in str(body).lower()

    def test_token_from_register_works(self, client):
        body = register_user(client)
        me = client.get("/api/users/me", headers=bearer(body["token"]))
        assert me.status_code == 200
        assert me.json()["id"] == body["user"]["id"]

    @pytest.mark.parametrize("payload", [
        {"email": "a@example.com", "password": STRONG_PASSWORD},
        {"username": "a", "password": STRONG_PASSWORD},
        {"username": "a", "email": "a@example.com"},
        {"username": "", "email": "a@example.com", "password": STRONG_PASSWORD},
    ])
    def test_missing_fields(self, client, payload):
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"] == "All fields are required"

    def test_short_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "a", "email": "a@example.com", "password": "short"},
        )
        assert response.status_code == 400
        assert "at least 8 characters" in response.json()["detail"]

    @pytest.mark.parametrize("username, email", [
        ("alice", "other@example.com"),
        ("other", "alice@example.com"),
    ])
    def test_duplicate_username_or_email(self, client, username, email):
        register_user(client)
        response = client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": STRONG_PASSWORD},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_register_is_audited(self, client):
        body = register_user(client)
        activity = client.get("/api/users/me/activity", headers=bearer(body["token"])).json()
        assert [e["action"] for e in activity["items"]] == ["register"]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class TestLogin:
    def test_login_success(self, client, alice):
        response = login(client)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["user"]["id"] == alice["user"]["id"]

        me = client.get("/api/users/me", headers=bearer(body["token"])).json()
        assert me["last_login"] is not None

    @pytest.mark.parametrize("email, password", [
        ("alice@example.com", "wrong-password"),
        ("nobody@example.com", STRONG_PASSWORD),
    ])
    def test_failures_are_indistinguishable(self, client, alice, email, password):
        response = login(client, email=email, password=password)
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid credentials"}

    def test_missing_credentials(self, client):
        response = client.post("/api/auth/login", json={"email": "alice@example.com"})
        assert response.status_code == 400

    def test_failed_login_does_not_touch_last_login(self, client, alice):
        login(client, password="wrong-password")
        me = client.get("/api/users/me", headers=bearer(alice["token"])).json()
        assert me["last_login"] is None

    def test_inactive_account_rejected(self, client, alice):
        set_user_flags(client, alice["user"]["id"], is_active=False)
        response = login(client)
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"


# ---------------------------------------------------------------------------
# Two-factor authentication
# ---------------------------------------------------------------------------

class TestTwoFactor:
    def test_setup_returns_enrollment_material(self, client, alice_headers):
        response = client.post("/api/auth/setup-2fa", headers=alice_headers)
        assert response.status_code == 200
        body = response.json()
        assert len(body["secret"]) == 32
        assert body["manualEntryKey"] == body["secret"]
        assert body["provisioningUri"].startswith("otpauth://totp/")
        assert body["qrCode"].startswith("data:image/png;base64,")

    def test_setup_alone_does_not_enable(self, client, alice, alice_headers):
        client.post("/api/auth/setup-2fa", headers=alice_headers)
        me = client.get("/api/users/me", headers=alice_headers).json()
        assert me["has_2fa"] is False
        assert login(client).json()["token"]

    def test_verify_without_setup(self, client, alice_headers):
        response = client.post("/api/auth/verify-2fa", json={"code": "123456"}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "No 2FA setup in progress"

    def test_verify_wrong_code(self, client, alice_headers):
        secret = client.post("/api/auth/setup-2fa", headers=alice_headers).json()["secret"]
        wrong = "000000" if pyotp.TOTP(secret).now() != "000000" else "111111"
        response = client.post("/api/auth/verify-2fa", json={"code": wrong}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid 2FA code"

    def test_verify_requires_code(self, client, alice_headers):
        client.post("/api/auth/setup-2fa", headers=alice_headers)
        response = client.post("/api/auth/verify-2fa", json={}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "2FA code is required"

    def test_full_two_factor_login(self, client, alice, alice_headers):
        secret = enable_2fa(client, alice_headers)
        assert client.get("/api/users/me", headers=alice_headers).json()["has_2fa"] is True

        # Step 1: password only, no token yet
        first = login(client)
        assert first.status_code == 200
        assert first.json() == {"require2FA": True}

        # Step 2: same credentials plus the current code
        second = login(client, totp=pyotp.TOTP(secret).now())
        assert second.status_code == 200
        assert second.json()["token"]
        assert second.json()["user"]["has2FA"] is True

    def test_wrong_second_factor(self, client, alice, alice_headers):
        secret = enable_2fa(client, alice_headers)
        wrong = "000000" if pyotp.TOTP(secret).now() != "000000" else "111111"
        response = login(client, totp=wrong)
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_wrong_password_with_2fa_does_not_reveal_second_step(self, client, alice, alice_headers):
        enable_2fa(client, alice_headers)
        response = login(client, password="wrong-password")
        assert response.status_code == 401
        assert "require2FA" not in response.json()

    def test_re_setup_keeps_active_secret(self, client, alice, alice_headers):
        secret = enable_2fa(client, alice_headers)
        client.post("/api/auth/setup-2fa", headers=alice_headers)
        response = login(client, totp=pyotp.TOTP(secret).now())
        assert response.status_code == 200

    def test_disable_2fa(self, client, alice, alice_headers):
        enable_2fa(client, alice_headers)

        wrong = client.post(
            "/api/users/me/disable-2fa", json={"password": "wrong-password"}, headers=alice_headers
        )
        assert wrong.status_code == 401
        assert wrong.json()["detail"] == "Incorrect password"

        ok = client.post(
            "/api/users/me/disable-2fa", json={"password": STRONG_PASSWORD}, headers=alice_headers
        )
        assert ok.status_code == 200
        assert login(client).json()["token"]


# ---------------------------------------------------------------------------
# Bearer tokens at the HTTP boundary
# ---------------------------------------------------------------------------

class TestBearerTokens:
    def test_missing_token(self, client):
        response = client.get("/api/users/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Access token required"

    def test_invalid_token(self, client):
        response = client.get("/api/users/me", headers=bearer("not.a.token"))
        assert response.status_code == 401
        assert response.json()["detail"] == "Access denied"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_expired_token(self, client, alice):
        from datetime import timedelta
        import uuid

        tokens = client.app.state.auth_service.tokens
        token = tokens.issue(uuid.UUID(alice["user"]["id"]), "alice", ttl=timedelta(seconds=-5))
        response = client.get("/api/users/me", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired"


def test_authentication_error_is_uniform():
    assert AuthenticationError().detail == "Invalid credentials"


def test_register_login_enroll_scenario(client):
    """Register, log in, enroll 2FA, then log in with both factors."""
    created = client.post(
        "/api/auth/register",
        json={"username": "a", "email": "a@example.com", "password": "password123"},
    )
    assert created.status_code == 201

    first = login(client, email="a@example.com", password="password123")
    assert first.status_code == 200
    headers = bearer(first.json()["token"])
    before = client.get("/api/users/me", headers=headers).json()["last_login"]

    secret = enable_2fa(client, headers)
    assert login(client, email="a@example.com", password="password123").json() == {"require2FA": True}

    final = login(client, email="a@example.com", password="password123", totp=pyotp.TOTP(secret).now())
    assert final.status_code == 200
    after = client.get("/api/users/me", headers=bearer(final.json()["token"])).json()["last_login"]
    assert after > before
