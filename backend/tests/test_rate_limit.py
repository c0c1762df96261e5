"""
Tests for per-address rate limiting on the authentication endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.rate_limit import limiter


@pytest.fixture
def limited_client(tmp_path):
    settings = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        log_dir=str(tmp_path / "logs"),
        debug=True,
        rate_limit_enabled=True,
    )
    app = create_app(settings)
    limiter.reset()
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        limiter.reset()
        limiter.enabled = False


def test_sixth_login_attempt_is_throttled(limited_client):
    payload = {"email": "nobody@example.com", "password": "wrong-password"}
    for _ in range(5):
        assert limited_client.post("/api/auth/login", json=payload).status_code == 401

    response = limited_client.post("/api/auth/login", json=payload)
    assert response.status_code == 429


def test_register_is_throttled(limited_client):
    for i in range(5):
        limited_client.post(
            "/api/auth/register",
            json={"username": f"user{i}", "email": f"user{i}@example.com", "password": "short"},
        )
    response = limited_client.post(
        "/api/auth/register",
        json={"username": "late", "email": "late@example.com", "password": "long-enough-password"},
    )
    assert response.status_code == 429


def test_health_is_exempt(limited_client):
    for _ in range(10):
        assert limited_client.get("/api/health").status_code == 200


def test_auth_limit_follows_app_settings(tmp_path):
    settings = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        log_dir=str(tmp_path / "logs"),
        debug=True,
        rate_limit_enabled=True,
        rate_limit_auth="2/minute",
    )
    app = create_app(settings)
    limiter.reset()
    payload = {"email": "nobody@example.com", "password": "wrong-password"}
    try:
        with TestClient(app) as client:
            assert client.post("/api/auth/login", json=payload).status_code == 401
            assert client.post("/api/auth/login", json=payload).status_code == 401
            assert client.post("/api/auth/login", json=payload).status_code == 429
    finally:
        limiter.reset()
        create_app(Settings(DATABASE_URL=settings.database_url, rate_limit_enabled=False))
