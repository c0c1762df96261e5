"""
Pytest configuration for FossFLOW backend tests.
Environment must be set before any app module is imported.
"""

import os
import tempfile
import uuid

_test_dir = tempfile.mkdtemp(prefix="fossflow_test_")
os.environ.setdefault("SECRET_KEY", "b3f1c9a27e4d8850f6a2c4e19d7b03ac5f8e21d94c6a7b0e")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_test_dir}/default.db")
os.environ.setdefault("LOG_DIR", os.path.join(_test_dir, "logs"))
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEBUG"] = "true"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.config import Settings
from app.database import Database
from app.main import create_app
from app.services import user_store
from app.services.user_store import UserChanges

STRONG_PASSWORD = "correct-horse-battery"


@pytest.fixture
def settings(tmp_path):
    """Fresh settings pointing at a per-test SQLite file."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        log_dir=str(tmp_path / "logs"),
        debug=True,
        rate_limit_enabled=False,
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def db_session(settings):
    """A bare async session on an initialized database, for service-level tests."""
    database = Database(settings)
    await database.create_all()
    async with database.session_factory() as session:
        yield session
    await database.dispose()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_user(client: TestClient, username="alice", email="alice@example.com",
                  password=STRONG_PASSWORD) -> dict:
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def alice(client):
    """A registered user: the register response body (message, token, user)."""
    return register_user(client)


@pytest.fixture
def alice_headers(alice):
    return bearer(alice["token"])


def set_user_flags(client: TestClient, user_id, **changes):
    """Write user columns directly, on the app's own event loop and database."""
    async def _apply():
        async with client.app.state.db.session_factory() as db:
            user = await user_store.get_by_id(db, uuid.UUID(str(user_id)))
            await user_store.apply_changes(db, user, UserChanges(**changes))
            await db.commit()

    client.portal.call(_apply)


@pytest.fixture
def admin_headers(client):
    body = register_user(client, "root", "root@example.com")
    set_user_flags(client, body["user"]["id"], is_admin=True)
    return bearer(body["token"])
