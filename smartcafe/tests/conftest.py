"""Shared fixtures: a fresh in-memory store and an app wired to it."""

import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from config import Settings as AppConfig  # noqa: E402
from smartcafe.app.auth import LocalAuthProvider  # noqa: E402
from smartcafe.app.store import STAFF, SqlDocumentStore  # noqa: E402

ADMIN = ("admin@cafe.test", "admin-pass")
STAFF_USER = ("staff@cafe.test", "staff-pass")


@pytest.fixture
def store():
    return SqlDocumentStore.from_url("sqlite://")


@pytest.fixture
def auth(store):
    return LocalAuthProvider(store, "test-secret", 60)


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        database_url="sqlite://",
        secret_key="test-secret",
        media_dir=str(tmp_path / "media"),
        bill_dir=str(tmp_path / "bills"),
        public_base_url="https://cafe.example",
        log_level="WARNING",
    )


@pytest.fixture
def app(app_config, store):
    from smartcafe.app.main import create_app

    return create_app(app_config, store)


@pytest.fixture
def client(app):
    return TestClient(app)


def _account(app, email, password, role):
    identity = app.state.auth.create_user(email, password)
    app.state.store.set(
        STAFF, identity.uid, {"email": email, "name": role.title(), "role": role}
    )
    return identity


def _login(client, path, email, password):
    res = client.post(path, json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["data"]["access_token"]


@pytest.fixture
def admin_headers(app, client):
    _account(app, *ADMIN, "admin")
    token = _login(client, "/auth/admin/login", *ADMIN)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers(app, client):
    _account(app, *STAFF_USER, "staff")
    token = _login(client, "/auth/staff/login", *STAFF_USER)
    return {"Authorization": f"Bearer {token}"}
