"""Tests for authentication: passwords, sessions, login, middleware, entitlement."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from homebase.database import get_connection, init_db
from homebase.passwords import hash_password, verify_password
from homebase.session import cleanup_expired_sessions, create_session, delete_session, get_session
from homebase.users import (
    can_access_plugin,
    create_user,
    get_user_plugins,
    grant_plugin,
    public_user,
    revoke_plugin,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setattr("homebase.config.DB_PATH", db_file)
    init_db(db_file)
    return db_file


@pytest.fixture()
def users(tmp_db):
    admin = create_user(
        "admin@example.com", "secret123", name="Admin", role="superuser",
    )
    regular = create_user(
        "user@example.com", "userpass", name="Regular", plugins=["contacts", "notes"],
    )
    return {"admin": admin, "regular": regular}


@pytest.fixture()
def auth_client(users, monkeypatch):
    """Client with HOMEBASE_AUTH_ENABLED=true."""
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", True)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


@pytest.fixture()
def bypass_client(users, monkeypatch):
    """Client with HOMEBASE_AUTH_ENABLED=false."""
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", False)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


def _login(client, email="user@example.com", password="userpass"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("my-password")
        assert verify_password("my-password", hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("correct")
        assert not verify_password("wrong", hashed)

    def test_garbage_hash_fails(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class TestSessions:
    def test_create_and_get(self, users):
        session = create_session(users["regular"]["id"])
        found = get_session(session["id"])
        assert found["user_id"] == users["regular"]["id"]
        assert found["user"]["email"] == "user@example.com"
        assert found["user"]["plugins"] == ["contacts", "notes"]

    def test_expired_session_is_removed(self, users):
        session = create_session(users["regular"]["id"])
        past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        with get_connection() as conn:
            conn.execute("UPDATE sessions SET expires_at = ? WHERE id = ?", (past, session["id"]))
        assert get_session(session["id"]) is None
        assert not delete_session(session["id"])

    def test_inactive_user_session_rejected(self, users):
        session = create_session(users["regular"]["id"])
        with get_connection() as conn:
            conn.execute("UPDATE users SET is_active = 0 WHERE id = ?", (users["regular"]["id"],))
        assert get_session(session["id"]) is None

    def test_cleanup_expired(self, users):
        create_session(users["regular"]["id"], ttl_hours=-1)
        create_session(users["regular"]["id"])
        assert cleanup_expired_sessions() == 1


# ---------------------------------------------------------------------------
# Users and plugin access
# ---------------------------------------------------------------------------

class TestUsers:
    def test_duplicate_email_rejected(self, users):
        with pytest.raises(ValueError):
            create_user("USER@example.com", "x")

    def test_invalid_role_rejected(self, tmp_db):
        with pytest.raises(ValueError):
            create_user("x@example.com", "x", role="owner")

    def test_unknown_plugin_rejected(self, users):
        with pytest.raises(ValueError):
            grant_plugin(users["regular"]["id"], "calendar")

    def test_plugins_in_catalogue_order(self, users):
        grant_plugin(users["regular"]["id"], "estimates")
        assert get_user_plugins(users["regular"]["id"]) == ["contacts", "notes", "estimates"]

    def test_revoke(self, users):
        assert revoke_plugin(users["regular"]["id"], "notes")
        assert get_user_plugins(users["regular"]["id"]) == ["contacts"]

    def test_superuser_sees_every_plugin(self, users):
        admin = dict(users["admin"], plugins=[])
        assert can_access_plugin(admin, "woocommerce-products")
        assert "import" in public_user(admin)["plugins"]

    def test_regular_user_needs_grant(self, users):
        regular = dict(users["regular"], plugins=["contacts"])
        assert can_access_plugin(regular, "contacts")
        assert not can_access_plugin(regular, "products")


# ---------------------------------------------------------------------------
# Login API
# ---------------------------------------------------------------------------

class TestLogin:
    def test_login_success(self, auth_client):
        resp = _login(auth_client)
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["email"] == "user@example.com"
        assert user["plugins"] == ["contacts", "notes"]
        assert "homebase_session" in resp.cookies

    def test_login_wrong_password(self, auth_client):
        resp = _login(auth_client, password="wrong")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid credentials"}

    def test_login_unknown_email(self, auth_client):
        resp = _login(auth_client, email="nobody@example.com")
        assert resp.status_code == 401

    def test_me_after_login(self, auth_client):
        _login(auth_client)
        resp = auth_client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["user"]["name"] == "Regular"

    def test_logout_ends_session(self, auth_client):
        _login(auth_client)
        assert auth_client.post("/api/auth/logout").status_code == 200
        assert auth_client.get("/api/auth/me").status_code == 401


# ---------------------------------------------------------------------------
# Middleware and entitlement
# ---------------------------------------------------------------------------

class TestMiddleware:
    def test_unauthenticated_api_request(self, auth_client):
        resp = auth_client.get("/api/contacts")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Not authenticated"}

    def test_health_is_public(self, auth_client):
        assert auth_client.get("/api/health").json() == {"status": "ok"}

    def test_plugin_denied_without_grant(self, auth_client):
        _login(auth_client)
        resp = auth_client.get("/api/products")
        assert resp.status_code == 403
        assert resp.json() == {"error": "Access denied to products plugin"}

    def test_plugin_allowed_with_grant(self, auth_client):
        _login(auth_client)
        assert auth_client.get("/api/contacts").json() == []

    def test_superuser_reaches_every_plugin(self, auth_client):
        _login(auth_client, "admin@example.com", "secret123")
        assert auth_client.get("/api/products").status_code == 200

    def test_plugin_catalogue_filtered(self, auth_client):
        _login(auth_client)
        names = [p["name"] for p in auth_client.get("/api/plugins").json()]
        assert names == ["contacts", "notes"]

    def test_unknown_route_renders_error_json(self, auth_client):
        _login(auth_client)
        resp = auth_client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert "error" in resp.json()


class TestBypassMode:
    def test_bypass_uses_first_active_user(self, bypass_client):
        resp = bypass_client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "admin@example.com"

    def test_bypass_reaches_plugins(self, bypass_client):
        assert bypass_client.get("/api/invoices").status_code == 200
