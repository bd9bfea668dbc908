"""Data access for users and their plugin entitlements."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from . import config
from .database import get_connection
from .passwords import hash_password
from .plugins import PLUGINS

log = logging.getLogger(__name__)

VALID_ROLES = ("user", "admin", config.SUPERUSER_ROLE)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def create_user(
    email: str,
    password: str | None = None,
    *,
    name: str = "",
    role: str = "user",
    plugins: list[str] | None = None,
    db_path=None,
) -> dict:
    """Create a user and grant *plugins*. Raises ValueError on bad input."""
    email = email.strip().lower()
    if not email:
        raise ValueError("Email is required")
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid role: {role}")
    if get_user_by_email(email, db_path=db_path):
        raise ValueError(f"User already exists: {email}")

    now = _now()
    user_id = str(uuid.uuid4())
    with get_connection(db_path) as conn:
        conn.execute(
            "INSERT INTO users "
            "(id, email, name, role, password_hash, is_active, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, 1, ?, ?)",
            (user_id, email, name or None, role,
             hash_password(password) if password else None, now, now),
        )

    for plugin_name in plugins or []:
        grant_plugin(user_id, plugin_name, db_path=db_path)

    log.info("Created user %s (%s)", email, role)
    return get_user(user_id, db_path=db_path)


def get_user(user_id: str, *, db_path=None) -> dict | None:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return dict(row) if row else None


def get_user_by_email(email: str, *, db_path=None) -> dict | None:
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE email = ?", (email.strip().lower(),),
        ).fetchone()
    return dict(row) if row else None


def get_first_active_user(*, db_path=None) -> dict | None:
    """Return the oldest active user (used by auth bypass mode)."""
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE is_active = 1 ORDER BY created_at LIMIT 1",
        ).fetchone()
    return dict(row) if row else None


def list_users(*, db_path=None) -> list[dict]:
    with get_connection(db_path) as conn:
        rows = conn.execute("SELECT * FROM users ORDER BY email").fetchall()
    users = [dict(r) for r in rows]
    for u in users:
        u["plugins"] = get_user_plugins(u["id"], db_path=db_path)
    return users


# ---------------------------------------------------------------------------
# Plugin access
# ---------------------------------------------------------------------------

def grant_plugin(user_id: str, plugin_name: str, *, db_path=None) -> None:
    """Grant (or re-activate) access to a plugin."""
    if plugin_name not in PLUGINS:
        raise ValueError(f"Unknown plugin: {plugin_name}")
    with get_connection(db_path) as conn:
        conn.execute(
            "INSERT INTO user_plugin_access (user_id, plugin_name, is_active, created_at) "
            "VALUES (?, ?, 1, ?) "
            "ON CONFLICT(user_id, plugin_name) DO UPDATE SET is_active = 1",
            (user_id, plugin_name, _now()),
        )


def revoke_plugin(user_id: str, plugin_name: str, *, db_path=None) -> bool:
    with get_connection(db_path) as conn:
        cur = conn.execute(
            "UPDATE user_plugin_access SET is_active = 0 "
            "WHERE user_id = ? AND plugin_name = ?",
            (user_id, plugin_name),
        )
    return cur.rowcount > 0


def get_user_plugins(user_id: str, *, db_path=None) -> list[str]:
    """Return the names of the plugins a user may use, in catalogue order."""
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT plugin_name FROM user_plugin_access "
            "WHERE user_id = ? AND is_active = 1",
            (user_id,),
        ).fetchall()
    granted = {r["plugin_name"] for r in rows}
    return [name for name in PLUGINS if name in granted]


def can_access_plugin(user: dict, plugin_name: str) -> bool:
    """Superusers see everything; others need an active grant."""
    if user.get("role") == config.SUPERUSER_ROLE:
        return True
    return plugin_name in (user.get("plugins") or [])


def public_user(user: dict) -> dict:
    """Shape a user for the auth API: ``{id, email, role, plugins}``."""
    plugins = user.get("plugins")
    if plugins is None:
        plugins = get_user_plugins(user["id"])
    if user.get("role") == config.SUPERUSER_ROLE:
        plugins = list(PLUGINS)
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name") or "",
        "role": user.get("role") or "user",
        "plugins": plugins,
    }
