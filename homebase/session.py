"""Cookie sessions for the API.

A session row ties the opaque cookie value to a user. ``get_session``
resolves it into the request user (id, email, name, role and the plugins
the user is granted), dropping expired rows as it meets them.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from . import config
from .database import get_connection

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_session(
    user_id: str,
    *,
    ttl_hours: int | None = None,
    ip_address: str = "",
    user_agent: str = "",
    db_path=None,
) -> dict:
    if ttl_hours is None:
        ttl_hours = config.SESSION_TTL_HOURS
    started = _utcnow()
    session = {
        "id": uuid.uuid4().hex,
        "user_id": user_id,
        "created_at": started.isoformat(),
        "expires_at": (started + timedelta(hours=ttl_hours)).isoformat(),
    }
    with get_connection(db_path) as conn:
        conn.execute(
            "INSERT INTO sessions (id, user_id, created_at, expires_at, ip_address, user_agent) "
            "VALUES (:id, :user_id, :created_at, :expires_at, :ip, :ua)",
            {**session, "ip": ip_address or None, "ua": user_agent or None},
        )
    return session


def get_session(session_id: str, *, db_path=None) -> dict | None:
    """Resolve *session_id* to ``{id, user_id, expires_at, user}``.

    None for unknown or expired sessions and for deactivated users.
    """
    from .users import get_user_plugins

    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT s.id, s.user_id, s.expires_at, u.email, u.name, u.role, u.is_active "
            "FROM sessions s JOIN users u ON u.id = s.user_id "
            "WHERE s.id = ?",
            (session_id,),
        ).fetchone()
    if row is None:
        return None

    if datetime.fromisoformat(row["expires_at"]) < _utcnow():
        log.debug("Session for user %s expired", row["user_id"])
        delete_session(session_id, db_path=db_path)
        return None
    if not row["is_active"]:
        return None

    return {
        "id": row["id"],
        "user_id": row["user_id"],
        "expires_at": row["expires_at"],
        "user": {
            "id": row["user_id"],
            "email": row["email"],
            "name": row["name"] or "",
            "role": row["role"] or "user",
            "plugins": get_user_plugins(row["user_id"], db_path=db_path),
        },
    }


def delete_session(session_id: str, *, db_path=None) -> bool:
    with get_connection(db_path) as conn:
        cur = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
    return cur.rowcount > 0


def cleanup_expired_sessions(*, db_path=None) -> int:
    """Delete expired sessions; returns how many went."""
    with get_connection(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM sessions WHERE expires_at < ?", (_utcnow().isoformat(),),
        )
    if cur.rowcount:
        log.info("Removed %d expired sessions", cur.rowcount)
    return cur.rowcount
