"""User files: upload metadata plus the stored bytes on disk."""

from __future__ import annotations

import logging
import re
import secrets
import time
import unicodedata
import uuid
from datetime import datetime, timezone
from pathlib import Path

from . import config
from .database import get_connection, row_to_record

log = logging.getLogger(__name__)

RAW_URL_PREFIX = "/api/files/raw/"

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def _to_record(row) -> dict | None:
    return row_to_record(row, hidden=("user_id", "stored_name"))


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def safe_stored_name(original_name: str) -> str:
    """``<millis>-<random>-<ascii-safe name>``; never contains a path separator."""
    ascii_name = (
        unicodedata.normalize("NFKD", Path(original_name or "file").name)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    ascii_name = _UNSAFE_CHARS_RE.sub("_", ascii_name).strip("._") or "file"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}-{ascii_name}"


def storage_path(stored_name: str) -> Path:
    return config.UPLOAD_DIR / Path(stored_name).name


def save_upload(original_name: str, data: bytes) -> str:
    """Write *data* under the upload dir. Returns the stored name."""
    stored_name = safe_stored_name(original_name)
    path = storage_path(stored_name)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return stored_name


def remove_stored_file(stored_name: str) -> bool:
    path = storage_path(stored_name)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        log.warning("Could not remove stored file %s: %s", path, exc)
        return False
    return True


# ---------------------------------------------------------------------------
# Metadata CRUD
# ---------------------------------------------------------------------------

def list_files(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM user_files WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
    return [_to_record(r) for r in rows]


def get_file(user_id: str, file_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM user_files WHERE id = ? AND user_id = ?",
            (file_id, user_id),
        ).fetchone()
    return _to_record(row)


def get_file_by_stored_name(user_id: str, stored_name: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM user_files WHERE user_id = ? AND stored_name = ?",
            (user_id, stored_name),
        ).fetchone()
    return _to_record(row)


def _insert_file(user_id: str, *, name: str, size, mime_type, url, stored_name) -> dict:
    now = _now()
    file_id = _uuid()
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO user_files "
            "(id, user_id, name, size, mime_type, url, stored_name, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (file_id, user_id, (name or "").strip(), size, mime_type, url, stored_name, now, now),
        )
    return get_file(user_id, file_id)


def create_file(user_id: str, data: dict) -> dict:
    """Metadata-only record. Only uploads may point at the raw route."""
    url = data.get("url")
    if url and url.startswith(RAW_URL_PREFIX):
        log.warning("Ignoring raw-route url on metadata record for user %s", user_id)
        url = None
    return _insert_file(
        user_id, name=data.get("name"), size=data.get("size"),
        mime_type=data.get("mimeType"), url=url, stored_name=None,
    )


def record_upload(user_id: str, name: str, size: int, mime_type: str | None, stored_name: str) -> dict:
    """Record bytes already written by ``save_upload``."""
    return _insert_file(
        user_id, name=name, size=size, mime_type=mime_type,
        url=f"{RAW_URL_PREFIX}{stored_name}", stored_name=stored_name,
    )


def update_file(user_id: str, file_id: str, data: dict) -> dict | None:
    """Rename a file. Size, type and url are fixed at upload."""
    with get_connection() as conn:
        cur = conn.execute(
            "UPDATE user_files SET name = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            ((data.get("name") or "").strip(), _now(), file_id, user_id),
        )
    if cur.rowcount == 0:
        return None
    return get_file(user_id, file_id)


def delete_file(user_id: str, file_id: str) -> dict | None:
    """Delete the record and, for uploads, its stored bytes. Returns the deleted record."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM user_files WHERE id = ? AND user_id = ?",
            (file_id, user_id),
        ).fetchone()
        if row is None:
            return None
        conn.execute("DELETE FROM user_files WHERE id = ?", (file_id,))
        stored_name = row["stored_name"]
        shared = stored_name and conn.execute(
            "SELECT 1 FROM user_files WHERE stored_name = ? LIMIT 1", (stored_name,),
        ).fetchone()
    if stored_name and not shared:
        remove_stored_file(stored_name)
    return _to_record(row)
