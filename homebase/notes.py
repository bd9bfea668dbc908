"""Notes CRUD: free-text notes with inline @mention spans to contacts."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from .database import get_connection, row_to_record

log = logging.getLogger(__name__)

_MENTION_KEYS = ("contactId", "contactName", "companyName", "position", "length")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def _to_record(row) -> dict | None:
    return row_to_record(row, json_columns=("mentions",))


# ---------------------------------------------------------------------------
# Mentions
# ---------------------------------------------------------------------------

def normalize_mentions(content: str, mentions: list[dict] | None) -> list[dict]:
    """Keep only well-formed mention spans that fall inside *content*.

    A mention is ``{contactId, contactName, companyName, position, length}``
    where ``position``/``length`` address a slice of the note text.
    """
    cleaned: list[dict] = []
    for mention in mentions or []:
        if not isinstance(mention, dict) or not mention.get("contactId"):
            continue
        try:
            position = int(mention.get("position", -1))
            length = int(mention.get("length", 0))
        except (TypeError, ValueError):
            continue
        if position < 0 or length <= 0 or position + length > len(content or ""):
            log.debug("Dropping out-of-range mention %r", mention)
            continue
        entry = {key: mention.get(key) for key in _MENTION_KEYS}
        entry["position"] = position
        entry["length"] = length
        cleaned.append(entry)
    return sorted(cleaned, key=lambda m: m["position"])


def mentions_contact(record: dict, contact_id: str) -> bool:
    return any(m.get("contactId") == contact_id for m in record.get("mentions") or [])


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def list_notes(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM notes WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
    return [_to_record(r) for r in rows]


def get_note(user_id: str, note_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM notes WHERE id = ? AND user_id = ?",
            (note_id, user_id),
        ).fetchone()
    return _to_record(row)


def create_note(user_id: str, data: dict) -> dict:
    now = _now()
    note_id = _uuid()
    content = data.get("content") or ""
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO notes (id, user_id, title, content, mentions, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (note_id, user_id, (data.get("title") or "").strip(), content,
             json.dumps(normalize_mentions(content, data.get("mentions"))), now, now),
        )
    return get_note(user_id, note_id)


def update_note(user_id: str, note_id: str, data: dict) -> dict | None:
    """Update title, content and mentions. Returns None if not found."""
    content = data.get("content") or ""
    with get_connection() as conn:
        cur = conn.execute(
            "UPDATE notes SET title = ?, content = ?, mentions = ?, updated_at = ? "
            "WHERE id = ? AND user_id = ?",
            ((data.get("title") or "").strip(), content,
             json.dumps(normalize_mentions(content, data.get("mentions"))),
             _now(), note_id, user_id),
        )
    if cur.rowcount == 0:
        return None
    return get_note(user_id, note_id)


def delete_note(user_id: str, note_id: str) -> bool:
    """Delete a note, then the tasks that were created from it.

    The two deletes run on separate connections; a failure between them
    leaves the tasks in place.
    """
    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM notes WHERE id = ? AND user_id = ?",
            (note_id, user_id),
        )
    if cur.rowcount == 0:
        return False

    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM tasks WHERE created_from_note = ? AND user_id = ?",
            (note_id, user_id),
        )
    if cur.rowcount:
        log.info("Deleted %d task(s) created from note %s", cur.rowcount, note_id)
    return True
