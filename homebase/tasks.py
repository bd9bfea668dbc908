"""Tasks CRUD: to-dos with status, priority and an optional source note."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from .database import get_connection, row_to_record
from .notes import normalize_mentions

log = logging.getLogger(__name__)

DEFAULT_STATUS = "not started"
DEFAULT_PRIORITY = "Medium"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def _to_record(row) -> dict | None:
    return row_to_record(row, json_columns=("mentions",))


def _values(data: dict) -> tuple:
    content = data.get("content") or ""
    return (
        (data.get("title") or "").strip(),
        content,
        json.dumps(normalize_mentions(content, data.get("mentions"))),
        data.get("status") or DEFAULT_STATUS,
        data.get("priority") or DEFAULT_PRIORITY,
        data.get("dueDate") or None,
        data.get("assignedTo") or None,
        data.get("createdFromNote") or None,
    )


def list_tasks(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
    return [_to_record(r) for r in rows]


def get_task(user_id: str, task_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id),
        ).fetchone()
    return _to_record(row)


def create_task(user_id: str, data: dict) -> dict:
    now = _now()
    task_id = _uuid()
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO tasks "
            "(id, user_id, title, content, mentions, status, priority, due_date, "
            "assigned_to, created_from_note, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (task_id, user_id, *_values(data), now, now),
        )
    return get_task(user_id, task_id)


def update_task(user_id: str, task_id: str, data: dict) -> dict | None:
    with get_connection() as conn:
        cur = conn.execute(
            "UPDATE tasks SET title = ?, content = ?, mentions = ?, status = ?, "
            "priority = ?, due_date = ?, assigned_to = ?, created_from_note = ?, "
            "updated_at = ? WHERE id = ? AND user_id = ?",
            (*_values(data), _now(), task_id, user_id),
        )
    if cur.rowcount == 0:
        return None
    return get_task(user_id, task_id)


def delete_task(user_id: str, task_id: str) -> bool:
    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id),
        )
    return cur.rowcount > 0
