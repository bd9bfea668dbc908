"""Estimates CRUD with yearly numbering and server-computed totals."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from .database import get_connection, next_yearly_number, row_to_record
from .validation import parse_number

log = logging.getLogger(__name__)

DEFAULT_CURRENCY = "SEK"
DEFAULT_STATUS = "draft"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def _to_record(row) -> dict | None:
    return row_to_record(row, json_columns=("line_items",))


def calculate_totals(line_items: list[dict]) -> dict:
    """Sum ``quantity * unitPrice`` and VAT (``vatRate`` percent) per line.

    Returns ``{"subtotal", "totalVat", "total"}`` rounded to 2 decimals.
    """
    subtotal = 0.0
    total_vat = 0.0
    for item in line_items:
        line = (parse_number(item.get("quantity")) or 0) * (parse_number(item.get("unitPrice")) or 0)
        subtotal += line
        total_vat += line * (parse_number(item.get("vatRate")) or 0) / 100
    return {
        "subtotal": round(subtotal, 2),
        "totalVat": round(total_vat, 2),
        "total": round(subtotal + total_vat, 2),
    }


def _values(data: dict) -> tuple:
    line_items = data.get("lineItems") or []
    totals = calculate_totals(line_items)
    return (
        data.get("contactId"),
        data.get("contactName"),
        data.get("organizationNumber"),
        data.get("currency") or DEFAULT_CURRENCY,
        json.dumps(line_items),
        data.get("notes") or "",
        data.get("validTo"),
        totals["subtotal"],
        totals["totalVat"],
        totals["total"],
        data.get("status") or DEFAULT_STATUS,
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def list_estimates(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM estimates WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
    return [_to_record(r) for r in rows]


def get_estimate(user_id: str, estimate_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM estimates WHERE id = ? AND user_id = ?",
            (estimate_id, user_id),
        ).fetchone()
    return _to_record(row)


def next_estimate_number(user_id: str, *, year: int | None = None) -> str:
    year = year or datetime.now(timezone.utc).year
    with get_connection() as conn:
        return next_yearly_number(conn, "estimates", "estimate_number", user_id, year)


def create_estimate(user_id: str, data: dict) -> dict:
    now = _now()
    estimate_id = _uuid()
    with get_connection() as conn:
        number = next_yearly_number(
            conn, "estimates", "estimate_number", user_id, datetime.now(timezone.utc).year,
        )
        conn.execute(
            "INSERT INTO estimates "
            "(id, user_id, estimate_number, contact_id, contact_name, organization_number, "
            "currency, line_items, notes, valid_to, subtotal, total_vat, total, status, "
            "created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (estimate_id, user_id, number, *_values(data), now, now),
        )
    log.info("Created estimate %s", number)
    return get_estimate(user_id, estimate_id)


def update_estimate(user_id: str, estimate_id: str, data: dict) -> dict | None:
    """Update an estimate; its number never changes. Returns None if not found."""
    with get_connection() as conn:
        cur = conn.execute(
            "UPDATE estimates SET contact_id = ?, contact_name = ?, organization_number = ?, "
            "currency = ?, line_items = ?, notes = ?, valid_to = ?, subtotal = ?, "
            "total_vat = ?, total = ?, status = ?, updated_at = ? "
            "WHERE id = ? AND user_id = ?",
            (*_values(data), _now(), estimate_id, user_id),
        )
    if cur.rowcount == 0:
        return None
    return get_estimate(user_id, estimate_id)


def delete_estimate(user_id: str, estimate_id: str) -> bool:
    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM estimates WHERE id = ? AND user_id = ?",
            (estimate_id, user_id),
        )
    return cur.rowcount > 0
