"""Invoices CRUD with yearly numbering and payment-terms due dates."""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timedelta, timezone

from .database import get_connection, next_yearly_number, row_to_record
from .rules import parse_date
from .validation import parse_number

log = logging.getLogger(__name__)

DEFAULT_CURRENCY = "SEK"
DEFAULT_STATUS = "draft"

_NET_TERMS_RE = re.compile(r"net\s*(\d+)", re.IGNORECASE)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def due_date_from_terms(invoice_date, payment_terms: str | None) -> str | None:
    """``Net 30`` on 2024-07-01 gives ``2024-07-31``; None if not derivable."""
    start = parse_date(invoice_date)
    match = _NET_TERMS_RE.search(payment_terms or "")
    if start is None or match is None:
        return None
    return (start + timedelta(days=int(match.group(1)))).isoformat()


def _values(data: dict) -> tuple:
    due_date = data.get("dueDate") or due_date_from_terms(
        data.get("invoiceDate"), data.get("paymentTerms"),
    )
    return (
        data.get("contactId") or None,
        (data.get("customerName") or "").strip(),
        data.get("invoiceDate"),
        due_date,
        parse_number(data.get("amountDue")) or 0.0,
        data.get("currency") or DEFAULT_CURRENCY,
        data.get("serviceDescription"),
        data.get("paymentTerms"),
        data.get("referenceNumber"),
        data.get("category"),
        data.get("status") or DEFAULT_STATUS,
    )


def list_invoices(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM invoices WHERE user_id = ? ORDER BY invoice_number DESC",
            (user_id,),
        ).fetchall()
    return [row_to_record(r) for r in rows]


def get_invoice(user_id: str, invoice_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM invoices WHERE id = ? AND user_id = ?",
            (invoice_id, user_id),
        ).fetchone()
    return row_to_record(row)


def create_invoice(user_id: str, data: dict) -> dict:
    now = _now()
    invoice_id = _uuid()
    with get_connection() as conn:
        number = next_yearly_number(
            conn, "invoices", "invoice_number", user_id, datetime.now(timezone.utc).year,
        )
        conn.execute(
            "INSERT INTO invoices "
            "(id, user_id, invoice_number, contact_id, customer_name, invoice_date, due_date, "
            "amount_due, currency, service_description, payment_terms, reference_number, "
            "category, status, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (invoice_id, user_id, number, *_values(data), now, now),
        )
    return get_invoice(user_id, invoice_id)


def update_invoice(user_id: str, invoice_id: str, data: dict) -> dict | None:
    with get_connection() as conn:
        cur = conn.execute(
            "UPDATE invoices SET contact_id = ?, customer_name = ?, invoice_date = ?, "
            "due_date = ?, amount_due = ?, currency = ?, service_description = ?, "
            "payment_terms = ?, reference_number = ?, category = ?, status = ?, "
            "updated_at = ? WHERE id = ? AND user_id = ?",
            (*_values(data), _now(), invoice_id, user_id),
        )
    if cur.rowcount == 0:
        return None
    return get_invoice(user_id, invoice_id)


def delete_invoice(user_id: str, invoice_id: str) -> bool:
    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM invoices WHERE id = ? AND user_id = ?",
            (invoice_id, user_id),
        )
    return cur.rowcount > 0
