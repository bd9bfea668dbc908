"""Contacts CRUD: companies and private persons owned by a user."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone

from .database import get_connection, row_to_record
from .rules import next_sequence_number
from .validation import UniqueViolation, unique_violation

log = logging.getLogger(__name__)

_JSON_COLUMNS = ("contact_persons", "addresses")

# camelCase payload key -> column
_FIELDS = {
    "contactNumber": "contact_number",
    "contactType": "contact_type",
    "companyName": "company_name",
    "companyType": "company_type",
    "organizationNumber": "organization_number",
    "vatNumber": "vat_number",
    "personalNumber": "personal_number",
    "contactPersons": "contact_persons",
    "addresses": "addresses",
    "email": "email",
    "phone": "phone",
    "phone2": "phone2",
    "website": "website",
    "taxRate": "tax_rate",
    "paymentTerms": "payment_terms",
    "currency": "currency",
    "fTax": "f_tax",
    "notes": "notes",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def _to_record(row) -> dict | None:
    return row_to_record(row, json_columns=_JSON_COLUMNS, bool_columns=("f_tax",))


def _column_values(data: dict) -> dict:
    values = {}
    for key, column in _FIELDS.items():
        value = data.get(key)
        if column in _JSON_COLUMNS:
            value = json.dumps(value or [])
        elif column == "f_tax":
            value = 1 if value else 0
        values[column] = value
    values["contact_type"] = values["contact_type"] or "company"
    return values


def _translate(exc: sqlite3.IntegrityError, number) -> UniqueViolation | None:
    return unique_violation(exc, {
        "contact_number": ("contactNumber", f'Contact number "{number}" already exists'),
    })


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def list_contacts(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM contacts WHERE user_id = ? ORDER BY contact_number",
            (user_id,),
        ).fetchall()
    return [_to_record(r) for r in rows]


def get_contact(user_id: str, contact_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM contacts WHERE id = ? AND user_id = ?",
            (contact_id, user_id),
        ).fetchone()
    return _to_record(row)


def next_contact_number(user_id: str) -> str:
    return next_sequence_number(list_contacts(user_id), "contactNumber")


def create_contact(user_id: str, data: dict) -> dict:
    """Insert a contact. A missing contact number gets the next free one.

    Raises UniqueViolation when the number is already taken.
    """
    values = _column_values(data)
    if not (values["contact_number"] or "").strip():
        values["contact_number"] = next_contact_number(user_id)

    now = _now()
    contact_id = _uuid()
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    try:
        with get_connection() as conn:
            conn.execute(
                f"INSERT INTO contacts (id, user_id, {columns}, created_at, updated_at) "
                f"VALUES (?, ?, {placeholders}, ?, ?)",
                (contact_id, user_id, *values.values(), now, now),
            )
    except sqlite3.IntegrityError as exc:
        violation = _translate(exc, values["contact_number"])
        if violation:
            raise violation from exc
        raise
    return get_contact(user_id, contact_id)


def update_contact(user_id: str, contact_id: str, data: dict) -> dict | None:
    """Replace a contact's fields. Returns None if not found."""
    values = _column_values(data)
    assignments = ", ".join(f"{column} = ?" for column in values)
    try:
        with get_connection() as conn:
            cur = conn.execute(
                f"UPDATE contacts SET {assignments}, updated_at = ? "
                "WHERE id = ? AND user_id = ?",
                (*values.values(), _now(), contact_id, user_id),
            )
    except sqlite3.IntegrityError as exc:
        violation = _translate(exc, values["contact_number"])
        if violation:
            raise violation from exc
        raise
    if cur.rowcount == 0:
        return None
    return get_contact(user_id, contact_id)


def delete_contact(user_id: str, contact_id: str) -> bool:
    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM contacts WHERE id = ? AND user_id = ?",
            (contact_id, user_id),
        )
    return cur.rowcount > 0
