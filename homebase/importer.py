"""Text import of invoices: one comma-separated record per line.

Field order is positional::

    customer name, invoice date, amount due, service description,
    payment terms, reference number, category

Only the first three are required. Parsing never raises; each line yields a
``ParsedInvoiceLine`` carrying its own validity and error list, and the
caller decides what to post.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .database import get_connection, row_to_record
from .validation import parse_number

log = logging.getLogger(__name__)

MIN_FIELDS_MESSAGE = "Minimum 3 fields required: Customer Name, Invoice Date, Amount Due"

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d.%m.%Y", "%m/%d/%Y")


@dataclass
class ParsedInvoiceLine:
    line_number: int
    raw: str
    customer_name: str = ""
    invoice_date: str | None = None
    amount_due: str = ""
    service_description: str = ""
    payment_terms: str = ""
    reference_number: str = ""
    category: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "customerName": self.customer_name,
            "invoiceDate": self.invoice_date,
            "amountDue": self.amount_due,
            "serviceDescription": self.service_description,
            "paymentTerms": self.payment_terms,
            "referenceNumber": self.reference_number,
            "category": self.category,
            "isValid": self.is_valid,
            "errors": list(self.errors),
        }

    def to_invoice(self) -> dict:
        """Payload for ``POST /api/invoices``."""
        return {
            "customerName": self.customer_name,
            "invoiceDate": self.invoice_date,
            "amountDue": self.amount_due,
            "serviceDescription": self.service_description,
            "paymentTerms": self.payment_terms,
            "referenceNumber": self.reference_number,
            "category": self.category,
        }


def parse_date_to_iso(value: str) -> str | None:
    """Midnight UTC of *value* as ``YYYY-MM-DDTHH:MM:SS.000Z``; None if invalid."""
    text = value.strip()
    parsed = None
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def parse_invoice_line(line: str, line_number: int = 1) -> ParsedInvoiceLine:
    parts = [part.strip() for part in line.split(",")]
    result = ParsedInvoiceLine(line_number=line_number, raw=line)

    if len(parts) < 3:
        result.errors.append(MIN_FIELDS_MESSAGE)

    padded = parts + [""] * (7 - len(parts))
    (result.customer_name, date_text, result.amount_due, result.service_description,
     result.payment_terms, result.reference_number, result.category) = padded[:7]

    if not result.customer_name:
        result.errors.append("Customer name is required")

    if date_text:
        result.invoice_date = parse_date_to_iso(date_text)
        if result.invoice_date is None:
            result.errors.append("Invalid date format")
    else:
        result.errors.append("Invoice date is required")

    if not result.amount_due:
        result.errors.append("Amount due is required")
    else:
        amount = parse_number(result.amount_due)
        if amount is None or amount < 0:
            result.errors.append("Amount due must be a non-negative number")

    return result


def parse_invoice_text(text: str) -> list[ParsedInvoiceLine]:
    """Parse every non-blank line of *text*; line numbers are 1-based."""
    results = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        results.append(parse_invoice_line(line, number))
    return results


# ---------------------------------------------------------------------------
# Import audit log
# ---------------------------------------------------------------------------

def record_import_log(
    user_id: str,
    import_type: str,
    *,
    total_rows: int,
    created_count: int,
    errors: list[dict],
) -> dict:
    log_id = str(uuid.uuid4())
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO import_logs "
            "(id, user_id, import_type, total_rows, created_count, error_count, errors, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (log_id, user_id, import_type, total_rows, created_count, len(errors),
             json.dumps(errors), datetime.now(timezone.utc).isoformat()),
        )
        row = conn.execute("SELECT * FROM import_logs WHERE id = ?", (log_id,)).fetchone()
    log.info("Import %s: %d/%d rows created", import_type, created_count, total_rows)
    return row_to_record(row, json_columns=("errors",))


def list_import_logs(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM import_logs WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
    return [row_to_record(r, json_columns=("errors",)) for r in rows]
