"""Business-rule validators for each plugin's records.

Every validator takes the candidate payload (camelCase keys, as sent over
the API), the collection it is checked against and the id of the record
being edited, which is excluded from uniqueness checks. The console runs
them against its in-memory collections; the server runs them with an
empty collection for required-field checks and relies on the database's
unique constraints for the rest.
"""

from __future__ import annotations

import re
from datetime import date, datetime

import phonenumbers

from . import config
from .validation import FieldError, is_blank, parse_number

TASK_STATUSES = ("not started", "in progress", "Done", "Canceled")
TASK_PRIORITIES = ("Low", "Medium", "High")
ESTIMATE_STATUSES = ("draft", "sent", "accepted", "rejected")
INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "canceled")
PRODUCT_STATUSES = ("for sale", "draft", "archived")

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_GTIN_RE = re.compile(r"^\d{8,14}$")


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    return str(value).strip() if value is not None else ""


def _others(existing: list[dict], current_id) -> list[dict]:
    return [r for r in existing if current_id is None or r.get("id") != current_id]


def next_sequence_number(existing: list[dict], key: str) -> str:
    """Largest numeric value of *key* plus one, zero-padded to two digits."""
    numbers = []
    for record in existing:
        try:
            numbers.append(int(str(record.get(key) or "").strip()))
        except ValueError:
            continue
    return str((max(numbers) if numbers else 0) + 1).zfill(2)


def parse_date(value) -> date | None:
    """Accept a date, a datetime or an ISO string; None when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if is_blank(value):
        return None
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------

def _phone_region(data: dict) -> str:
    for address in data.get("addresses") or []:
        country = str((address or {}).get("country") or "").strip()
        if len(country) == 2:
            return country.upper()
    return config.DEFAULT_PHONE_COUNTRY


def phone_looks_valid(raw: str, region: str) -> bool:
    """Lenient length check via ``phonenumbers.is_possible_number``."""
    try:
        parsed = phonenumbers.parse(raw, region)
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_possible_number(parsed)


def validate_contact(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    errors: list[FieldError] = []
    others = _others(list(existing), current_id)
    contact_type = data.get("contactType") or "company"

    number = _text(data, "contactNumber")
    if not number:
        errors.append(FieldError("contactNumber", "Contact number is required"))
    else:
        clash = next((c for c in others if str(c.get("contactNumber") or "") == number), None)
        if clash:
            errors.append(FieldError(
                "contactNumber",
                f'Contact number "{number}" already exists for "{clash.get("companyName")}"',
            ))

    if is_blank(data.get("companyName")):
        message = "Company name is required" if contact_type == "company" else "Full name is required"
        errors.append(FieldError("companyName", message))

    org_number = _text(data, "organizationNumber")
    if contact_type == "company" and org_number:
        clash = next(
            (c for c in others
             if c.get("contactType", "company") == "company"
             and str(c.get("organizationNumber") or "").strip() == org_number),
            None,
        )
        if clash:
            errors.append(FieldError(
                "organizationNumber",
                f'Organization number already exists for "{clash.get("companyName")}"',
            ))

    personal_number = _text(data, "personalNumber")
    if contact_type == "private" and personal_number:
        clash = next(
            (c for c in others
             if c.get("contactType") == "private"
             and str(c.get("personalNumber") or "").strip() == personal_number),
            None,
        )
        if clash:
            errors.append(FieldError(
                "personalNumber",
                f'Personal number already exists for "{clash.get("companyName")}"',
            ))

    email = _text(data, "email").lower()
    if email:
        clash = next(
            (c for c in others if str(c.get("email") or "").strip().lower() == email),
            None,
        )
        if clash:
            errors.append(FieldError.advisory(
                "email", f'Email already exists for "{clash.get("companyName")}"',
            ))

    region = _phone_region(data)
    for key in ("phone", "phone2"):
        raw = _text(data, key)
        if raw and not phone_looks_valid(raw, region):
            errors.append(FieldError.advisory(key, f'Phone number "{raw}" looks invalid'))

    return errors


# ---------------------------------------------------------------------------
# Notes and tasks
# ---------------------------------------------------------------------------

def validate_note(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    errors: list[FieldError] = []
    if is_blank(data.get("title")):
        errors.append(FieldError("title", "Note title is required"))
    if is_blank(data.get("content")):
        errors.append(FieldError("content", "Note content is required"))
    return errors


def validate_task(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    errors: list[FieldError] = []
    if is_blank(data.get("title")):
        errors.append(FieldError("title", "Task title is required"))
    if is_blank(data.get("content")):
        errors.append(FieldError("content", "Task description is required"))
    if data.get("status") not in TASK_STATUSES:
        errors.append(FieldError("status", "Task status is required"))
    if data.get("priority") not in TASK_PRIORITIES:
        errors.append(FieldError("priority", "Task priority is required"))
    if not is_blank(data.get("dueDate")) and parse_date(data.get("dueDate")) is None:
        errors.append(FieldError("dueDate", "Due date is not a valid date"))
    return errors


# ---------------------------------------------------------------------------
# Estimates and invoices
# ---------------------------------------------------------------------------

def validate_estimate(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    errors: list[FieldError] = []
    if is_blank(data.get("contactId")):
        errors.append(FieldError("contactId", "Customer is required"))

    line_items = data.get("lineItems") or []
    if not line_items:
        errors.append(FieldError("lineItems", "At least one line item is required"))
    for index, item in enumerate(line_items, start=1):
        if is_blank(item.get("description")):
            errors.append(FieldError(
                f"lineItems.{index - 1}.description",
                f"Line item {index}: Description is required",
            ))
        quantity = parse_number(item.get("quantity"))
        if quantity is None or quantity <= 0:
            errors.append(FieldError(
                f"lineItems.{index - 1}.quantity",
                f"Line item {index}: Quantity must be greater than 0",
            ))
        unit_price = parse_number(item.get("unitPrice"))
        if unit_price is None or unit_price < 0:
            errors.append(FieldError(
                f"lineItems.{index - 1}.unitPrice",
                f"Line item {index}: Unit price must be 0 or greater",
            ))

    if is_blank(data.get("validTo")):
        errors.append(FieldError("validTo", "Valid to date is required"))
    if data.get("status") and data["status"] not in ESTIMATE_STATUSES:
        errors.append(FieldError("status", f"Status must be one of: {', '.join(ESTIMATE_STATUSES)}"))
    return errors


def validate_invoice(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    errors: list[FieldError] = []
    if is_blank(data.get("customerName")):
        errors.append(FieldError("customerName", "Customer name is required"))
    if is_blank(data.get("invoiceDate")):
        errors.append(FieldError("invoiceDate", "Invoice date is required"))
    elif parse_date(data.get("invoiceDate")) is None:
        errors.append(FieldError("invoiceDate", "Invoice date is not a valid date"))

    amount = parse_number(data.get("amountDue"))
    if amount is None or amount < 0:
        errors.append(FieldError("amountDue", "Amount due must be a non-negative number"))

    if data.get("status") and data["status"] not in INVOICE_STATUSES:
        errors.append(FieldError("status", f"Status must be one of: {', '.join(INVOICE_STATUSES)}"))

    reference = _text(data, "referenceNumber")
    if reference:
        clash = next(
            (i for i in _others(list(existing), current_id)
             if str(i.get("referenceNumber") or "").strip() == reference),
            None,
        )
        if clash:
            errors.append(FieldError.advisory(
                "referenceNumber",
                f'Reference number "{reference}" is already used by invoice {clash.get("invoiceNumber")}',
            ))
    return errors


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def validate_product(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    errors: list[FieldError] = []
    others = _others(list(existing), current_id)

    if is_blank(data.get("title")):
        errors.append(FieldError("title", "Title is required"))
    if data.get("status") not in PRODUCT_STATUSES:
        errors.append(FieldError("status", f"Status must be one of: {', '.join(PRODUCT_STATUSES)}"))

    quantity = data.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        errors.append(FieldError("quantity", "Quantity must be a non-negative integer"))
    price = parse_number(data.get("priceAmount"))
    if price is None or price < 0:
        errors.append(FieldError("priceAmount", "Price must be a non-negative number"))
    vat_rate = parse_number(data.get("vatRate"))
    if vat_rate is None or not 0 <= vat_rate <= 50:
        errors.append(FieldError("vatRate", "VAT rate must be between 0 and 50"))

    currency = _text(data, "currency").upper()
    if not currency:
        errors.append(FieldError("currency", "Currency is required"))
    elif not _CURRENCY_RE.match(currency):
        errors.append(FieldError("currency", "Currency must be a 3-letter code (e.g., SEK)"))

    product_number = _text(data, "productNumber")
    if product_number:
        clash = next((p for p in others if str(p.get("productNumber") or "") == product_number), None)
        if clash:
            errors.append(FieldError(
                "productNumber",
                f'Product number "{product_number}" already exists (used by "{clash.get("title")}")',
            ))
    sku = _text(data, "sku")
    if sku:
        clash = next((p for p in others if str(p.get("sku") or "") == sku), None)
        if clash:
            errors.append(FieldError("sku", f'SKU "{sku}" already exists (used by "{clash.get("title")}")'))

    gtin = _text(data, "gtin")
    if gtin and not _GTIN_RE.match(gtin):
        errors.append(FieldError.from_message("gtin", "Warning: GTIN should be 8-14 digits"))
    return errors


# ---------------------------------------------------------------------------
# Files and channel settings
# ---------------------------------------------------------------------------

def validate_file(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    if is_blank(data.get("name")):
        return [FieldError("name", "Filename is required")]
    return []


def validate_woo_settings(data: dict, existing: list[dict] = (), current_id=None) -> list[FieldError]:
    errors: list[FieldError] = []
    url = _text(data, "storeUrl")
    if not url:
        errors.append(FieldError("storeUrl", "Store URL is required"))
    elif not url.startswith(("http://", "https://")):
        errors.append(FieldError("storeUrl", "Store URL must start with http:// or https://"))
    if is_blank(data.get("consumerKey")):
        errors.append(FieldError("consumerKey", "Consumer key is required"))
    if is_blank(data.get("consumerSecret")):
        errors.append(FieldError("consumerSecret", "Consumer secret is required"))
    return errors
