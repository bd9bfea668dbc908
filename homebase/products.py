"""Products CRUD: the catalogue exported to sales channels."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone

from .database import get_connection, row_to_record
from .validation import UniqueViolation, parse_number, unique_violation

log = logging.getLogger(__name__)

DEFAULT_STATUS = "for sale"
DEFAULT_CURRENCY = "SEK"
DEFAULT_VAT_RATE = 25.0

_JSON_COLUMNS = ("images", "categories")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def _to_record(row) -> dict | None:
    return row_to_record(row, json_columns=_JSON_COLUMNS)


def _optional(value) -> str | None:
    """Blank strings are stored as NULL so they never collide."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_product(data: dict) -> dict:
    """Apply defaults and coercions to an incoming payload."""
    normalized = dict(data)
    normalized["productNumber"] = _optional(data.get("productNumber"))
    normalized["sku"] = _optional(data.get("sku"))
    normalized["title"] = (data.get("title") or "").strip()
    normalized["status"] = data.get("status") or DEFAULT_STATUS
    quantity = data.get("quantity", 0)
    if isinstance(quantity, float) and quantity.is_integer():
        quantity = int(quantity)
    normalized["quantity"] = quantity if quantity is not None else 0
    price = data.get("priceAmount", 0)
    normalized["priceAmount"] = price if price is not None else 0
    vat_rate = data.get("vatRate")
    normalized["vatRate"] = DEFAULT_VAT_RATE if vat_rate is None or vat_rate == "" else vat_rate
    normalized["currency"] = (data.get("currency") or DEFAULT_CURRENCY).strip().upper()
    normalized["images"] = list(data.get("images") or [])
    normalized["categories"] = list(data.get("categories") or [])
    return normalized


def _values(data: dict) -> tuple:
    return (
        data["productNumber"],
        data["sku"],
        data["title"],
        data.get("description"),
        data["status"],
        int(data["quantity"]),
        parse_number(data["priceAmount"]) or 0.0,
        data["currency"],
        parse_number(data["vatRate"]),
        data.get("mainImage"),
        json.dumps(data["images"]),
        json.dumps(data["categories"]),
        data.get("brand"),
        data.get("gtin"),
    )


def _translate(exc: sqlite3.IntegrityError, data: dict) -> UniqueViolation | None:
    number = data.get("productNumber")
    sku = data.get("sku")
    return unique_violation(exc, {
        "product_number": (
            "productNumber",
            f'Product number "{number}" already exists' if number else "Product number already exists",
        ),
        "sku": ("sku", f'SKU "{sku}" already exists' if sku else "SKU already exists"),
    })


def list_products(user_id: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM products WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
    return [_to_record(r) for r in rows]


def get_product(user_id: str, product_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM products WHERE id = ? AND user_id = ?",
            (product_id, user_id),
        ).fetchone()
    return _to_record(row)


def get_products_by_ids(user_id: str, product_ids: list[str]) -> list[dict]:
    if not product_ids:
        return []
    placeholders = ", ".join("?" for _ in product_ids)
    with get_connection() as conn:
        rows = conn.execute(
            f"SELECT * FROM products WHERE user_id = ? AND id IN ({placeholders})",
            (user_id, *product_ids),
        ).fetchall()
    by_id = {r["id"]: _to_record(r) for r in rows}
    return [by_id[i] for i in product_ids if i in by_id]


def create_product(user_id: str, data: dict) -> dict:
    """Insert a normalized product. Raises UniqueViolation on number/SKU clash."""
    data = normalize_product(data)
    now = _now()
    product_id = _uuid()
    try:
        with get_connection() as conn:
            conn.execute(
                "INSERT INTO products "
                "(id, user_id, product_number, sku, title, description, status, quantity, "
                "price_amount, currency, vat_rate, main_image, images, categories, brand, "
                "gtin, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (product_id, user_id, *_values(data), now, now),
            )
    except sqlite3.IntegrityError as exc:
        violation = _translate(exc, data)
        if violation:
            raise violation from exc
        raise
    return get_product(user_id, product_id)


def update_product(user_id: str, product_id: str, data: dict) -> dict | None:
    data = normalize_product(data)
    try:
        with get_connection() as conn:
            cur = conn.execute(
                "UPDATE products SET product_number = ?, sku = ?, title = ?, description = ?, "
                "status = ?, quantity = ?, price_amount = ?, currency = ?, vat_rate = ?, "
                "main_image = ?, images = ?, categories = ?, brand = ?, gtin = ?, "
                "updated_at = ? WHERE id = ? AND user_id = ?",
                (*_values(data), _now(), product_id, user_id),
            )
    except sqlite3.IntegrityError as exc:
        violation = _translate(exc, data)
        if violation:
            raise violation from exc
        raise
    if cur.rowcount == 0:
        return None
    return get_product(user_id, product_id)


def delete_product(user_id: str, product_id: str) -> bool:
    with get_connection() as conn:
        cur = conn.execute(
            "DELETE FROM products WHERE id = ? AND user_id = ?",
            (product_id, user_id),
        )
        if cur.rowcount:
            conn.execute(
                "DELETE FROM channel_product_map WHERE product_id = ? AND user_id = ?",
                (product_id, user_id),
            )
    return cur.rowcount > 0
