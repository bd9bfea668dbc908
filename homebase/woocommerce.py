"""WooCommerce channel: store settings, connection test and product export."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from . import config
from .channels import WOOCOMMERCE, log_channel_error, record_sync_result
from .database import get_connection, row_to_record

log = logging.getLogger(__name__)

API_PATH = "/wp-json/wc/v3"


class WooCommerceError(Exception):
    """The store could not be reached or answered with garbage."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def get_settings(user_id: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM woocommerce_settings WHERE user_id = ?", (user_id,),
        ).fetchone()
    return row_to_record(row, bool_columns=("use_query_auth",))


def upsert_settings(user_id: str, data: dict) -> dict:
    now = _now()
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO woocommerce_settings "
            "(user_id, store_url, consumer_key, consumer_secret, use_query_auth, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET store_url = excluded.store_url, "
            "consumer_key = excluded.consumer_key, "
            "consumer_secret = excluded.consumer_secret, "
            "use_query_auth = excluded.use_query_auth, updated_at = excluded.updated_at",
            (user_id, normalize_base_url(data.get("storeUrl")),
             str(data.get("consumerKey") or "").strip(),
             str(data.get("consumerSecret") or "").strip(),
             1 if data.get("useQueryAuth") else 0, now, now),
        )
    return get_settings(user_id)


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

def normalize_base_url(url: str | None) -> str:
    return str(url or "").strip().rstrip("/")


def map_status_to_woo(status: str | None) -> str:
    status = str(status or "").lower()
    if status in ("for sale", "active", "publish"):
        return "publish"
    if status == "draft":
        return "draft"
    if status in ("archived", "private"):
        return "private"
    return "draft"


def map_product_to_woo(product: dict) -> dict:
    """Translate a product record into a WooCommerce product payload."""
    images = []
    if product.get("mainImage"):
        images.append({"src": product["mainImage"]})
    images.extend({"src": src} for src in product.get("images") or [] if src)

    payload = {
        "sku": product.get("sku"),
        "name": product.get("title") or "",
        "status": map_status_to_woo(product.get("status")),
        "manage_stock": True,
        "description": product.get("description") or "",
    }
    if product.get("priceAmount") is not None:
        payload["regular_price"] = str(product["priceAmount"])
    if product.get("quantity") is not None:
        payload["stock_quantity"] = int(product["quantity"])
    if images:
        payload["images"] = images
    if product.get("brand"):
        payload["attributes"] = [{"name": "brand", "options": [str(product["brand"])]}]
    return payload


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def _http_client() -> httpx.Client:
    return httpx.Client(timeout=config.HTTP_TIMEOUT)


def _request(settings: dict, method: str, url: str, *, json_body: dict | None = None) -> httpx.Response:
    """Send a request with Basic auth, or query-string keys when configured."""
    params = None
    auth = None
    if settings.get("useQueryAuth"):
        params = {
            "consumer_key": settings["consumerKey"],
            "consumer_secret": settings["consumerSecret"],
        }
    else:
        auth = (settings["consumerKey"], settings["consumerSecret"])
    try:
        with _http_client() as client:
            return client.request(method, url, params=params, auth=auth, json=json_body)
    except httpx.HTTPError as exc:
        raise WooCommerceError(str(exc)) from exc


def _body(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


def check_connection(settings: dict) -> dict:
    """GET the API root. Raises WooCommerceError if the store is unreachable."""
    endpoint = f"{normalize_base_url(settings.get('storeUrl'))}{API_PATH}"
    response = _request(settings, "GET", endpoint)
    return {
        "ok": response.is_success,
        "status": response.status_code,
        "statusText": response.reason_phrase,
        "endpoint": endpoint,
        "body": _body(response),
    }


def export_products(user_id: str, settings: dict, products: list[dict]) -> dict:
    """Batch-create *products* in the store and record per-product outcomes.

    Results are matched back to products by SKU. Products without a matching
    created SKU are marked ``error`` and logged to the channel error log.
    """
    endpoint = f"{normalize_base_url(settings.get('storeUrl'))}{API_PATH}/products/batch"
    payload = {"create": [map_product_to_woo(p) for p in products]}
    response = _request(settings, "POST", endpoint, json_body=payload)
    body = _body(response)

    created: dict[str, object] = {}
    if isinstance(body, dict):
        for key in ("create", "update"):
            for item in body.get(key) or []:
                sku = str((item or {}).get("sku") or "").strip()
                if sku and not item.get("error"):
                    created[sku] = item.get("id")

    upstream_error = None
    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        upstream_error = "; ".join(
            e.get("message") for e in body["errors"] if isinstance(e, dict) and e.get("message")
        ) or None

    items = []
    for product in products:
        sku = str(product.get("sku") or "").strip()
        if sku and sku in created:
            record_sync_result(
                user_id, product["id"], WOOCOMMERCE,
                status="success", external_id=created[sku],
            )
            items.append({
                "productId": product["id"], "sku": sku,
                "status": "success", "externalId": created[sku],
            })
            continue
        message = upstream_error or "Export failed"
        record_sync_result(user_id, product["id"], WOOCOMMERCE, status="error", error=message)
        log_channel_error(user_id, WOOCOMMERCE, message, product_id=product["id"], payload=product)
        items.append({"productId": product["id"], "sku": sku, "status": "error", "error": message})

    return {
        "ok": response.is_success,
        "status": response.status_code,
        "endpoint": endpoint,
        "counts": {
            "requested": len(products),
            "success": sum(1 for i in items if i["status"] == "success"),
            "error": sum(1 for i in items if i["status"] == "error"),
        },
        "items": items,
    }
