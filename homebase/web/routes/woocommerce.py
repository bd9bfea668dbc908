"""WooCommerce JSON API (/api/woocommerce-products): settings, test, export."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ... import products, woocommerce
from ...rules import validate_woo_settings
from ..dependencies import require_plugin
from ..responses import read_json, rejected, server_error

log = logging.getLogger(__name__)

router = APIRouter()
_user = require_plugin("woocommerce-products")


@router.get("/settings")
def woo_get_settings(user: dict = Depends(_user)):
    return woocommerce.get_settings(user["id"])


@router.put("/settings")
async def woo_put_settings(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_woo_settings(data))
    if invalid:
        return invalid
    try:
        return woocommerce.upsert_settings(user["id"], data)
    except Exception:
        return server_error("save WooCommerce settings")


@router.post("/test")
async def woo_test_connection(request: Request, user: dict = Depends(_user)):
    """Test either the credentials in the body or the saved settings."""
    body = await request.body()
    data = await read_json(request) if body else {}
    settings = data if data.get("storeUrl") else woocommerce.get_settings(user["id"])
    if not settings or validate_woo_settings(settings):
        return JSONResponse(
            {"error": "Missing WooCommerce credentials (storeUrl, consumerKey, consumerSecret)."},
            status_code=400,
        )
    try:
        return woocommerce.check_connection(settings)
    except woocommerce.WooCommerceError as exc:
        log.warning("WooCommerce connection test failed: %s", exc)
        return JSONResponse(
            {"error": "Failed to reach WooCommerce API", "detail": str(exc)}, status_code=502,
        )


@router.post("/products/export")
async def woo_export_products(request: Request, user: dict = Depends(_user)):
    """Export ``products`` (records) or ``productIds`` (looked up) to the store."""
    settings = woocommerce.get_settings(user["id"])
    if not settings:
        return JSONResponse(
            {"error": "WooCommerce settings not found. Save settings first."}, status_code=400,
        )

    data = await read_json(request)
    items = data.get("products")
    if not items and data.get("productIds"):
        items = products.get_products_by_ids(user["id"], [str(i) for i in data["productIds"]])
    if not isinstance(items, list) or not items:
        return JSONResponse(
            {"error": "Request must include products: [] or productIds: []."}, status_code=400,
        )

    try:
        summary = woocommerce.export_products(user["id"], settings, items)
    except woocommerce.WooCommerceError as exc:
        log.warning("WooCommerce export failed: %s", exc)
        return JSONResponse(
            {"error": "Export to WooCommerce failed", "detail": str(exc)}, status_code=502,
        )
    if not summary["ok"]:
        return JSONResponse(
            {"error": "WooCommerce batch export failed", **summary},
            status_code=summary["status"],
        )
    return summary
