"""Products JSON API (/api/products)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ... import products
from ...rules import validate_product
from ...validation import UniqueViolation
from ..dependencies import require_plugin
from ..responses import deleted, field_errors, not_found, read_json, rejected, server_error

router = APIRouter()
_user = require_plugin("products")


@router.get("")
def products_list(user: dict = Depends(_user)):
    return products.list_products(user["id"])


@router.get("/{product_id}")
def products_detail(product_id: str, user: dict = Depends(_user)):
    product = products.get_product(user["id"], product_id)
    if not product:
        return not_found("Product")
    return product


@router.post("")
async def products_create(request: Request, user: dict = Depends(_user)):
    data = products.normalize_product(await read_json(request))
    invalid = rejected(validate_product(data))
    if invalid:
        return invalid
    try:
        return products.create_product(user["id"], data)
    except UniqueViolation as exc:
        return field_errors(exc.errors, 409)
    except Exception:
        return server_error("create product")


@router.put("/{product_id}")
async def products_update(product_id: str, request: Request, user: dict = Depends(_user)):
    data = products.normalize_product(await read_json(request))
    invalid = rejected(validate_product(data))
    if invalid:
        return invalid
    try:
        product = products.update_product(user["id"], product_id, data)
    except UniqueViolation as exc:
        return field_errors(exc.errors, 409)
    except Exception:
        return server_error("update product")
    if not product:
        return not_found("Product")
    return product


@router.delete("/{product_id}")
def products_delete(product_id: str, user: dict = Depends(_user)):
    if not products.delete_product(user["id"], product_id):
        return not_found("Product")
    return deleted("Product", product_id)
