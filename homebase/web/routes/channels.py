"""Channels JSON API (/api/channels): summaries and per-product toggles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ... import channels, products
from ...validation import FieldError, is_blank
from ..dependencies import require_plugin
from ..responses import field_errors, not_found, read_json, server_error

router = APIRouter()
_user = require_plugin("channels")


def _not_implemented() -> JSONResponse:
    return JSONResponse({"error": "Not implemented"}, status_code=501)


@router.get("")
def channels_list(user: dict = Depends(_user)):
    try:
        return channels.list_channel_summaries(user["id"])
    except Exception:
        return server_error("fetch channels")


@router.get("/map")
def channels_map(channel: str | None = None, user: dict = Depends(_user)):
    return channels.list_product_maps(user["id"], channel)


@router.get("/errors")
def channels_errors(channel: str | None = None, user: dict = Depends(_user)):
    return channels.list_channel_errors(user["id"], channel)


@router.put("/map")
async def channels_set_map(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    errors = []
    if is_blank(data.get("productId")):
        errors.append(FieldError("productId", "productId is required"))
    if is_blank(data.get("channel")):
        errors.append(FieldError("channel", "channel is required"))
    if errors:
        return field_errors(errors)
    if not products.get_product(user["id"], str(data["productId"])):
        return not_found("Product")
    return channels.set_product_enabled(
        user["id"], str(data["productId"]), data["channel"], bool(data.get("enabled")),
    )


@router.post("")
def channels_create(user: dict = Depends(_user)):
    return _not_implemented()


@router.put("/{channel_id}")
def channels_update(channel_id: str, user: dict = Depends(_user)):
    return _not_implemented()


@router.delete("/{channel_id}")
def channels_delete(channel_id: str, user: dict = Depends(_user)):
    return _not_implemented()
