"""Estimates JSON API (/api/estimates)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ... import estimates
from ...rules import validate_estimate
from ..dependencies import require_plugin
from ..responses import deleted, not_found, read_json, rejected, server_error

router = APIRouter()
_user = require_plugin("estimates")


@router.get("")
def estimates_list(user: dict = Depends(_user)):
    return estimates.list_estimates(user["id"])


@router.get("/next-number")
def estimates_next_number(user: dict = Depends(_user)):
    return {"estimateNumber": estimates.next_estimate_number(user["id"])}


@router.get("/{estimate_id}")
def estimates_detail(estimate_id: str, user: dict = Depends(_user)):
    estimate = estimates.get_estimate(user["id"], estimate_id)
    if not estimate:
        return not_found("Estimate")
    return estimate


@router.post("")
async def estimates_create(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_estimate(data))
    if invalid:
        return invalid
    try:
        return estimates.create_estimate(user["id"], data)
    except Exception:
        return server_error("create estimate")


@router.put("/{estimate_id}")
async def estimates_update(estimate_id: str, request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_estimate(data))
    if invalid:
        return invalid
    try:
        estimate = estimates.update_estimate(user["id"], estimate_id, data)
    except Exception:
        return server_error("update estimate")
    if not estimate:
        return not_found("Estimate")
    return estimate


@router.delete("/{estimate_id}")
def estimates_delete(estimate_id: str, user: dict = Depends(_user)):
    if not estimates.delete_estimate(user["id"], estimate_id):
        return not_found("Estimate")
    return deleted("Estimate", estimate_id)
