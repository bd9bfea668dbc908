"""Invoices JSON API (/api/invoices)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ... import invoices
from ...rules import validate_invoice
from ..dependencies import require_plugin
from ..responses import deleted, not_found, read_json, rejected, server_error

router = APIRouter()
_user = require_plugin("invoices")


@router.get("")
def invoices_list(user: dict = Depends(_user)):
    return invoices.list_invoices(user["id"])


@router.get("/{invoice_id}")
def invoices_detail(invoice_id: str, user: dict = Depends(_user)):
    invoice = invoices.get_invoice(user["id"], invoice_id)
    if not invoice:
        return not_found("Invoice")
    return invoice


@router.post("")
async def invoices_create(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_invoice(data))
    if invalid:
        return invalid
    try:
        return invoices.create_invoice(user["id"], data)
    except Exception:
        return server_error("create invoice")


@router.put("/{invoice_id}")
async def invoices_update(invoice_id: str, request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_invoice(data))
    if invalid:
        return invalid
    try:
        invoice = invoices.update_invoice(user["id"], invoice_id, data)
    except Exception:
        return server_error("update invoice")
    if not invoice:
        return not_found("Invoice")
    return invoice


@router.delete("/{invoice_id}")
def invoices_delete(invoice_id: str, user: dict = Depends(_user)):
    if not invoices.delete_invoice(user["id"], invoice_id):
        return not_found("Invoice")
    return deleted("Invoice", invoice_id)
