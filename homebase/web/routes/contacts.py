"""Contacts JSON API (/api/contacts)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ... import contacts
from ...rules import validate_contact
from ...validation import UniqueViolation, is_blank
from ..dependencies import require_plugin
from ..responses import deleted, field_errors, not_found, read_json, rejected, server_error

router = APIRouter()
_user = require_plugin("contacts")


@router.get("")
def contacts_list(user: dict = Depends(_user)):
    return contacts.list_contacts(user["id"])


@router.get("/next-number")
def contacts_next_number(user: dict = Depends(_user)):
    return {"contactNumber": contacts.next_contact_number(user["id"])}


@router.get("/{contact_id}")
def contacts_detail(contact_id: str, user: dict = Depends(_user)):
    contact = contacts.get_contact(user["id"], contact_id)
    if not contact:
        return not_found("Contact")
    return contact


@router.post("")
async def contacts_create(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    if is_blank(data.get("contactNumber")):
        data["contactNumber"] = contacts.next_contact_number(user["id"])
    invalid = rejected(validate_contact(data))
    if invalid:
        return invalid
    try:
        return contacts.create_contact(user["id"], data)
    except UniqueViolation as exc:
        return field_errors(exc.errors, 409)
    except Exception:
        return server_error("create contact")


@router.put("/{contact_id}")
async def contacts_update(contact_id: str, request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_contact(data))
    if invalid:
        return invalid
    try:
        contact = contacts.update_contact(user["id"], contact_id, data)
    except UniqueViolation as exc:
        return field_errors(exc.errors, 409)
    except Exception:
        return server_error("update contact")
    if not contact:
        return not_found("Contact")
    return contact


@router.delete("/{contact_id}")
def contacts_delete(contact_id: str, user: dict = Depends(_user)):
    if not contacts.delete_contact(user["id"], contact_id):
        return not_found("Contact")
    return deleted("Contact", contact_id)
