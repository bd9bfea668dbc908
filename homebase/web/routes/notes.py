"""Notes JSON API (/api/notes)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ... import notes
from ...rules import validate_note
from ..dependencies import require_plugin
from ..responses import deleted, not_found, read_json, rejected, server_error

router = APIRouter()
_user = require_plugin("notes")


@router.get("")
def notes_list(user: dict = Depends(_user)):
    return notes.list_notes(user["id"])


@router.get("/{note_id}")
def notes_detail(note_id: str, user: dict = Depends(_user)):
    note = notes.get_note(user["id"], note_id)
    if not note:
        return not_found("Note")
    return note


@router.post("")
async def notes_create(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_note(data))
    if invalid:
        return invalid
    try:
        return notes.create_note(user["id"], data)
    except Exception:
        return server_error("create note")


@router.put("/{note_id}")
async def notes_update(note_id: str, request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_note(data))
    if invalid:
        return invalid
    try:
        note = notes.update_note(user["id"], note_id, data)
    except Exception:
        return server_error("update note")
    if not note:
        return not_found("Note")
    return note


@router.delete("/{note_id}")
def notes_delete(note_id: str, user: dict = Depends(_user)):
    """Deleting a note also deletes the tasks created from it."""
    if not notes.delete_note(user["id"], note_id):
        return not_found("Note")
    return deleted("Note", note_id)
