"""Shared JSON response shapes for the plugin routes."""

from __future__ import annotations

import json
import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from ..validation import FieldError, blocking_errors, errors_payload

log = logging.getLogger(__name__)


async def read_json(request: Request) -> dict:
    """Parse the request body as a JSON object or raise 400."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="JSON body must be an object")
    return body


def not_found(label: str) -> JSONResponse:
    return JSONResponse({"error": f"{label} not found"}, status_code=404)


def deleted(label: str, item_id: str) -> dict:
    return {"message": f"{label} deleted successfully", "id": item_id}


def field_errors(errors: list[FieldError], status_code: int = 400) -> JSONResponse:
    return JSONResponse(errors_payload(errors), status_code=status_code)


def rejected(errors: list[FieldError]) -> JSONResponse | None:
    """400 response for blocking validation errors; None when there are none."""
    blocking = blocking_errors(errors)
    if blocking:
        return field_errors(blocking, 400)
    return None


def server_error(action: str) -> JSONResponse:
    log.exception("Failed to %s", action)
    return JSONResponse({"error": f"Failed to {action}"}, status_code=500)
