"""Import audit log API (/api/import)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ... import importer
from ..dependencies import require_plugin
from ..responses import read_json

router = APIRouter()
_user = require_plugin("import")


@router.get("/logs")
def import_logs(user: dict = Depends(_user)):
    return importer.list_import_logs(user["id"])


@router.post("/logs")
async def import_record_log(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    return importer.record_import_log(
        user["id"],
        str(data.get("importType") or "invoices"),
        total_rows=int(data.get("totalRows") or 0),
        created_count=int(data.get("createdCount") or 0),
        errors=list(data.get("errors") or []),
    )
