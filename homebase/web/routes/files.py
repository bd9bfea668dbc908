"""Files JSON API (/api/files): metadata CRUD, multipart upload, raw serving."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from ... import config, files
from ...rules import validate_file
from ..dependencies import require_plugin
from ..responses import deleted, not_found, read_json, rejected, server_error

log = logging.getLogger(__name__)

router = APIRouter()
_user = require_plugin("files")


@router.get("")
def files_list(user: dict = Depends(_user)):
    return files.list_files(user["id"])


@router.post("/upload")
async def files_upload(files_in: list[UploadFile] = File(..., alias="files"), user: dict = Depends(_user)):
    if not files_in:
        return JSONResponse({"error": "No files uploaded"}, status_code=400)
    if len(files_in) > config.MAX_UPLOAD_FILES:
        return JSONResponse(
            {"error": f"Too many files (max {config.MAX_UPLOAD_FILES})"}, status_code=400,
        )

    blocked = [
        f"{f.filename} ({f.content_type or 'unknown'})"
        for f in files_in
        if (f.content_type or "") not in config.ALLOWED_UPLOAD_TYPES
    ]
    if blocked:
        return JSONResponse({"error": f"Blocked file types: {', '.join(blocked)}"}, status_code=400)

    max_bytes = config.MAX_UPLOAD_MB * 1024 * 1024
    payloads = []
    for upload in files_in:
        data = await upload.read()
        if len(data) > max_bytes:
            return JSONResponse(
                {"error": f"File too large (max {config.MAX_UPLOAD_MB}MB)"}, status_code=400,
            )
        payloads.append((upload, data))

    created = []
    for upload, data in payloads:
        name = Path(upload.filename or "file").name
        stored_name = files.save_upload(name, data)
        created.append(files.record_upload(user["id"], name, len(data), upload.content_type, stored_name))
    log.info("Stored %d upload(s) for user %s", len(created), user["id"])
    return created


@router.get("/raw/{filename}")
def files_raw(filename: str, user: dict = Depends(_user)):
    stored_name = Path(filename).name
    if not stored_name:
        return JSONResponse({"error": "Missing filename"}, status_code=400)
    record = files.get_file_by_stored_name(user["id"], stored_name)
    path = files.storage_path(stored_name)
    if not record or not path.is_file():
        return not_found("File")
    return FileResponse(path, media_type=record.get("mimeType"), filename=record["name"])


@router.get("/{file_id}")
def files_detail(file_id: str, user: dict = Depends(_user)):
    record = files.get_file(user["id"], file_id)
    if not record:
        return not_found("File")
    return record


@router.post("")
async def files_create(request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_file(data))
    if invalid:
        return invalid
    try:
        return files.create_file(user["id"], data)
    except Exception:
        return server_error("create file")


@router.put("/{file_id}")
async def files_update(file_id: str, request: Request, user: dict = Depends(_user)):
    data = await read_json(request)
    invalid = rejected(validate_file(data))
    if invalid:
        return invalid
    record = files.update_file(user["id"], file_id, data)
    if not record:
        return not_found("File")
    return record


@router.delete("/{file_id}")
def files_delete(file_id: str, user: dict = Depends(_user)):
    if not files.delete_file(user["id"], file_id):
        return not_found("File")
    return deleted("File", file_id)
