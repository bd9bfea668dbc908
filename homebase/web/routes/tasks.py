"""Tasks JSON API (/api/tasks)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ... import tasks
from ...rules import validate_task
from ..dependencies import require_plugin
from ..responses import deleted, not_found, read_json, rejected, server_error

router = APIRouter()
_user = require_plugin("tasks")


def _with_defaults(data: dict) -> dict:
    data.setdefault("status", tasks.DEFAULT_STATUS)
    data.setdefault("priority", tasks.DEFAULT_PRIORITY)
    return data


@router.get("")
def tasks_list(user: dict = Depends(_user)):
    return tasks.list_tasks(user["id"])


@router.get("/{task_id}")
def tasks_detail(task_id: str, user: dict = Depends(_user)):
    task = tasks.get_task(user["id"], task_id)
    if not task:
        return not_found("Task")
    return task


@router.post("")
async def tasks_create(request: Request, user: dict = Depends(_user)):
    data = _with_defaults(await read_json(request))
    invalid = rejected(validate_task(data))
    if invalid:
        return invalid
    try:
        return tasks.create_task(user["id"], data)
    except Exception:
        return server_error("create task")


@router.put("/{task_id}")
async def tasks_update(task_id: str, request: Request, user: dict = Depends(_user)):
    data = _with_defaults(await read_json(request))
    invalid = rejected(validate_task(data))
    if invalid:
        return invalid
    try:
        task = tasks.update_task(user["id"], task_id, data)
    except Exception:
        return server_error("update task")
    if not task:
        return not_found("Task")
    return task


@router.delete("/{task_id}")
def tasks_delete(task_id: str, user: dict = Depends(_user)):
    if not tasks.delete_task(user["id"], task_id):
        return not_found("Task")
    return deleted("Task", task_id)
