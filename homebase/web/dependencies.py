"""FastAPI dependencies for authentication and plugin entitlement."""

from __future__ import annotations

from typing import Callable

from fastapi import HTTPException, Request

from ..users import can_access_plugin


def get_current_user(request: Request) -> dict:
    """Return the authenticated user or raise 401."""
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_plugin(plugin_name: str) -> Callable[[Request], dict]:
    """Dependency factory: the user must be entitled to *plugin_name*."""

    def dependency(request: Request) -> dict:
        user = get_current_user(request)
        if not can_access_plugin(user, plugin_name):
            raise HTTPException(status_code=403, detail=f"Access denied to {plugin_name} plugin")
        return user

    return dependency
