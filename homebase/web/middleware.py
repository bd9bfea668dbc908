"""Session middleware: resolves the cookie into ``request.state.user``."""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .. import config

log = logging.getLogger(__name__)

_PUBLIC_PATHS = ("/api/auth/login", "/api/health")


def _is_protected(path: str) -> bool:
    return path.startswith("/api/") and path not in _PUBLIC_PATHS


class AuthMiddleware(BaseHTTPMiddleware):
    """401 for protected API paths without a live session.

    With ``HOMEBASE_AUTH_ENABLED=false`` every request runs as the first
    active user instead.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if not config.AUTH_ENABLED:
            request.state.user = self._bypass_user()
            return await call_next(request)

        from ..session import get_session

        session_id = request.cookies.get(config.SESSION_COOKIE)
        session = get_session(session_id) if session_id else None
        request.state.user = session["user"] if session else None

        if session is None and _is_protected(request.url.path):
            response = JSONResponse({"error": "Not authenticated"}, status_code=401)
            if session_id:
                response.delete_cookie(config.SESSION_COOKIE)
            return response
        return await call_next(request)

    @staticmethod
    def _bypass_user() -> dict | None:
        from ..users import get_first_active_user, public_user

        user = get_first_active_user()
        if user is None:
            log.warning("Auth bypass enabled but no active user exists")
            return None
        return public_user(user)
