"""FastAPI application factory for the Homebase API."""

from __future__ import annotations

import importlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from ..database import init_db
from ..plugins import PLUGINS

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTPException as ``{"error": detail}`` like every other failure."""
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


def create_app() -> FastAPI:
    app = FastAPI(title="Homebase", lifespan=lifespan)
    app.add_exception_handler(HTTPException, _http_exception_handler)

    from .middleware import AuthMiddleware
    app.add_middleware(AuthMiddleware)

    from .routes import auth_routes

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/plugins")
    def plugin_catalogue(request: Request):
        """Plugins visible to the current user, in catalogue order."""
        from ..users import can_access_plugin

        user = request.state.user
        return [
            {"name": p.name, "label": p.label}
            for p in PLUGINS.values()
            if user and can_access_plugin(user, p.name)
        ]

    app.include_router(auth_routes.router, prefix="/api/auth")

    for plugin in PLUGINS.values():
        if not plugin.route_module:
            continue
        module = importlib.import_module(f".routes.{plugin.route_module}", __package__)
        app.include_router(module.router, prefix=f"/api/{plugin.name}")
        log.debug("Mounted plugin %s at /api/%s", plugin.name, plugin.name)

    return app
