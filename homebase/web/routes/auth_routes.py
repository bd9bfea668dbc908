"""Login / logout / current-user routes (/api/auth)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ... import config
from ...passwords import verify_password
from ...session import create_session, delete_session
from ...users import get_user_by_email, get_user_plugins, public_user
from ..dependencies import get_current_user
from ..responses import read_json

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
async def login(request: Request):
    data = await read_json(request)
    email = str(data.get("email") or "").strip()
    password = str(data.get("password") or "")

    user = get_user_by_email(email) if email else None
    if (
        not user
        or not user.get("is_active")
        or not user.get("password_hash")
        or not verify_password(password, user["password_hash"])
    ):
        log.info("Failed login for %r", email)
        return JSONResponse({"error": "Invalid credentials"}, status_code=401)

    ip = request.client.host if request.client else ""
    ua = request.headers.get("user-agent", "")
    session = create_session(
        user["id"],
        ip_address=ip,
        user_agent=ua,
    )

    user["plugins"] = get_user_plugins(user["id"])
    response = JSONResponse({"user": public_user(user)})
    response.set_cookie(
        config.SESSION_COOKIE,
        session["id"],
        httponly=True,
        samesite="lax",
        max_age=config.SESSION_TTL_HOURS * 3600,
    )
    return response


@router.post("/logout")
def logout(request: Request):
    session_id = request.cookies.get(config.SESSION_COOKIE)
    if session_id:
        delete_session(session_id)
    response = JSONResponse({"message": "Logged out"})
    response.delete_cookie(config.SESSION_COOKIE)
    return response


@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return {"user": public_user(user)}
