"""HTTP client for the Homebase API, used by the console contexts.

``ApiClient`` wraps one ``httpx.Client`` (and so keeps the session cookie
between calls); ``ResourceApi`` is the per-plugin CRUD facade built on it.
Responses are decoded into plain dicts with ISO timestamps turned into
``datetime`` objects. Failures surface as ``ApiError``; a 409 carries the
server's field errors so a context can show them next to the form fields.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import httpx

from .. import config
from ..validation import FieldError

log = logging.getLogger(__name__)

DEFAULT_DATE_FIELDS = ("createdAt", "updatedAt")


class ApiError(Exception):
    """A request failed: transport error, non-2xx status or bad payload."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        field_errors: list[FieldError] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.field_errors = field_errors or []


def parse_timestamp(value):
    """ISO string to ``datetime``; anything else is returned unchanged."""
    if not isinstance(value, str) or not value:
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value


def normalize_dates(record: dict, fields: tuple[str, ...] = DEFAULT_DATE_FIELDS) -> dict:
    normalized = dict(record)
    for key in fields:
        if key in normalized:
            normalized[key] = parse_timestamp(normalized[key])
    return normalized


def to_jsonable(value):
    """Recursively turn datetimes back into ISO strings for the wire."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


class ApiClient:
    """Session-holding client for ``/api``."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ):
        self._client = client or httpx.Client(
            base_url=base_url or config.API_URL,
            timeout=timeout or config.HTTP_TIMEOUT,
        )

    def close(self) -> None:
        self._client.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        files: Any = None,
        params: dict | None = None,
    ) -> Any:
        try:
            response = self._client.request(
                method,
                f"/api{path}",
                json=to_jsonable(json) if json is not None else None,
                files=files,
                params=params,
            )
        except httpx.HTTPError as exc:
            raise ApiError(f"Network error: {exc}") from exc

        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = None

        if response.is_success:
            return payload

        body = payload if isinstance(payload, dict) else {}
        errors = [FieldError.from_dict(e) for e in body.get("errors") or [] if isinstance(e, dict)]
        message = body.get("error") or (errors[0].message if errors else f"HTTP {response.status_code}")
        log.debug("%s %s -> %s %s", method, path, response.status_code, message)
        raise ApiError(message, status_code=response.status_code, field_errors=errors)

    # -- auth -------------------------------------------------------------

    def login(self, email: str, password: str) -> dict:
        return self.request("POST", "/auth/login", json={"email": email, "password": password})["user"]

    def logout(self) -> None:
        self.request("POST", "/auth/logout")

    def me(self) -> dict | None:
        try:
            return self.request("GET", "/auth/me")["user"]
        except ApiError as exc:
            if exc.status_code == 401:
                return None
            raise

    def resource(self, name: str, date_fields: tuple[str, ...] = ()) -> ResourceApi:
        return ResourceApi(self, name, DEFAULT_DATE_FIELDS + tuple(date_fields))


class ResourceApi:
    """CRUD calls for one plugin under ``/api/<name>``."""

    def __init__(self, api: ApiClient, name: str, date_fields: tuple[str, ...] = DEFAULT_DATE_FIELDS):
        self.api = api
        self.name = name
        self.date_fields = date_fields

    def _normalize(self, payload):
        if isinstance(payload, list):
            return [normalize_dates(r, self.date_fields) for r in payload if isinstance(r, dict)]
        if isinstance(payload, dict):
            return normalize_dates(payload, self.date_fields)
        return payload

    def call(self, method: str, suffix: str = "", **kwargs) -> Any:
        return self._normalize(self.api.request(method, f"/{self.name}{suffix}", **kwargs))

    def list(self) -> list[dict]:
        return self.call("GET")

    def get(self, item_id: str) -> dict:
        return self.call("GET", f"/{item_id}")

    def create(self, data: dict) -> dict:
        return self.call("POST", json=data)

    def update(self, item_id: str, data: dict) -> dict:
        return self.call("PUT", f"/{item_id}", json=data)

    def delete(self, item_id: str) -> dict:
        return self.api.request("DELETE", f"/{self.name}/{item_id}")
