"""Configuration loading from environment variables and defaults."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


# Database
DB_PATH = Path(_env("HOMEBASE_DB_PATH", "") or str(_PROJECT_ROOT / "data" / "homebase.db"))

# Authentication
AUTH_ENABLED = _env("HOMEBASE_AUTH_ENABLED", "true").lower() in ("true", "1", "yes")
SESSION_TTL_HOURS = int(_env("SESSION_TTL_HOURS", "720"))
SESSION_COOKIE = "homebase_session"
SUPERUSER_ROLE = "superuser"

# File uploads
UPLOAD_DIR = Path(_env("HOMEBASE_UPLOAD_DIR", "") or str(_PROJECT_ROOT / "data" / "uploads"))
MAX_UPLOAD_MB = int(_env("HOMEBASE_MAX_UPLOAD_MB", "25"))
MAX_UPLOAD_FILES = int(_env("HOMEBASE_MAX_UPLOAD_FILES", "20"))
ALLOWED_UPLOAD_TYPES = frozenset({
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    "application/pdf",
    "text/plain",
    "text/csv",
    "application/zip",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
})

# Contacts
DEFAULT_PHONE_COUNTRY = _env("HOMEBASE_DEFAULT_PHONE_COUNTRY", "SE")

# Console client (talks to a running server)
API_URL = _env("HOMEBASE_API_URL", "http://127.0.0.1:8000")

# Outbound HTTP (WooCommerce)
HTTP_TIMEOUT = float(_env("HOMEBASE_HTTP_TIMEOUT", "15"))
