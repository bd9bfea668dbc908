"""SQLite connection management, schema initialization, and helpers."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from . import config

log = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- Users and plugin entitlements
CREATE TABLE IF NOT EXISTS users (
    id            TEXT PRIMARY KEY,
    email         TEXT NOT NULL UNIQUE,
    name          TEXT,
    role          TEXT DEFAULT 'user',
    password_hash TEXT,
    is_active     INTEGER DEFAULT 1,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_plugin_access (
    user_id     TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    plugin_name TEXT NOT NULL,
    is_active   INTEGER DEFAULT 1,
    created_at  TEXT NOT NULL,
    PRIMARY KEY (user_id, plugin_name)
);

CREATE TABLE IF NOT EXISTS sessions (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at  TEXT NOT NULL,
    expires_at  TEXT NOT NULL,
    ip_address  TEXT,
    user_agent  TEXT
);

-- Contacts
CREATE TABLE IF NOT EXISTS contacts (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    contact_number      TEXT NOT NULL,
    contact_type        TEXT DEFAULT 'company',
    company_name        TEXT,
    company_type        TEXT,
    organization_number TEXT,
    vat_number          TEXT,
    personal_number     TEXT,
    contact_persons     TEXT DEFAULT '[]',
    addresses           TEXT DEFAULT '[]',
    email               TEXT,
    phone               TEXT,
    phone2              TEXT,
    website             TEXT,
    tax_rate            TEXT,
    payment_terms       TEXT,
    currency            TEXT,
    f_tax               INTEGER DEFAULT 0,
    notes               TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    UNIQUE(user_id, contact_number)
);

-- Notes (mentions are denormalized spans into content)
CREATE TABLE IF NOT EXISTS notes (
    id         TEXT PRIMARY KEY,
    user_id    TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title      TEXT NOT NULL,
    content    TEXT NOT NULL,
    mentions   TEXT DEFAULT '[]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Tasks
CREATE TABLE IF NOT EXISTS tasks (
    id                TEXT PRIMARY KEY,
    user_id           TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title             TEXT NOT NULL,
    content           TEXT,
    mentions          TEXT DEFAULT '[]',
    status            TEXT DEFAULT 'not started',
    priority          TEXT DEFAULT 'Medium',
    due_date          TEXT,
    assigned_to       TEXT,
    created_from_note TEXT,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

-- Estimates
CREATE TABLE IF NOT EXISTS estimates (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    estimate_number     TEXT NOT NULL,
    contact_id          TEXT,
    contact_name        TEXT,
    organization_number TEXT,
    currency            TEXT DEFAULT 'SEK',
    line_items          TEXT DEFAULT '[]',
    notes               TEXT,
    valid_to            TEXT,
    subtotal            REAL DEFAULT 0,
    total_vat           REAL DEFAULT 0,
    total               REAL DEFAULT 0,
    status              TEXT DEFAULT 'draft',
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    UNIQUE(user_id, estimate_number)
);

-- Invoices
CREATE TABLE IF NOT EXISTS invoices (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    invoice_number      TEXT NOT NULL,
    contact_id          TEXT,
    customer_name       TEXT NOT NULL,
    invoice_date        TEXT,
    due_date            TEXT,
    amount_due          REAL DEFAULT 0,
    currency            TEXT DEFAULT 'SEK',
    service_description TEXT,
    payment_terms       TEXT,
    reference_number    TEXT,
    category            TEXT,
    status              TEXT DEFAULT 'draft',
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    UNIQUE(user_id, invoice_number)
);

-- Products
CREATE TABLE IF NOT EXISTS products (
    id             TEXT PRIMARY KEY,
    user_id        TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    product_number TEXT,
    sku            TEXT,
    title          TEXT NOT NULL,
    description    TEXT,
    status         TEXT DEFAULT 'for sale',
    quantity       INTEGER DEFAULT 0,
    price_amount   REAL DEFAULT 0,
    currency       TEXT DEFAULT 'SEK',
    vat_rate       REAL DEFAULT 25,
    main_image     TEXT,
    images         TEXT DEFAULT '[]',
    categories     TEXT DEFAULT '[]',
    brand          TEXT,
    gtin           TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL,
    UNIQUE(user_id, product_number),
    UNIQUE(user_id, sku)
);

-- Uploaded files
CREATE TABLE IF NOT EXISTS user_files (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    name        TEXT NOT NULL,
    size        INTEGER,
    mime_type   TEXT,
    url         TEXT,
    stored_name TEXT,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

-- Channels
CREATE TABLE IF NOT EXISTS channel_product_map (
    id             TEXT PRIMARY KEY,
    user_id        TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    product_id     TEXT NOT NULL,
    channel        TEXT NOT NULL,
    enabled        INTEGER DEFAULT 1,
    external_id    TEXT,
    status         TEXT DEFAULT 'idle',
    last_synced_at TEXT,
    last_error     TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL,
    UNIQUE(user_id, product_id, channel)
);

CREATE TABLE IF NOT EXISTS channel_error_log (
    id         TEXT PRIMARY KEY,
    user_id    TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    channel    TEXT NOT NULL,
    product_id TEXT,
    payload    TEXT,
    error      TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS woocommerce_settings (
    user_id         TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    store_url       TEXT NOT NULL,
    consumer_key    TEXT NOT NULL,
    consumer_secret TEXT NOT NULL,
    use_query_auth  INTEGER DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

-- Import audit
CREATE TABLE IF NOT EXISTS import_logs (
    id            TEXT PRIMARY KEY,
    user_id       TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    import_type   TEXT NOT NULL,
    total_rows    INTEGER DEFAULT 0,
    created_count INTEGER DEFAULT 0,
    error_count   INTEGER DEFAULT 0,
    errors        TEXT DEFAULT '[]',
    created_at    TEXT NOT NULL
);
"""

_INDEX_SQL = """\
CREATE INDEX IF NOT EXISTS idx_sessions_user        ON sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_contacts_user        ON contacts(user_id);
CREATE INDEX IF NOT EXISTS idx_notes_user           ON notes(user_id);
CREATE INDEX IF NOT EXISTS idx_tasks_user           ON tasks(user_id);
CREATE INDEX IF NOT EXISTS idx_tasks_from_note      ON tasks(created_from_note);
CREATE INDEX IF NOT EXISTS idx_estimates_user       ON estimates(user_id);
CREATE INDEX IF NOT EXISTS idx_invoices_user        ON invoices(user_id);
CREATE INDEX IF NOT EXISTS idx_products_user        ON products(user_id);
CREATE INDEX IF NOT EXISTS idx_user_files_user      ON user_files(user_id);
CREATE INDEX IF NOT EXISTS idx_channel_map_channel  ON channel_product_map(user_id, channel);
CREATE INDEX IF NOT EXISTS idx_channel_errors_user  ON channel_error_log(user_id);
"""


def _db_path() -> Path:
    return config.DB_PATH


def init_db(db_path: Path | None = None) -> None:
    """Create the database file and initialize all tables and indexes."""
    path = db_path or _db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        conn.executescript(_SCHEMA_SQL)
        conn.executescript(_INDEX_SQL)
        conn.commit()
        log.info("Database initialized at %s", path)
    finally:
        conn.close()


@contextmanager
def get_connection(db_path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """Context manager yielding a SQLite connection with WAL and FK enforcement.

    Commits on clean exit, rolls back on exception.
    """
    path = db_path or _db_path()
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Row shaping (snake_case columns → camelCase API records)
# ---------------------------------------------------------------------------

def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def row_to_record(
    row: sqlite3.Row | None,
    *,
    json_columns: tuple[str, ...] = (),
    bool_columns: tuple[str, ...] = (),
    hidden: tuple[str, ...] = ("user_id",),
) -> dict | None:
    """Convert a row to an API record: camelCase keys, JSON columns decoded."""
    if row is None:
        return None
    record = {}
    for key in row.keys():
        if key in hidden:
            continue
        value = row[key]
        if key in json_columns:
            value = json.loads(value) if value else []
        elif key in bool_columns:
            value = bool(value)
        record[to_camel(key)] = value
    return record


def next_yearly_number(conn: sqlite3.Connection, table: str, column: str,
                       user_id: str, year: int) -> str:
    """Next ``YYYY-NNN`` document number for *user_id* in *year*."""
    # sequence part compared as an integer
    row = conn.execute(
        f"SELECT MAX(CAST(substr({column}, ?) AS INTEGER)) FROM {table} "
        f"WHERE user_id = ? AND {column} LIKE ?",
        (len(str(year)) + 2, user_id, f"{year}-%"),
    ).fetchone()
    last = row[0] if row and row[0] is not None else 0
    return f"{year}-{last + 1:03d}"
