"""Sales channels: per-product channel mappings and their sync state."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from .database import get_connection, row_to_record

log = logging.getLogger(__name__)

WOOCOMMERCE = "woocommerce"
SYNC_STATUSES = ("success", "error", "queued", "idle")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def sanitize_channel_key(channel: str | None) -> str:
    return str(channel or "").strip().lower()


def _to_record(row) -> dict | None:
    return row_to_record(row, bool_columns=("enabled",))


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def list_channel_summaries(user_id: str) -> list[dict]:
    """One summary per channel that has mappings, plus WooCommerce if configured."""
    with get_connection() as conn:
        channels = {
            r["channel"] for r in conn.execute(
                "SELECT DISTINCT channel FROM channel_product_map WHERE user_id = ?",
                (user_id,),
            ).fetchall()
        }
        woo_configured = conn.execute(
            "SELECT 1 FROM woocommerce_settings WHERE user_id = ? LIMIT 1",
            (user_id,),
        ).fetchone() is not None
        if woo_configured:
            channels.add(WOOCOMMERCE)

        summaries = []
        for channel in channels:
            stats = conn.execute(
                "SELECT COUNT(*) AS mapped_count, "
                "COALESCE(SUM(enabled = 1), 0) AS enabled_count, "
                "COALESCE(SUM(status = 'success'), 0) AS success_count, "
                "COALESCE(SUM(status = 'error'), 0) AS error_count, "
                "COALESCE(SUM(status = 'queued'), 0) AS queued_count, "
                "COALESCE(SUM(status = 'idle'), 0) AS idle_count, "
                "MAX(last_synced_at) AS last_synced_at "
                "FROM channel_product_map WHERE user_id = ? AND channel = ?",
                (user_id, channel),
            ).fetchone()
            summaries.append({
                "id": channel,
                "channel": channel,
                "configured": woo_configured if channel == WOOCOMMERCE else stats["mapped_count"] > 0,
                "mappedCount": stats["mapped_count"],
                "enabledCount": stats["enabled_count"],
                "status": {
                    "success": stats["success_count"],
                    "error": stats["error_count"],
                    "queued": stats["queued_count"],
                    "idle": stats["idle_count"],
                },
                "lastSyncedAt": stats["last_synced_at"],
            })

    return sorted(summaries, key=lambda s: s["channel"])


# ---------------------------------------------------------------------------
# Product mappings
# ---------------------------------------------------------------------------

def get_product_map(user_id: str, product_id: str, channel: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM channel_product_map "
            "WHERE user_id = ? AND product_id = ? AND channel = ?",
            (user_id, product_id, sanitize_channel_key(channel)),
        ).fetchone()
    return _to_record(row)


def list_product_maps(user_id: str, channel: str | None = None) -> list[dict]:
    sql = "SELECT * FROM channel_product_map WHERE user_id = ?"
    params: list = [user_id]
    if channel:
        sql += " AND channel = ?"
        params.append(sanitize_channel_key(channel))
    with get_connection() as conn:
        rows = conn.execute(sql + " ORDER BY channel, product_id", params).fetchall()
    return [_to_record(r) for r in rows]


def set_product_enabled(user_id: str, product_id: str, channel: str, enabled: bool) -> dict:
    """Toggle a product on a channel, creating the mapping on first use."""
    channel = sanitize_channel_key(channel)
    current = get_product_map(user_id, product_id, channel)
    now = _now()
    with get_connection() as conn:
        if current is None:
            conn.execute(
                "INSERT INTO channel_product_map "
                "(id, user_id, product_id, channel, enabled, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (_uuid(), user_id, product_id, channel, 1 if enabled else 0, now, now),
            )
        else:
            conn.execute(
                "UPDATE channel_product_map SET enabled = ?, updated_at = ? "
                "WHERE user_id = ? AND product_id = ? AND channel = ?",
                (1 if enabled else 0, now, user_id, product_id, channel),
            )
    return get_product_map(user_id, product_id, channel)


def record_sync_result(
    user_id: str,
    product_id: str,
    channel: str,
    *,
    status: str,
    external_id: str | None = None,
    error: str | None = None,
) -> dict:
    """Upsert the sync outcome for a product on a channel."""
    channel = sanitize_channel_key(channel)
    now = _now()
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO channel_product_map "
            "(id, user_id, product_id, channel, enabled, external_id, status, "
            "last_synced_at, last_error, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, 1, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(user_id, product_id, channel) DO UPDATE SET "
            "external_id = COALESCE(excluded.external_id, external_id), "
            "status = excluded.status, last_synced_at = excluded.last_synced_at, "
            "last_error = excluded.last_error, updated_at = excluded.updated_at",
            (_uuid(), user_id, product_id, channel,
             str(external_id) if external_id is not None else None,
             status, now, error, now, now),
        )
    return get_product_map(user_id, product_id, channel)


def log_channel_error(
    user_id: str,
    channel: str,
    message: str,
    *,
    product_id: str | None = None,
    payload: dict | None = None,
) -> None:
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO channel_error_log "
            "(id, user_id, channel, product_id, payload, error, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (_uuid(), user_id, sanitize_channel_key(channel), product_id,
             json.dumps(payload) if payload is not None else None, message, _now()),
        )
    log.warning("Channel %s export error for product %s: %s", channel, product_id, message)


def list_channel_errors(user_id: str, channel: str | None = None) -> list[dict]:
    sql = "SELECT * FROM channel_error_log WHERE user_id = ?"
    params: list = [user_id]
    if channel:
        sql += " AND channel = ?"
        params.append(sanitize_channel_key(channel))
    with get_connection() as conn:
        rows = conn.execute(sql + " ORDER BY created_at DESC", params).fetchall()
    return [row_to_record(r) for r in rows]
