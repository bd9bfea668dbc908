"""Concrete plugin contexts, one per catalogue entry.

Contacts, notes, tasks and estimates are the older plugins and open an
existing item straight into edit mode; the rest open into view mode.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Callable

from .. import importer
from ..products import normalize_product
from ..rules import (
    next_sequence_number,
    validate_contact,
    validate_estimate,
    validate_file,
    validate_invoice,
    validate_note,
    validate_product,
    validate_task,
    validate_woo_settings,
)
from ..validation import FieldError, blocking_errors
from .api import ApiError
from .context import PanelMode, PluginContext

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Contacts, notes, tasks
# ---------------------------------------------------------------------------

class ContactContext(PluginContext):
    plugin_name = "contacts"
    item_label = "contact"
    validator = staticmethod(validate_contact)

    def next_contact_number(self) -> str:
        return next_sequence_number(self.items, "contactNumber")

    def prepare(self, data: dict) -> dict:
        data = dict(data)
        if not self.current_item and not str(data.get("contactNumber") or "").strip():
            data["contactNumber"] = self.next_contact_number()
        return data

    def describe(self, item: dict) -> str:
        return str(item.get("companyName") or self.item_label)

    def panel_subtitle(self) -> str:
        if not self.current_item:
            return ""
        kind = "Private person" if self.current_item.get("contactType") == "private" else "Company"
        return f"#{self.current_item.get('contactNumber')} {kind}"


class NoteContext(PluginContext):
    plugin_name = "notes"
    item_label = "note"
    validator = staticmethod(validate_note)


class TaskContext(PluginContext):
    plugin_name = "tasks"
    item_label = "task"
    date_fields = ("dueDate",)
    validator = staticmethod(validate_task)

    def prepare(self, data: dict) -> dict:
        data = dict(data)
        data.setdefault("status", "not started")
        data.setdefault("priority", "Medium")
        return data

    def open_from_note(self, note: dict) -> None:
        """Start a new task prefilled from *note*."""
        self.open_for_create({
            "title": note.get("title") or "",
            "content": note.get("content") or "",
            "mentions": list(note.get("mentions") or []),
            "createdFromNote": note.get("id"),
        })

    def duplicate(self, task: dict) -> dict | None:
        copy = {k: v for k, v in task.items() if k not in ("id", "createdAt", "updatedAt")}
        copy["title"] = f"{task.get('title') or ''} (Copy)"
        copy["status"] = "not started"
        try:
            saved = self.resource.create(copy)
        except ApiError as exc:
            log.warning("Duplicating task %s failed: %s", task.get("id"), exc)
            self.validation_errors = [FieldError("general", "Failed to duplicate task. Please try again.")]
            return None
        self._upsert_local(saved)
        return saved


# ---------------------------------------------------------------------------
# Estimates and invoices
# ---------------------------------------------------------------------------

class EstimateContext(PluginContext):
    plugin_name = "estimates"
    item_label = "estimate"
    date_fields = ("validTo",)
    validator = staticmethod(validate_estimate)

    def describe(self, item: dict) -> str:
        number = item.get("estimateNumber")
        return f"Estimate {number}" if number else self.item_label

    def open_for_contact(self, contact: dict, *, valid_days: int = 30) -> None:
        """Start a new estimate for *contact*."""
        self.open_for_create({
            "contactId": contact.get("id"),
            "contactName": contact.get("companyName") or "",
            "organizationNumber": contact.get("organizationNumber") or "",
            "currency": contact.get("currency") or "SEK",
            "lineItems": [],
            "validTo": (date.today() + timedelta(days=valid_days)).isoformat(),
            "status": "draft",
        })


class InvoiceContext(PluginContext):
    plugin_name = "invoices"
    item_label = "invoice"
    open_item_mode = PanelMode.VIEW
    date_fields = ("invoiceDate", "dueDate")
    validator = staticmethod(validate_invoice)

    def describe(self, item: dict) -> str:
        number = item.get("invoiceNumber")
        return f"Invoice {number}" if number else str(item.get("customerName") or self.item_label)


# ---------------------------------------------------------------------------
# Products, files, channels
# ---------------------------------------------------------------------------

class ProductContext(PluginContext):
    plugin_name = "products"
    item_label = "product"
    open_item_mode = PanelMode.VIEW
    validator = staticmethod(validate_product)

    def prepare(self, data: dict) -> dict:
        return normalize_product(data)

    def panel_subtitle(self) -> str:
        if not self.current_item:
            return ""
        sku = self.current_item.get("sku")
        return f"SKU {sku}" if sku else ""


class FileContext(PluginContext):
    plugin_name = "files"
    item_label = "file"
    open_item_mode = PanelMode.VIEW
    validator = staticmethod(validate_file)

    def upload(self, paths: list[str | Path], content_types: dict[str, str] | None = None) -> list[dict]:
        """Upload local files; returns the created records."""
        content_types = content_types or {}
        parts = []
        for path in paths:
            path = Path(path)
            mime = content_types.get(path.name, "application/octet-stream")
            parts.append(("files", (path.name, path.read_bytes(), mime)))
        try:
            created = self.resource.call("POST", "/upload", files=parts)
        except ApiError as exc:
            log.warning("Upload failed: %s", exc)
            self.validation_errors = [FieldError("files", exc.message)]
            return []
        for record in created:
            self._upsert_local(record)
        self.validation_errors = []
        return created


class ChannelContext(PluginContext):
    plugin_name = "channels"
    item_label = "channel"
    open_item_mode = PanelMode.VIEW

    def describe(self, item: dict) -> str:
        return str(item.get("name") or item.get("id") or self.item_label)

    def save(self, data: dict) -> bool:
        self.validation_errors = [FieldError("general", "Channels cannot be edited here")]
        return False

    def delete(self, item_id) -> bool:
        self.validation_errors = [FieldError("general", "Channels cannot be deleted")]
        return False

    def set_product_enabled(self, product_id: str, channel: str, enabled: bool) -> dict | None:
        try:
            mapping = self.resource.call(
                "PUT", "/map", json={"productId": product_id, "channel": channel, "enabled": enabled},
            )
        except ApiError as exc:
            log.warning("Toggling %s for product %s failed: %s", channel, product_id, exc)
            self.validation_errors = [FieldError("general", "Failed to update channel. Please try again.")]
            return None
        self.load()
        return mapping

    def product_maps(self, channel: str | None = None) -> list[dict]:
        params = {"channel": channel} if channel else None
        return self.resource.call("GET", "/map", params=params)


# ---------------------------------------------------------------------------
# WooCommerce settings
# ---------------------------------------------------------------------------

class WooCommerceContext(PluginContext):
    """Single settings record instead of a collection."""

    plugin_name = "woocommerce-products"
    item_label = "WooCommerce settings"
    open_item_mode = PanelMode.VIEW
    validator = staticmethod(validate_woo_settings)

    def __init__(self, resource, registry=None):
        super().__init__(resource, registry)
        self.settings: dict | None = None
        self.last_result: dict | None = None

    def load(self) -> list[dict]:
        try:
            self.settings = self.resource.call("GET", "/settings")
            self.load_error = None
        except ApiError as exc:
            log.warning("Failed to load WooCommerce settings: %s", exc)
            self.load_error = exc.message
        self.items = [self.settings] if self.settings else []
        return self.items

    def save(self, data: dict) -> bool:
        errors = self.validate(data)
        self.validation_errors = errors
        if blocking_errors(errors):
            return False
        try:
            saved = self.resource.call("PUT", "/settings", json=data)
        except ApiError as exc:
            log.warning("Saving WooCommerce settings failed: %s", exc)
            self.validation_errors = list(exc.field_errors) or [
                FieldError("general", "Failed to save WooCommerce settings. Please try again."),
            ]
            return False
        self.settings = saved
        self.items = [saved]
        self.current_item = saved
        self.mode = PanelMode.VIEW
        self.validation_errors = []
        return True

    def delete(self, item_id=None) -> bool:
        self.validation_errors = [FieldError("general", "WooCommerce settings cannot be deleted")]
        return False

    def describe(self, item: dict) -> str:
        return str(item.get("storeUrl") or self.item_label)

    def panel_title(self) -> str:
        return self.item_label

    def test_connection(self, data: dict | None = None) -> dict | None:
        try:
            self.last_result = self.resource.call("POST", "/test", json=data or {})
        except ApiError as exc:
            self.validation_errors = [FieldError("general", exc.message)]
            self.last_result = None
        return self.last_result

    def export_products(self, product_ids: list[str]) -> dict | None:
        try:
            self.last_result = self.resource.call(
                "POST", "/products/export", json={"productIds": list(product_ids)},
            )
        except ApiError as exc:
            log.warning("WooCommerce export failed: %s", exc)
            self.validation_errors = [FieldError("general", exc.message)]
            self.last_result = None
        return self.last_result


# ---------------------------------------------------------------------------
# Invoice import
# ---------------------------------------------------------------------------

class ImportContext(PluginContext):
    """Parse pasted invoice lines and post the valid ones one by one.

    *invoices* is the invoice context or a callable returning it, looked up
    on every use so a later mount of the invoices plugin is picked up.
    """

    plugin_name = "import"
    item_label = "import"
    open_item_mode = PanelMode.VIEW

    def __init__(
        self,
        resource,
        registry=None,
        invoices: InvoiceContext | Callable[[], InvoiceContext | None] | None = None,
    ):
        super().__init__(resource, registry)
        self._invoices = invoices
        self.parsed: list[importer.ParsedInvoiceLine] = []
        self.summary: dict | None = None

    @property
    def invoices(self) -> InvoiceContext | None:
        if self._invoices is None or isinstance(self._invoices, PluginContext):
            return self._invoices
        return self._invoices()

    def load(self) -> list[dict]:
        try:
            self.items = list(self.resource.call("GET", "/logs"))
            self.load_error = None
        except ApiError as exc:
            log.warning("Failed to load import logs: %s", exc)
            self.load_error = exc.message
        return self.items

    def parse(self, text: str) -> list[importer.ParsedInvoiceLine]:
        self.parsed = importer.parse_invoice_text(text)
        return self.parsed

    def execute(self) -> dict:
        """Post every valid parsed row to the invoices API and log the run."""
        invoices = self.invoices
        if invoices is None:
            raise RuntimeError("Invoice context not available for import")

        created, failed = [], []
        for row in self.parsed:
            if not row.is_valid:
                failed.append({"line": row.line_number, "errors": list(row.errors)})
                continue
            try:
                invoice = invoices.resource.create(row.to_invoice())
            except ApiError as exc:
                failed.append({"line": row.line_number, "errors": [exc.message]})
                continue
            invoices._upsert_local(invoice)
            created.append(invoice)

        self.summary = {
            "totalRows": len(self.parsed),
            "createdCount": len(created),
            "errors": failed,
        }
        try:
            log_entry = self.resource.call("POST", "/logs", json={"importType": "invoices", **self.summary})
            self.items.insert(0, log_entry)
        except ApiError as exc:
            log.warning("Recording import log failed: %s", exc)
        return self.summary

    def save(self, data: dict) -> bool:
        self.parse(str(data.get("text") or ""))
        if self.invoices is None:
            self.validation_errors = [FieldError("general", "Invoices plugin is not available")]
            return False
        if not self.parsed:
            self.validation_errors = [FieldError("text", "Nothing to import")]
            return False
        summary = self.execute()
        self.validation_errors = [
            FieldError("general", f"Line {e['line']}: {'; '.join(e['errors'])}")
            for e in summary["errors"]
        ]
        return not summary["errors"]

    def delete(self, item_id=None) -> bool:
        self.validation_errors = [FieldError("general", "Import logs cannot be deleted")]
        return False

    def panel_title(self) -> str:
        return "Import invoices"


PLUGIN_CONTEXTS: dict[str, type[PluginContext]] = {
    cls.plugin_name: cls
    for cls in (
        ContactContext, NoteContext, TaskContext, EstimateContext, InvoiceContext,
        ProductContext, FileContext, ChannelContext, WooCommerceContext, ImportContext,
    )
}
