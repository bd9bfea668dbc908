"""Per-plugin data context: the collection, the panel state and CRUD actions.

A context owns one plugin's item list and the single side panel that shows
one item. The panel runs a small state machine::

    closed -> create -> (saved) -> closed
    closed -> edit(item) -> (saved | cancelled) -> view(item) | closed
    closed -> view(item) -> edit(item) | closed

Opening a panel first asks the close registry to shut every other plugin's
panel. ``save`` validates locally and only calls the server when no
blocking error remains; a 409 from the server lands in
``validation_errors`` the same way local errors do.

Subclasses set ``plugin_name``; the generic methods are then also exposed
under the plugin's derived names (``open_note_for_edit``,
``close_notes_panel``, ``save_note`` ...), see ``naming``.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable

from ..validation import FieldError, blocking_errors
from .api import ApiError
from .naming import install_named_aliases

log = logging.getLogger(__name__)


class PanelMode(str, enum.Enum):
    CREATE = "create"
    EDIT = "edit"
    VIEW = "view"


def _no_rules(data: dict, existing=(), current_id=None) -> list[FieldError]:
    return []


class PluginContext:
    plugin_name: str = ""
    item_label: str = "item"
    # mode used by open_panel(item); legacy plugins open straight into edit
    open_item_mode: PanelMode = PanelMode.EDIT
    date_fields: tuple[str, ...] = ()
    validator: Callable[..., list[FieldError]] = staticmethod(_no_rules)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.plugin_name:
            install_named_aliases(cls, cls.plugin_name)

    def __init__(self, resource, registry=None):
        self.resource = resource
        self.registry = registry
        self.items: list[dict] = []
        self.is_open = False
        self.current_item: dict | None = None
        self.draft: dict | None = None
        self.mode = PanelMode.CREATE
        self.validation_errors: list[FieldError] = []
        self.load_error: str | None = None

    # -- lifecycle ----------------------------------------------------------

    def mount(self, registry=None) -> None:
        if registry is not None:
            self.registry = registry
        if self.registry is not None:
            self.registry.register(self.plugin_name, self.close_panel)

    def unmount(self) -> None:
        if self.registry is not None:
            self.registry.unregister(self.plugin_name)

    def load(self) -> list[dict]:
        try:
            self.items = list(self.resource.list())
            self.load_error = None
        except ApiError as exc:
            log.warning("Failed to load %s: %s", self.plugin_name, exc)
            self.load_error = exc.message
        return self.items

    # -- lookup -------------------------------------------------------------

    def find(self, item_id) -> dict | None:
        return next((i for i in self.items if i.get("id") == item_id), None)

    def _upsert_local(self, item: dict) -> None:
        for index, existing in enumerate(self.items):
            if existing.get("id") == item.get("id"):
                self.items[index] = item
                return
        self.items.append(item)

    # -- panel state --------------------------------------------------------

    def _show(self, item: dict | None, mode: PanelMode) -> None:
        if self.registry is not None:
            self.registry.close_others(self.plugin_name)
        self.current_item = item
        self.mode = mode
        self.is_open = True
        self.validation_errors = []

    def open_panel(self, item: dict | None = None) -> None:
        if item:
            self._show(item, self.open_item_mode)
        else:
            self.open_for_create()

    def open_for_create(self, prefill: dict | None = None) -> None:
        self._show(None, PanelMode.CREATE)
        self.draft = dict(prefill) if prefill else None

    def open_for_edit(self, item: dict) -> None:
        self._show(item, PanelMode.EDIT)

    def open_for_view(self, item: dict) -> None:
        self._show(item, PanelMode.VIEW)

    def close_panel(self) -> None:
        self.is_open = False
        self.current_item = None
        self.draft = None
        self.mode = PanelMode.CREATE
        self.validation_errors = []

    def cancel(self) -> None:
        """Edit falls back to view of the same item; create just closes."""
        if self.mode == PanelMode.EDIT and self.current_item:
            self.open_for_view(self.current_item)
        else:
            self.close_panel()

    # -- save / delete ------------------------------------------------------

    def prepare(self, data: dict) -> dict:
        """Hook to fill defaults before validation."""
        return dict(data)

    def validate(self, data: dict) -> list[FieldError]:
        current_id = self.current_item.get("id") if self.current_item else None
        return list(self.validator(data, self.items, current_id))

    def save(self, data: dict) -> bool:
        data = self.prepare(data)
        errors = self.validate(data)
        self.validation_errors = errors
        if blocking_errors(errors):
            return False

        item_id = self.current_item.get("id") if self.current_item else None
        try:
            if item_id:
                saved = self.resource.update(item_id, data)
            else:
                saved = self.resource.create(data)
        except ApiError as exc:
            log.warning("Saving %s failed: %s", self.item_label, exc)
            if exc.field_errors:
                self.validation_errors = list(exc.field_errors)
            else:
                self.validation_errors = [FieldError(
                    "general", f"Failed to save {self.item_label}. Please try again.",
                )]
            return False

        self._upsert_local(saved)
        if item_id:
            self.current_item = saved
            self.mode = PanelMode.VIEW
            self.validation_errors = []
        else:
            self.close_panel()
        return True

    def delete(self, item_id) -> bool:
        try:
            self.resource.delete(item_id)
        except ApiError as exc:
            log.warning("Deleting %s %s failed: %s", self.item_label, item_id, exc)
            self.validation_errors = [FieldError(
                "general", f"Failed to delete {self.item_label}. Please try again.",
            )]
            return False
        self.items = [i for i in self.items if i.get("id") != item_id]
        if self.current_item and self.current_item.get("id") == item_id:
            self.close_panel()
        return True

    # -- panel text ---------------------------------------------------------

    def describe(self, item: dict) -> str:
        return str(item.get("title") or item.get("name") or self.item_label)

    def panel_title(self) -> str:
        label = self.item_label.capitalize()
        if self.mode == PanelMode.CREATE:
            return f"New {label}"
        if self.mode == PanelMode.EDIT:
            return f"Edit {label}"
        return self.describe(self.current_item or {})

    def panel_subtitle(self) -> str:
        if self.mode == PanelMode.CREATE or not self.current_item:
            return ""
        created = self.current_item.get("createdAt")
        if hasattr(created, "strftime"):
            return f"Created {created.strftime('%Y-%m-%d')}"
        return ""

    def delete_message(self) -> str:
        name = self.describe(self.current_item or {})
        return f'Are you sure you want to delete "{name}"? This action cannot be undone.'
