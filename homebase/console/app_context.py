"""Application context: session, mounted plugins and cross-plugin views."""

from __future__ import annotations

import logging

from ..notes import mentions_contact
from .api import ApiClient, ApiError
from .bridge import FormBridge
from .capabilities import CapabilityRegistry, PanelCapabilities
from .context import PluginContext
from .plugins import PLUGIN_CONTEXTS, ImportContext
from .registry import PanelCloseRegistry

log = logging.getLogger(__name__)


class AppContext:
    def __init__(self, api: ApiClient | None = None):
        self.api = api or ApiClient()
        self.registry = PanelCloseRegistry()
        self.bridge = FormBridge()
        self.capabilities = CapabilityRegistry()
        self.user: dict | None = None
        self.plugins: dict[str, PluginContext] = {}

    # -- session ------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def login(self, email: str, password: str) -> bool:
        try:
            self.user = self.api.login(email, password)
        except ApiError as exc:
            log.warning("Login failed for %s: %s", email, exc)
            self.user = None
            return False
        self.mount_user_plugins()
        return True

    def logout(self) -> None:
        try:
            self.api.logout()
        except ApiError as exc:
            log.warning("Logout failed: %s", exc)
        for name in list(self.plugins):
            self.unmount(name)
        self.user = None

    def refresh_user(self) -> dict | None:
        self.user = self.api.me()
        return self.user

    # -- plugins ------------------------------------------------------------

    def mount(self, context: PluginContext) -> PluginContext:
        name = context.plugin_name
        context.mount(self.registry)
        self.capabilities.register(PanelCapabilities.from_context(name, context, self.bridge))
        self.plugins[name] = context
        return context

    def unmount(self, name: str) -> None:
        context = self.plugins.pop(name, None)
        if context is not None:
            context.unmount()
        self.capabilities.unregister(name)
        self.bridge.unregister_form_handlers(name)

    def build_context(self, name: str) -> PluginContext:
        cls = PLUGIN_CONTEXTS[name]
        resource = self.api.resource(name, cls.date_fields)
        if cls is ImportContext:
            return ImportContext(resource, self.registry, invoices=lambda: self.plugins.get("invoices"))
        return cls(resource, self.registry)

    def mount_user_plugins(self) -> list[str]:
        """Mount a context for every plugin the signed-in user may use."""
        names = [n for n in (self.user or {}).get("plugins", []) if n in PLUGIN_CONTEXTS]
        for name in names:
            if name not in self.plugins:
                self.mount(self.build_context(name))
        return names

    def get(self, name: str) -> PluginContext | None:
        return self.plugins.get(name)

    def close_other_panels(self, except_name: str | None = None) -> None:
        self.registry.close_others(except_name)

    def active_plugin(self) -> str | None:
        return next((name for name, ctx in self.plugins.items() if ctx.is_open), None)

    def refresh_data(self) -> None:
        for context in self.plugins.values():
            context.load()

    # -- cross-plugin views -------------------------------------------------

    def _items(self, name: str) -> list[dict]:
        context = self.plugins.get(name)
        return context.items if context else []

    def notes_for_contact(self, contact_id: str) -> list[dict]:
        return [n for n in self._items("notes") if mentions_contact(n, contact_id)]

    def contacts_for_note(self, note_id: str) -> list[dict]:
        note = next((n for n in self._items("notes") if n.get("id") == note_id), None)
        if not note:
            return []
        ids = {m.get("contactId") for m in note.get("mentions") or []}
        return [c for c in self._items("contacts") if c.get("id") in ids]

    def estimates_for_contact(self, contact_id: str) -> list[dict]:
        return [e for e in self._items("estimates") if e.get("contactId") == contact_id]

    def invoices_for_contact(self, contact_id: str) -> list[dict]:
        return [i for i in self._items("invoices") if i.get("contactId") == contact_id]

    def tasks_for_contact(self, contact_id: str) -> list[dict]:
        return [t for t in self._items("tasks") if t.get("assignedTo") == contact_id]

    def tasks_with_mentions_for_contact(self, contact_id: str) -> list[dict]:
        return [t for t in self._items("tasks") if mentions_contact(t, contact_id)]

    def open_estimate_for_contact(self, contact: dict) -> bool:
        estimates = self.plugins.get("estimates")
        if estimates is None:
            log.warning("Estimates plugin not mounted")
            return False
        estimates.open_for_contact(contact)
        return True
