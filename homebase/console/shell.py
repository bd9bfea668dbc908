"""Panel shell: title bar and footer buttons around the active plugin panel."""

from __future__ import annotations

import logging

from .app_context import AppContext
from .capabilities import PanelCapabilities
from .context import PanelMode

log = logging.getLogger(__name__)


class PanelShell:
    def __init__(self, app: AppContext):
        self.app = app
        self.confirming_delete = False

    @property
    def active_plugin(self) -> str | None:
        return self.app.active_plugin()

    def _active(self) -> tuple[str | None, PanelCapabilities | None]:
        name = self.active_plugin
        if name is None:
            return None, None
        return name, self.app.capabilities.get(name)

    def _current_item(self) -> dict | None:
        name = self.active_plugin
        context = self.app.get(name) if name else None
        return context.current_item if context else None

    @property
    def mode(self) -> PanelMode | None:
        name = self.active_plugin
        return self.app.get(name).mode if name else None

    # -- text -----------------------------------------------------------------

    def title(self) -> str:
        _, caps = self._active()
        return caps.title() if caps and caps.title else ""

    def subtitle(self) -> str:
        _, caps = self._active()
        return caps.subtitle() if caps and caps.subtitle else ""

    def delete_message(self) -> str:
        _, caps = self._active()
        return caps.delete_message() if caps and caps.delete_message else ""

    def footer_actions(self) -> list[str]:
        """Buttons to show for the current panel mode."""
        name, caps = self._active()
        if caps is None:
            return []
        if self.mode == PanelMode.VIEW:
            actions = []
            if caps.open_for_edit:
                actions.append("edit")
            if caps.delete:
                actions.append("delete")
            if caps.close:
                actions.append("close")
            return actions
        return ["save", "cancel"]

    # -- buttons --------------------------------------------------------------

    def handle_save_click(self) -> bool:
        name, caps = self._active()
        if caps is None or caps.submit is None:
            return False
        return caps.submit()

    def handle_cancel_click(self) -> bool:
        name, caps = self._active()
        if caps is None or caps.cancel is None:
            return False
        return caps.cancel()

    def handle_edit_click(self) -> bool:
        name, caps = self._active()
        item = self._current_item()
        if caps is None or caps.open_for_edit is None or item is None:
            return False
        caps.open_for_edit(item)
        return True

    def handle_delete_click(self) -> None:
        self.confirming_delete = True

    def confirm_delete(self) -> bool:
        self.confirming_delete = False
        name, caps = self._active()
        item = self._current_item()
        if caps is None or caps.delete is None or item is None:
            return False
        if not caps.delete(item.get("id")):
            return False
        if caps.close and self.active_plugin == name:
            caps.close()
        return True

    def close(self) -> bool:
        self.confirming_delete = False
        name, caps = self._active()
        if caps is None or caps.close is None:
            return False
        caps.close()
        return True
