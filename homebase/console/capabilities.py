"""Per-plugin capability table consumed by the panel shell.

Built once, when a plugin context is mounted, by resolving the plugin's
derived function names on the context. The shell calls through the table
and never builds names itself; a missing capability is simply None.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable

from .naming import resolve

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PanelCapabilities:
    plugin_name: str
    open_for_edit: Callable | None = None
    open_for_view: Callable | None = None
    close: Callable | None = None
    save: Callable | None = None
    delete: Callable | None = None
    submit: Callable | None = None
    cancel: Callable | None = None
    title: Callable[[], str] | None = None
    subtitle: Callable[[], str] | None = None
    delete_message: Callable[[], str] | None = None

    @classmethod
    def from_context(cls, plugin_name: str, context, bridge=None) -> PanelCapabilities:
        submit = cancel = None
        if bridge is not None:
            submit = partial(bridge.invoke_submit, plugin_name)
            cancel = partial(bridge.invoke_cancel, plugin_name)
        return cls(
            plugin_name=plugin_name,
            open_for_edit=resolve(context, "open", "edit", plugin_name),
            open_for_view=resolve(context, "open", "view", plugin_name),
            close=resolve(context, "close", None, plugin_name),
            save=resolve(context, "save", None, plugin_name),
            delete=resolve(context, "delete", None, plugin_name),
            submit=submit,
            cancel=cancel,
            title=getattr(context, "panel_title", None),
            subtitle=getattr(context, "panel_subtitle", None),
            delete_message=getattr(context, "delete_message", None),
        )


class CapabilityRegistry:
    def __init__(self) -> None:
        self._table: dict[str, PanelCapabilities] = {}

    def register(self, capabilities: PanelCapabilities) -> None:
        self._table[capabilities.plugin_name] = capabilities

    def unregister(self, plugin_name: str) -> None:
        self._table.pop(plugin_name, None)

    def get(self, plugin_name: str) -> PanelCapabilities | None:
        caps = self._table.get(plugin_name)
        if caps is None:
            log.warning("No capabilities registered for %s plugin", plugin_name)
        return caps

    def names(self) -> list[str]:
        return list(self._table)
