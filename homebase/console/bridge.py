"""Form bridge: routes the shell's Save/Cancel buttons to the mounted form.

The shell owns the buttons, while each plugin owns its form. Forms register
their submit/cancel handlers under the plugin name when they mount, and the
shell invokes them by plugin name. Submit reports whether the form saved;
a miss is logged and reported as False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .naming import derive_function_name

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormHandlers:
    submit: Callable[[], object]
    cancel: Callable[[], object]


class FormBridge:
    def __init__(self) -> None:
        self._handlers: dict[str, FormHandlers] = {}

    def register_form_handlers(
        self,
        plugin_name: str,
        submit: Callable[[], object],
        cancel: Callable[[], object],
    ) -> FormHandlers:
        handlers = FormHandlers(submit, cancel)
        self._handlers[plugin_name] = handlers
        return handlers

    def unregister_form_handlers(self, plugin_name: str, handlers: FormHandlers | None = None) -> None:
        """Drop the handlers for *plugin_name*.

        With *handlers*, only drop them if they are still the registered
        pair, so a late unmount cannot remove a newer form's handlers.
        """
        current = self._handlers.get(plugin_name)
        if current is None:
            return
        if handlers is not None and current is not handlers:
            return
        del self._handlers[plugin_name]

    def has_form(self, plugin_name: str) -> bool:
        return plugin_name in self._handlers

    def invoke_submit(self, plugin_name: str) -> bool:
        handlers = self._handlers.get(plugin_name)
        if handlers is None:
            log.warning(
                "%s not registered; no form mounted for %s",
                derive_function_name("submit", None, plugin_name), plugin_name,
            )
            return False
        return bool(handlers.submit())

    def invoke_cancel(self, plugin_name: str) -> bool:
        handlers = self._handlers.get(plugin_name)
        if handlers is None:
            log.warning(
                "%s not registered; no form mounted for %s",
                derive_function_name("cancel", None, plugin_name), plugin_name,
            )
            return False
        handlers.cancel()
        return True
