"""Plugin form: field state for the open panel, wired to the form bridge."""

from __future__ import annotations

import logging

from .bridge import FormBridge, FormHandlers
from .context import PluginContext

log = logging.getLogger(__name__)


class PluginForm:
    """Edits a copy of the context's current item (or its create draft).

    Usable as a context manager: entering mounts the form on the bridge so
    the shell's Save/Cancel reach it, leaving unmounts it.
    """

    def __init__(self, context: PluginContext, bridge: FormBridge, initial: dict | None = None):
        self.context = context
        self.bridge = bridge
        source = initial if initial is not None else (context.current_item or context.draft or {})
        self.data: dict = dict(source)
        self._handlers: FormHandlers | None = None

    @property
    def plugin_name(self) -> str:
        return self.context.plugin_name

    @property
    def errors(self):
        return self.context.validation_errors

    def error_for(self, field: str) -> str | None:
        return next((e.message for e in self.errors if e.field == field), None)

    def set(self, field: str, value) -> None:
        self.data[field] = value

    def update(self, **values) -> None:
        self.data.update(values)

    def submit(self) -> bool:
        return self.context.save(self.data)

    def cancel(self) -> None:
        self.context.cancel()

    def mount(self) -> None:
        self._handlers = self.bridge.register_form_handlers(self.plugin_name, self.submit, self.cancel)

    def unmount(self) -> None:
        self.bridge.unregister_form_handlers(self.plugin_name, self._handlers)
        self._handlers = None

    def __enter__(self) -> PluginForm:
        self.mount()
        return self

    def __exit__(self, *exc) -> None:
        self.unmount()
