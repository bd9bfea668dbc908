"""Panel-close registry: keeps at most one plugin panel open.

Each mounted plugin registers a close callback under its name. Opening a
panel broadcasts ``close_others(name)``, which runs every other callback.
"""

from __future__ import annotations

import logging
from typing import Callable

log = logging.getLogger(__name__)

CloseFn = Callable[[], object]


class PanelCloseRegistry:
    def __init__(self) -> None:
        self._close_fns: dict[str, CloseFn] = {}

    def register(self, name: str, close_fn: CloseFn) -> None:
        """Register (or replace) the close callback for *name*."""
        self._close_fns[name] = close_fn

    def unregister(self, name: str) -> None:
        self._close_fns.pop(name, None)

    def names(self) -> list[str]:
        return list(self._close_fns)

    def __contains__(self, name: str) -> bool:
        return name in self._close_fns

    def close_others(self, except_name: str | None = None) -> None:
        """Run every close callback except *except_name*, in registration order.

        A failing callback is logged and skipped; the rest still run.
        """
        for name, close_fn in list(self._close_fns.items()):
            if name == except_name:
                continue
            try:
                close_fn()
            except Exception:
                log.exception("Close handler for %s panel failed", name)
