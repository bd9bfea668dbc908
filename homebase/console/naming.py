"""Panel function names derived from a plugin's kebab-case plural name.

``derive_function_name("open", "edit", "notes")`` gives ``openNoteForEdit``:
the name is camel-cased, singularized by dropping one trailing ``s`` and
capitalized. Close-panel and form commands keep the plural
(``closeNotesPanel``, ``submitNotesForm``). A fixed override table covers
the plugins whose functions do not follow the pattern.

Python attributes use the snake_case form of the same name
(``open_note_for_edit``), so ``resolve`` can look a function up on a
context object by name.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

log = logging.getLogger(__name__)

# plugin -> action -> name stem (open) or full name (everything else)
NAME_OVERRIDES: dict[str, dict[str, str]] = {
    "woocommerce-products": {
        "open": "openWooSettings",
        "close": "closeWooSettingsPanel",
        "save": "saveWooSettings",
        "submit": "submitWooSettingsForm",
        "cancel": "cancelWooSettingsForm",
    },
    "import": {
        "open": "openImport",
        "close": "closeImportPanel",
        "submit": "submitImportsForm",
    },
}

# generic context method -> (action, mode)
CONTEXT_FUNCTIONS: dict[str, tuple[str, str | None]] = {
    "open_panel": ("open", None),
    "open_for_create": ("open", "create"),
    "open_for_edit": ("open", "edit"),
    "open_for_view": ("open", "view"),
    "close_panel": ("close", None),
    "save": ("save", None),
    "delete": ("delete", None),
}


def camel_case(plugin_name: str) -> str:
    return re.sub(r"-([a-zA-Z])", lambda m: m.group(1).upper(), plugin_name)


def singularize(name: str) -> str:
    return name[:-1] if name.endswith("s") else name


def capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


def snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def derive_function_name(action: str, mode: str | None, plugin_name: str) -> str:
    override = NAME_OVERRIDES.get(plugin_name, {}).get(action)
    if override and action == "open":
        return f"{override}For{capitalize(mode)}" if mode else f"{override}Panel"
    if override:
        return override

    plural = capitalize(camel_case(plugin_name))
    singular = capitalize(singularize(camel_case(plugin_name)))

    if action == "open":
        return f"open{singular}For{capitalize(mode)}" if mode else f"open{singular}Panel"
    if action == "close":
        return f"close{plural}Panel"
    if action in ("submit", "cancel"):
        return f"{action}{plural}Form"
    return f"{action}{singular}"


def attribute_name(action: str, mode: str | None, plugin_name: str) -> str:
    return snake_case(derive_function_name(action, mode, plugin_name))


def resolve(target: object, action: str, mode: str | None, plugin_name: str) -> Callable | None:
    """Look up the derived function on *target*; None (with a warning) if absent."""
    name = derive_function_name(action, mode, plugin_name)
    fn = getattr(target, snake_case(name), None)
    if not callable(fn):
        log.warning("%s not available for %s plugin", name, plugin_name)
        return None
    return fn


def install_named_aliases(cls: type, plugin_name: str) -> None:
    """Expose a context class's generic methods under their derived names."""
    for method, (action, mode) in CONTEXT_FUNCTIONS.items():
        fn = getattr(cls, method, None)
        if fn is None:
            continue
        alias = attribute_name(action, mode, plugin_name)
        if alias not in cls.__dict__:
            setattr(cls, alias, fn)
