"""Plugin catalogue: every resource module the console knows about.

Each plugin declares its kebab-case plural name (used for entitlement,
panel coordination and the ``/api/<name>`` route base), a display label
and the route module that serves it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PluginDef:
    """Static description of one plugin."""

    name: str
    label: str
    route_module: str | None = None  # under homebase.web.routes
    item_label: str = "item"


PLUGINS: dict[str, PluginDef] = {
    "contacts": PluginDef(
        name="contacts", label="Contacts", route_module="contacts", item_label="contact",
    ),
    "notes": PluginDef(
        name="notes", label="Notes", route_module="notes", item_label="note",
    ),
    "tasks": PluginDef(
        name="tasks", label="Tasks", route_module="tasks", item_label="task",
    ),
    "estimates": PluginDef(
        name="estimates", label="Estimates", route_module="estimates", item_label="estimate",
    ),
    "invoices": PluginDef(
        name="invoices", label="Invoices", route_module="invoices", item_label="invoice",
    ),
    "products": PluginDef(
        name="products", label="Products", route_module="products", item_label="product",
    ),
    "files": PluginDef(
        name="files", label="Files", route_module="files", item_label="file",
    ),
    "channels": PluginDef(
        name="channels", label="Channels", route_module="channels", item_label="channel",
    ),
    "woocommerce-products": PluginDef(
        name="woocommerce-products", label="WooCommerce",
        route_module="woocommerce", item_label="WooCommerce settings",
    ),
    # Parsing happens client side; the server keeps the import audit log
    "import": PluginDef(
        name="import", label="Import", route_module="imports", item_label="import",
    ),
}


def get_plugin(name: str) -> PluginDef | None:
    return PLUGINS.get(name)


def plugin_names() -> list[str]:
    return list(PLUGINS)
