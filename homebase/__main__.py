"""CLI entry point for the Homebase admin console.

Usage:
    python -m homebase serve                      # launch the API server
    python -m homebase init-db                    # create the database
    python -m homebase create-user EMAIL          # add a user
    python -m homebase grant-plugin EMAIL PLUGIN  # grant plugin access
    python -m homebase list-users                 # list users and plugins
    python -m homebase import-invoices FILE       # preview / import invoices
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import config
from .database import init_db
from .plugins import plugin_names

console = Console()


# ---------------------------------------------------------------------------
# Subcommand: serve
# ---------------------------------------------------------------------------

def cmd_serve(args: argparse.Namespace) -> None:
    """Launch the API server."""
    import uvicorn

    from .web.app import create_app

    app = create_app()
    console.print(f"\n[bold]Starting Homebase at http://{args.host}:{args.port}[/bold]")
    if not config.AUTH_ENABLED:
        console.print("[yellow]Authentication disabled: requests act as the first active user[/yellow]")
    uvicorn.run(app, host=args.host, port=args.port)


# ---------------------------------------------------------------------------
# Subcommand: init-db
# ---------------------------------------------------------------------------

def cmd_init_db(args: argparse.Namespace) -> None:
    init_db()
    console.print(f"\n[bold green]Database ready:[/bold green] {config.DB_PATH}")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def cmd_create_user(args: argparse.Namespace) -> None:
    """Create a user, optionally granting plugins."""
    from .users import create_user

    init_db()
    plugins = plugin_names() if args.plugins == "all" else [
        p.strip() for p in (args.plugins or "").split(",") if p.strip()
    ]
    try:
        user = create_user(
            args.email, args.password, name=args.name or "", role=args.role, plugins=plugins,
        )
    except ValueError as exc:
        console.print(f"\n[red]Error:[/red] {exc}")
        sys.exit(1)

    console.print(f"\n[bold green]User created:[/bold green] {user['email']} ({user['role']})")
    if plugins:
        console.print(f"  Plugins: {', '.join(plugins)}")


def cmd_grant_plugin(args: argparse.Namespace) -> None:
    from .users import get_user_by_email, grant_plugin

    init_db()
    user = get_user_by_email(args.email)
    if not user:
        console.print(f"\n[red]Error:[/red] No user with email {args.email}")
        sys.exit(1)
    try:
        grant_plugin(user["id"], args.plugin)
    except ValueError as exc:
        console.print(f"\n[red]Error:[/red] {exc}")
        sys.exit(1)
    console.print(f"\n[bold green]Granted[/bold green] {args.plugin} to {user['email']}")


def cmd_list_users(args: argparse.Namespace) -> None:
    from .users import list_users

    init_db()
    users = list_users()
    if not users:
        console.print("\n[yellow]No users.[/yellow]")
        console.print("Run [bold]python -m homebase create-user EMAIL[/bold] to add one.")
        return

    table = Table(title="Users")
    table.add_column("Email", style="bold")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Active", justify="center")
    table.add_column("Plugins")
    for user in users:
        table.add_row(
            user["email"],
            user.get("name") or "",
            user["role"],
            "[green]Yes[/green]" if user.get("is_active") else "[red]No[/red]",
            ", ".join(user.get("plugins") or []),
        )
    console.print()
    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# Subcommand: import-invoices
# ---------------------------------------------------------------------------

def cmd_import_invoices(args: argparse.Namespace) -> None:
    """Preview a text invoice import; with credentials, post the valid rows."""
    from .importer import parse_invoice_text

    path = Path(args.file)
    if not path.is_file():
        console.print(f"\n[red]Error:[/red] File not found: {path}")
        sys.exit(1)

    text = path.read_text(encoding="utf-8")
    rows = parse_invoice_text(text)

    table = Table(title=f"Invoice import preview ({path.name})")
    table.add_column("Line", justify="right")
    table.add_column("Customer", style="bold")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Status")
    for row in rows:
        status = "[green]OK[/green]" if row.is_valid else f"[red]{'; '.join(row.errors)}[/red]"
        table.add_row(
            str(row.line_number), row.customer_name,
            (row.invoice_date or "")[:10], row.amount_due, status,
        )
    console.print()
    console.print(table)

    valid = sum(1 for r in rows if r.is_valid)
    console.print(f"\n{valid} of {len(rows)} line(s) valid")

    if not args.email:
        return
    if not args.password:
        console.print("\n[red]Error:[/red] --password is required with --email")
        sys.exit(1)

    from .console.api import ApiClient
    from .console.app_context import AppContext

    app = AppContext(ApiClient(args.url))
    if not app.login(args.email, args.password):
        console.print("\n[red]Error:[/red] Login failed")
        sys.exit(1)

    importer_ctx = app.get("import")
    if importer_ctx is None or app.get("invoices") is None:
        console.print("\n[red]Error:[/red] User lacks access to the import or invoices plugin")
        sys.exit(1)

    importer_ctx.parse(text)
    summary = importer_ctx.execute()
    console.print(
        f"\n[bold green]Imported[/bold green] {summary['createdCount']} of "
        f"{summary['totalRows']} invoice(s)"
    )
    for failure in summary["errors"]:
        console.print(f"  [yellow]Line {failure['line']}:[/yellow] {'; '.join(failure['errors'])}")
    app.logout()


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m homebase",
        description="Homebase plugin-based admin console",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # serve
    sv = sub.add_parser("serve", help="Launch the API server")
    sv.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    sv.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    # init-db
    sub.add_parser("init-db", help="Create or upgrade the database schema")

    # create-user
    cu = sub.add_parser("create-user", help="Create a user")
    cu.add_argument("email", help="Login email")
    cu.add_argument("--password", help="Password (omit for bypass-mode users)")
    cu.add_argument("--name", help="Display name")
    cu.add_argument("--role", default="user", choices=("user", "admin", "superuser"))
    cu.add_argument("--plugins", help="Comma-separated plugin names, or 'all'")

    # grant-plugin
    gp = sub.add_parser("grant-plugin", help="Grant a user access to a plugin")
    gp.add_argument("email", help="User email")
    gp.add_argument("plugin", choices=plugin_names(), help="Plugin name")

    # list-users
    sub.add_parser("list-users", help="List users and their plugins")

    # import-invoices
    ii = sub.add_parser("import-invoices", help="Preview or import invoices from a text file")
    ii.add_argument("file", help="Text file, one invoice per line")
    ii.add_argument("--email", help="Log in as this user and import the valid rows")
    ii.add_argument("--password", help="Password for --email")
    ii.add_argument("--url", default=None, help=f"API base URL (default: {config.API_URL})")

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )
    if not args.verbose:
        for noisy in ("httpx", "httpcore", "homebase.console"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    commands = {
        "serve": cmd_serve,
        "init-db": cmd_init_db,
        "create-user": cmd_create_user,
        "grant-plugin": cmd_grant_plugin,
        "list-users": cmd_list_users,
        "import-invoices": cmd_import_invoices,
    }

    if not args.command:
        parser.print_help()
        return
    commands[args.command](args)


if __name__ == "__main__":
    main()
