"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.transport_http import TransportHTTP
from cli.ui_components import print_banner
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import BuxClientError
from core.interfaces.keys import PublicKey, SigningKey
from core.key_loader import load_key

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _settings_from(ctx: typer.Context) -> AppSettings:
    if isinstance(ctx.obj, dict) and isinstance(ctx.obj.get("settings"), AppSettings):
        return ctx.obj["settings"]
    return AppSettings()


async def _check_http(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get("/")
        return True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, str(exc) or type(exc).__name__


async def _check_admin(settings: AppSettings, admin_key: PublicKey) -> tuple[bool, str]:
    try:
        async with TransportHTTP(settings.server_url, admin_xpriv=admin_key, settings=settings) as transport:
            accepted = await transport.admin_get_status()
    except (BuxClientError, httpx.HTTPError, ValueError) as exc:
        return False, str(exc)
    return accepted, "accepted" if accepted else "rejected by server"


def _describe_key(label: str, material: str | None, settings: AppSettings, table: Table) -> PublicKey | None:
    if not material:
        table.add_row(label, "MISSING", "not configured")
        return None
    try:
        key = load_key(material, settings.signer_factory)
    except BuxClientError as exc:
        table.add_row(label, "FAIL", str(exc))
        return None
    if key is None:
        table.add_row(label, "MISSING", "not configured")
        return None
    mode = "can sign" if isinstance(key, SigningKey) else "xpub only (unsigned requests)"
    table.add_row(label, "OK", mode)
    return key


@app.command()
def run(ctx: typer.Context) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = _settings_from(ctx)
    print_banner(_console)

    table = Table(title="bux-admin Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("Server URL", "OK", settings.server_url)
    table.add_row(
        "Signer factory",
        "OK" if settings.signer_factory else "OPTIONAL",
        settings.signer_factory or "none -> only xpub material can be used",
    )
    _describe_key("Key", settings.xpriv, settings, table)
    admin_key = _describe_key("Admin key", settings.admin_xpriv, settings, table)

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    if ok_http and admin_key is not None:
        ok_admin, detail_admin = asyncio.run(_check_admin(settings, admin_key))
        table.add_row("Admin status", "OK" if ok_admin else "FAIL", detail_admin)

    _console.print(table)

    if admin_key is None:
        _console.print(
            "\n[yellow]Note:[/yellow] admin commands fail until BUX_ADMIN_ADMIN_XPRIV is set "
            "(run `bux-admin doctor setup`)."
        )


@app.command(name="setup")
def setup(ctx: typer.Context) -> None:
    """Interactive setup (stores config in the user config .env)."""

    settings = _settings_from(ctx)

    server_url = typer.prompt("Server URL", default=settings.server_url, show_default=True).strip()
    factory = typer.prompt(
        "Signer factory (package.module:callable, empty for none)",
        default=settings.signer_factory or "",
        show_default=bool(settings.signer_factory),
    ).strip()
    admin_key = typer.prompt("Admin key material", hide_input=True, confirmation_prompt=False).strip()
    user_key = typer.prompt(
        "Regular key material (empty to keep current)",
        default="",
        show_default=False,
        hide_input=True,
    ).strip()

    if not server_url or not admin_key:
        raise typer.BadParameter("server URL and admin key are required")

    env_path = write_user_env_vars(
        {
            "BUX_ADMIN_SERVER_URL": server_url,
            "BUX_ADMIN_SIGNER_FACTORY": factory or None,
            "BUX_ADMIN_ADMIN_XPRIV": admin_key,
            "BUX_ADMIN_XPRIV": user_key or None,
        }
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
