"""CLI de bux-admin.

Los comandos son finos: parsean opciones, llaman al transporte y pintan con Rich.
Los errores del cliente se imprimen y se mapean a exit code 1.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from adapters.json_exporter import export_models_json
from adapters.transport_http import TransportHTTP
from cli import doctor
from cli.ui_components import (
    build_paymail_panel,
    build_records_table,
    build_stats_table,
    build_transaction_panel,
)
from core.config import AppSettings
from core.domain.errors import BuxClientError
from core.domain.models import QueryParams, SortDirection
from core.services.admin_queries import get_query

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Administrative client for a BUX wallet server.")
paymail_app = typer.Typer(no_args_is_help=True, help="Manage paymail addresses.")
app.add_typer(paymail_app, name="paymail")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO; our own DEBUG lines are enough.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_transport(settings: AppSettings) -> TransportHTTP:
    return TransportHTTP.from_settings(settings)


def _settings(ctx: typer.Context) -> AppSettings:
    return ctx.obj["settings"]


def _timeout(ctx: typer.Context) -> float | None:
    return ctx.obj.get("timeout")


def _parse_json_option(value: str | None, name: str) -> dict[str, Any] | None:
    if value is None:
        return None
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"invalid JSON: {exc}", param_hint=name) from exc
    if not isinstance(data, dict):
        raise typer.BadParameter("expected a JSON object", param_hint=name)
    return data


def _run(ctx: typer.Context, action: Callable[[TransportHTTP], Awaitable[T]]) -> T:
    """Ejecuta una acción del transporte; los errores del cliente salen con código 1.

    `ValueError` cubre respuestas que no son JSON (`JSONDecodeError`) y
    respuestas con tipos inesperados (`pydantic.ValidationError`).
    """

    async def runner() -> T:
        async with build_transport(_settings(ctx)) as transport:
            return await action(transport)

    try:
        return asyncio.run(runner())
    except (BuxClientError, httpx.HTTPError, ValueError) as exc:
        _err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    ctx: typer.Context,
    server_url: Optional[str] = typer.Option(None, "--server-url", help="Override BUX_ADMIN_SERVER_URL."),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=0.1, help="Deadline per request (seconds)."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
) -> None:
    settings = AppSettings()
    if server_url:
        settings = settings.model_copy(update={"server_url": server_url})
    configure_logging(debug or settings.debug)
    ctx.obj = {"settings": settings, "timeout": timeout}


@app.command()
def status(ctx: typer.Context) -> None:
    """Check whether the server accepts the admin key."""

    ok = _run(ctx, lambda t: t.admin_get_status(timeout=_timeout(ctx)))
    if ok:
        _console.print("[green]admin key accepted[/green]")
    else:
        _console.print("[yellow]admin key rejected[/yellow]")
        raise typer.Exit(code=1)


@app.command()
def stats(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the stats as JSON."),
) -> None:
    """Show server-wide counters."""

    result = _run(ctx, lambda t: t.admin_get_stats(timeout=_timeout(ctx)))
    if result is None:
        _console.print("[yellow]server returned no stats[/yellow]")
        return
    _console.print(build_stats_table(result))
    if output:
        export_models_json(models=result, output_path=output)


@app.command(name="register-xpub")
def register_xpub(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Extended public key to register."),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="Metadata as a JSON object."),
) -> None:
    """Register a new xPub (signed with the admin key)."""

    meta = _parse_json_option(metadata, "--metadata")
    xpub = _run(ctx, lambda t: t.register_xpub(key, meta, timeout=_timeout(ctx)))
    _console.print(f"[green]registered[/green] {xpub.id if xpub and xpub.id else key}")


@app.command()
def search(
    ctx: typer.Context,
    model: str = typer.Argument(..., help="Record type: access-keys, block-headers, destinations, paymails, transactions, utxos, xpubs."),
    conditions: Optional[str] = typer.Option(None, "--conditions", help="Filter conditions as a JSON object."),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="Metadata filter as a JSON object."),
    page: Optional[int] = typer.Option(None, "--page", min=1),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1),
    order_by: Optional[str] = typer.Option(None, "--order-by", help="Column to order by."),
    sort: Optional[SortDirection] = typer.Option(None, "--sort", case_sensitive=False),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the records as JSON."),
) -> None:
    """Search records of one type."""

    try:
        query = get_query(model)
    except KeyError as exc:
        raise typer.BadParameter(str(exc.args[0]), param_hint="MODEL") from exc

    cond = _parse_json_option(conditions, "--conditions")
    meta = _parse_json_option(metadata, "--metadata")
    params = None
    if any(v is not None for v in (page, page_size, order_by, sort)):
        params = QueryParams(page=page, page_size=page_size, order_by_field=order_by, sort_direction=sort)

    records = _run(ctx, lambda t: query.search(t, cond, meta, params, timeout=_timeout(ctx)))
    _console.print(build_records_table(query.name, query.columns, records))
    if output:
        export_models_json(models=records, output_path=output)
        _console.print(f"[green]Saved JSON:[/green] {output}")


@app.command()
def count(
    ctx: typer.Context,
    model: str = typer.Argument(..., help="Record type (see `search`)."),
    conditions: Optional[str] = typer.Option(None, "--conditions", help="Filter conditions as a JSON object."),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="Metadata filter as a JSON object."),
) -> None:
    """Count records of one type."""

    try:
        query = get_query(model)
    except KeyError as exc:
        raise typer.BadParameter(str(exc.args[0]), param_hint="MODEL") from exc

    cond = _parse_json_option(conditions, "--conditions")
    meta = _parse_json_option(metadata, "--metadata")
    total = _run(ctx, lambda t: query.count(t, cond, meta, timeout=_timeout(ctx)))
    _console.print(total)


@paymail_app.command(name="get")
def paymail_get(ctx: typer.Context, address: str = typer.Argument(..., help="alias@domain")) -> None:
    """Show one paymail address."""

    result = _run(ctx, lambda t: t.admin_get_paymail(address, timeout=_timeout(ctx)))
    if result is None:
        _console.print(f"[yellow]paymail not found:[/yellow] {address}")
        raise typer.Exit(code=1)
    _console.print(build_paymail_panel(result))


@paymail_app.command(name="create")
def paymail_create(
    ctx: typer.Context,
    xpub_id: str = typer.Argument(..., help="ID of the xPub that owns the paymail."),
    address: str = typer.Argument(..., help="alias@domain"),
    public_name: str = typer.Option("", "--public-name"),
    avatar: str = typer.Option("", "--avatar", help="Avatar URL."),
) -> None:
    """Create a paymail address for an xPub."""

    result = _run(
        ctx,
        lambda t: t.admin_create_paymail(xpub_id, address, public_name, avatar, timeout=_timeout(ctx)),
    )
    if result is not None:
        _console.print(build_paymail_panel(result, title="Paymail created"))


@paymail_app.command(name="delete")
def paymail_delete(ctx: typer.Context, address: str = typer.Argument(..., help="alias@domain")) -> None:
    """Delete a paymail address."""

    _run(ctx, lambda t: t.admin_delete_paymail(address, timeout=_timeout(ctx)))
    _console.print(f"[green]deleted[/green] {address}")


@app.command(name="record-tx")
def record_tx(ctx: typer.Context, tx_hex: str = typer.Argument(..., metavar="HEX", help="Raw transaction hex.")) -> None:
    """Record a transaction as admin."""

    transaction = _run(ctx, lambda t: t.admin_record_transaction(tx_hex, timeout=_timeout(ctx)))
    _console.print(build_transaction_panel(transaction))


def run() -> None:
    app()
