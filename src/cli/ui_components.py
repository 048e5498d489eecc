"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Any, Sequence

from pydantic import BaseModel
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import AdminStats, PaymailAddress, Transaction


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Solo lo usan comandos interactivos; la salida de datos queda limpia.
    """

    title = Text("BUX-ADMIN", style="bold cyan")
    subtitle = Text("Wallet server administration", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    return str(value)


def build_records_table(title: str, columns: Sequence[str], models: Sequence[BaseModel]) -> Table:
    table = Table(title=title)
    for i, column in enumerate(columns):
        table.add_column(column, style="cyan" if i == 0 else "white", no_wrap=i == 0)
    for model in models:
        table.add_row(*(_cell(getattr(model, column, None)) for column in columns))
    return table


def build_stats_table(stats: AdminStats) -> Table:
    table = Table(title="Admin stats")
    table.add_column("Metric", style="bright_green", no_wrap=True)
    table.add_column("Value", style="white", justify="right")
    for name in ("balance", "xpubs", "destinations", "paymails", "transactions", "utxos"):
        table.add_row(name, _cell(getattr(stats, name)))
    for kind, count in sorted(stats.utxos_per_type.items()):
        table.add_row(f"utxos[{kind}]", _cell(count), style="dim")
    return table


def build_paymail_panel(paymail: PaymailAddress, *, title: str = "Paymail") -> Panel:
    body = Text()
    body.append(f"{paymail.address or '-'}\n", style="bold")
    body.append(f"id: {_cell(paymail.id)}\n")
    body.append(f"xpub_id: {_cell(paymail.xpub_id)}\n")
    if paymail.public_name:
        body.append(f"public name: {paymail.public_name}\n")
    if paymail.avatar:
        body.append(f"avatar: {paymail.avatar}\n", style="dim")
    return Panel(body, title=Text(title, style="bold yellow"), border_style="yellow")


def build_transaction_panel(transaction: Transaction) -> Panel:
    body = Text()
    body.append(f"{_cell(transaction.id)}\n", style="bold")
    body.append(f"status: {_cell(transaction.status)}\n")
    body.append(f"block height: {transaction.block_height}\n")
    body.append(f"total value: {transaction.total_value}  fee: {transaction.fee}\n")
    return Panel(body, title=Text("Transaction recorded", style="bold green"), border_style="green")
