"""Registro de consultas admin.

Mapea los nombres de registro de la CLI (`xpubs`, `utxos`, ...) a las
operaciones search/count del transporte, para que los entry-points (CLI,
scripts, tests) despachen por nombre en vez de repetir una rama por modelo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence

from pydantic import BaseModel

from core.domain.models import Metadata, QueryParams

if TYPE_CHECKING:
    from adapters.transport_http import TransportHTTP


@dataclass(frozen=True)
class AdminQuery:
    """Un tipo de registro consultable."""

    name: str
    search_method: str
    count_method: str
    columns: Sequence[str]

    def search(
        self,
        transport: "TransportHTTP",
        conditions: dict[str, Any] | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> Awaitable[list[BaseModel]]:
        method: Callable[..., Awaitable[list[BaseModel]]] = getattr(transport, self.search_method)
        return method(conditions, metadata, query_params, timeout=timeout)

    def count(
        self,
        transport: "TransportHTTP",
        conditions: dict[str, Any] | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> Awaitable[int]:
        method: Callable[..., Awaitable[int]] = getattr(transport, self.count_method)
        return method(conditions, metadata, timeout=timeout)


ADMIN_QUERIES: dict[str, AdminQuery] = {
    q.name: q
    for q in (
        AdminQuery(
            name="access-keys",
            search_method="admin_get_access_keys",
            count_method="admin_get_access_keys_count",
            columns=("id", "xpub_id", "revoked_at", "created_at"),
        ),
        AdminQuery(
            name="block-headers",
            search_method="admin_get_block_headers",
            count_method="admin_get_block_headers_count",
            columns=("id", "height", "hash_previous_block", "synced"),
        ),
        AdminQuery(
            name="destinations",
            search_method="admin_get_destinations",
            count_method="admin_get_destinations_count",
            columns=("id", "xpub_id", "address", "type", "chain", "num"),
        ),
        AdminQuery(
            name="paymails",
            search_method="admin_get_paymails",
            count_method="admin_get_paymails_count",
            columns=("id", "alias", "domain", "public_name", "xpub_id"),
        ),
        AdminQuery(
            name="transactions",
            search_method="admin_get_transactions",
            count_method="admin_get_transactions_count",
            columns=("id", "block_height", "total_value", "fee", "status", "direction"),
        ),
        AdminQuery(
            name="utxos",
            search_method="admin_get_utxos",
            count_method="admin_get_utxos_count",
            columns=("transaction_id", "output_index", "satoshis", "type", "spending_tx_id"),
        ),
        AdminQuery(
            name="xpubs",
            search_method="admin_get_xpubs",
            count_method="admin_get_xpubs_count",
            columns=("id", "current_balance", "next_internal_num", "next_external_num"),
        ),
    )
}


def get_query(name: str) -> AdminQuery:
    try:
        return ADMIN_QUERIES[name]
    except KeyError:
        valid = ", ".join(sorted(ADMIN_QUERIES))
        raise KeyError(f"unknown record type '{name}' (valid: {valid})") from None


async def run_search(
    transport: "TransportHTTP",
    name: str,
    conditions: dict[str, Any] | None = None,
    metadata: Metadata | None = None,
    query_params: QueryParams | None = None,
    *,
    timeout: float | None = None,
) -> list[BaseModel]:
    return await get_query(name).search(transport, conditions, metadata, query_params, timeout=timeout)


async def run_count(
    transport: "TransportHTTP",
    name: str,
    conditions: dict[str, Any] | None = None,
    metadata: Metadata | None = None,
    *,
    timeout: float | None = None,
) -> int:
    return await get_query(name).count(transport, conditions, metadata, timeout=timeout)
