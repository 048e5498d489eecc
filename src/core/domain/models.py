"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación y documentación autocontenida (Field) sin acoplar el Core a I/O.
- Los registros pertenecen al servidor; solo los transportamos, así que los
  campos desconocidos se conservan (`extra="allow"`).

Nota:
- Estos modelos describen *qué* devuelve el servidor, no *cómo* se obtiene.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

Metadata = dict[str, Any]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class QueryParams(BaseModel):
    """Opciones de paginación/orden para los endpoints `*/search`."""

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    page: int | None = Field(default=None, ge=1, description="1-based page number.")
    page_size: int | None = Field(default=None, ge=1, description="Records per page.")
    order_by_field: str | None = Field(
        default=None,
        min_length=1,
        description="Column used for ordering (e.g. 'created_at').",
    )
    sort_direction: SortDirection | None = Field(default=None, description="asc / desc.")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ServerRecord(BaseModel):
    """Columnas comunes de todo registro que guarda el servidor."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = Field(default=None, description="Record identifier (usually a hash).")
    metadata: Metadata | None = Field(default=None, description="Free-form metadata.")
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class Xpub(ServerRecord):
    current_balance: int = Field(default=0, description="Balance in satoshis.")
    next_internal_num: int = 0
    next_external_num: int = 0


class AccessKey(ServerRecord):
    xpub_id: str | None = None
    revoked_at: datetime | None = None
    key: str | None = Field(
        default=None,
        description="Private access key; the server only returns it on creation.",
    )


class BlockHeader(ServerRecord):
    height: int = 0
    time: int = 0
    nonce: int = 0
    ver: int = 0
    hash_previous_block: str | None = None
    hash_merkle_root: str | None = None
    bits: str | None = None
    synced: datetime | None = None


class Destination(ServerRecord):
    xpub_id: str | None = None
    locking_script: str | None = None
    type: str | None = None
    chain: int = 0
    num: int = 0
    address: str | None = None
    draft_id: str | None = None


class PaymailAddress(ServerRecord):
    xpub_id: str | None = None
    alias: str | None = None
    domain: str | None = None
    public_name: str | None = None
    avatar: str | None = None
    external_xpub_key: str | None = None

    @property
    def address(self) -> str | None:
        if not self.alias or not self.domain:
            return None
        return f"{self.alias}@{self.domain}"


class Transaction(ServerRecord):
    hex: str | None = None
    block_hash: str | None = None
    block_height: int = 0
    fee: int = 0
    number_of_inputs: int = 0
    number_of_outputs: int = 0
    draft_id: str | None = None
    total_value: int = 0
    output_value: int = 0
    status: str | None = None
    direction: str | None = None


class Utxo(ServerRecord):
    """Output no gastado; el servidor lo identifica por `transaction_id:output_index`."""

    transaction_id: str | None = None
    output_index: int = 0
    xpub_id: str | None = None
    satoshis: int = 0
    script_pub_key: str | None = None
    type: str | None = None
    draft_id: str | None = None
    reserved_at: datetime | None = None
    spending_tx_id: str | None = None


class AdminStats(BaseModel):
    """Contadores agregados que devuelve `/admin/stats`."""

    model_config = ConfigDict(extra="allow")

    balance: int = 0
    destinations: int = 0
    transactions: int = 0
    paymails: int = 0
    utxos: int = 0
    xpubs: int = 0
    transactions_per_day: dict[str, Any] = Field(default_factory=dict)
    utxos_per_type: dict[str, Any] = Field(default_factory=dict)
