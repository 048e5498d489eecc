"""Transporte admin sobre HTTP.

Responsabilidad:
- Construir el body JSON de cada operación admin.
- Autenticarlo con la clave admin y enviarlo por un único helper de request.
- Parsear la respuesta a los modelos del dominio.

Nota: toda operación admin falla con `AdminKeyMissingError` antes de tocar la
red cuando no hay clave admin configurada.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter

from adapters.auth import build_auth_headers
from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.errors import AdminKeyMissingError, ServerResponseError
from core.domain.fields import (
    FIELD_ADDRESS,
    FIELD_AVATAR,
    FIELD_CONDITIONS,
    FIELD_HEX,
    FIELD_METADATA,
    FIELD_PUBLIC_NAME,
    FIELD_QUERY_PARAMS,
    FIELD_XPUB_ID,
    FIELD_XPUB_KEY,
)
from core.domain.models import (
    AccessKey,
    AdminStats,
    BlockHeader,
    Destination,
    Metadata,
    PaymailAddress,
    QueryParams,
    Transaction,
    Utxo,
    Xpub,
)
from core.interfaces.keys import PublicKey
from core.key_loader import load_keys

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

Conditions = dict[str, Any]


def process_metadata(metadata: Metadata | None) -> Metadata:
    """El servidor espera un objeto, nunca null."""

    return metadata if metadata is not None else {}


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(data, dict):
        for key in ("message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(data, str) and data:
        return data
    return response.text.strip() or response.reason_phrase


class TransportHTTP:
    """Transporte HTTP para los endpoints admin del servidor de wallets.

    Claves:
    - `xpriv`: la clave normal; se conserva para quien comparte un transporte.
    - `admin_xpriv`: requerida por toda operación admin (siempre firmada).

    Cada operación acepta `timeout` (segundos) como deadline de la llamada
    completa; cancelar la task que espera cancela la request.

    `server_url` se antepone a cada path, así que un `client` inyectado no
    necesita `base_url`.
    """

    def __init__(
        self,
        server_url: str | None = None,
        *,
        xpriv: PublicKey | None = None,
        admin_xpriv: PublicKey | None = None,
        sign_request: bool | None = None,
        settings: AppSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self.server_url = (server_url or self._settings.server_url).rstrip("/")
        self.xpriv = xpriv
        self.admin_xpriv = admin_xpriv
        self.sign_request = self._settings.sign_request if sign_request is None else sign_request

        self._owns_client = client is None
        self._client = client or build_async_client(self._settings, base_url=self.server_url)

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> "TransportHTTP":
        """Crea un transporte con las claves configuradas en `settings`."""

        settings = settings or AppSettings()
        xpriv, admin_xpriv = load_keys(settings)
        return cls(
            settings.server_url,
            xpriv=xpriv,
            admin_xpriv=admin_xpriv,
            settings=settings,
            client=client,
        )

    async def __aenter__(self) -> "TransportHTTP":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # xPub registration

    async def new_xpub(
        self,
        raw_xpub: str,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> Xpub | None:
        """Registra un xPub; debe ir firmado con la clave admin."""

        key = self._require_admin_key()
        data = await self._do_http_request(
            "POST",
            "/xpub",
            {FIELD_METADATA: process_metadata(metadata), FIELD_XPUB_KEY: raw_xpub},
            key,
            sign=True,
            timeout=timeout,
        )
        return _parse_optional(Xpub, data)

    async def register_xpub(
        self,
        raw_xpub: str,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> Xpub | None:
        """Alias de `new_xpub`."""

        return await self.new_xpub(raw_xpub, metadata, timeout=timeout)

    # ------------------------------------------------------------------
    # Status / stats

    async def admin_get_status(self, *, timeout: float | None = None) -> bool:
        """Indica si el servidor acepta la clave admin."""

        key = self._require_admin_key()
        data = await self._do_http_request("GET", "/admin/status", None, key, sign=True, timeout=timeout)
        status = data is True
        logger.debug("admin status: %s", status)
        return status

    async def admin_get_stats(self, *, timeout: float | None = None) -> AdminStats | None:
        key = self._require_admin_key()
        data = await self._do_http_request("GET", "/admin/stats", None, key, sign=True, timeout=timeout)
        stats = _parse_optional(AdminStats, data)
        logger.debug("admin stats: %s", stats)
        return stats

    # ------------------------------------------------------------------
    # Access keys

    async def admin_get_access_keys(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> list[AccessKey]:
        return await self._admin_get_models(
            "/admin/access-keys/search", AccessKey, conditions, metadata, query_params, timeout=timeout
        )

    async def admin_get_access_keys_count(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        return await self._admin_count("/admin/access-keys/count", conditions, metadata, timeout=timeout)

    # ------------------------------------------------------------------
    # Block headers

    async def admin_get_block_headers(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> list[BlockHeader]:
        return await self._admin_get_models(
            "/admin/block-headers/search", BlockHeader, conditions, metadata, query_params, timeout=timeout
        )

    async def admin_get_block_headers_count(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        return await self._admin_count("/admin/block-headers/count", conditions, metadata, timeout=timeout)

    # ------------------------------------------------------------------
    # Destinations

    async def admin_get_destinations(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Destination]:
        return await self._admin_get_models(
            "/admin/destinations/search", Destination, conditions, metadata, query_params, timeout=timeout
        )

    async def admin_get_destinations_count(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        return await self._admin_count("/admin/destinations/count", conditions, metadata, timeout=timeout)

    # ------------------------------------------------------------------
    # Paymails

    async def admin_get_paymail(self, address: str, *, timeout: float | None = None) -> PaymailAddress | None:
        """Obtiene un paymail por su dirección `alias@domain`."""

        key = self._require_admin_key()
        data = await self._do_http_request(
            "GET", "/admin/paymail/get", {FIELD_ADDRESS: address}, key, sign=True, timeout=timeout
        )
        model = _parse_optional(PaymailAddress, data)
        logger.debug("admin get paymail: %s", model)
        return model

    async def admin_get_paymails(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> list[PaymailAddress]:
        return await self._admin_get_models(
            "/admin/paymails/search", PaymailAddress, conditions, metadata, query_params, timeout=timeout
        )

    async def admin_get_paymails_count(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        return await self._admin_count("/admin/paymails/count", conditions, metadata, timeout=timeout)

    async def admin_create_paymail(
        self,
        xpub_id: str,
        address: str,
        public_name: str = "",
        avatar: str = "",
        *,
        timeout: float | None = None,
    ) -> PaymailAddress | None:
        """Crea un paymail para un xPub existente."""

        key = self._require_admin_key()
        payload = {
            FIELD_XPUB_ID: xpub_id,
            FIELD_ADDRESS: address,
            FIELD_PUBLIC_NAME: public_name,
            FIELD_AVATAR: avatar,
        }
        data = await self._do_http_request("POST", "/admin/paymail/create", payload, key, sign=True, timeout=timeout)
        model = _parse_optional(PaymailAddress, data)
        logger.debug("admin create paymail: %s", model)
        return model

    async def admin_delete_paymail(self, address: str, *, timeout: float | None = None) -> PaymailAddress | None:
        """Borra un paymail de la base de datos del servidor."""

        key = self._require_admin_key()
        data = await self._do_http_request(
            "POST", "/admin/paymail/delete", {FIELD_ADDRESS: address}, key, sign=True, timeout=timeout
        )
        model = _parse_optional(PaymailAddress, data)
        logger.debug("admin delete paymail: %s", model)
        return model

    # ------------------------------------------------------------------
    # Transactions

    async def admin_get_transactions(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Transaction]:
        return await self._admin_get_models(
            "/admin/transactions/search", Transaction, conditions, metadata, query_params, timeout=timeout
        )

    async def admin_get_transactions_count(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        return await self._admin_count("/admin/transactions/count", conditions, metadata, timeout=timeout)

    async def admin_record_transaction(self, tx_hex: str, *, timeout: float | None = None) -> Transaction:
        """Registra una transacción raw como admin.

        Solo se firma cuando el transporte tiene `sign_request` activo.
        """

        key = self._require_admin_key()
        data = await self._do_http_request(
            "POST",
            "/admin/transactions/record",
            {FIELD_HEX: tx_hex},
            key,
            sign=self.sign_request,
            timeout=timeout,
        )
        transaction = Transaction.model_validate(data or {})
        logger.debug("transaction: %s", transaction.id)
        return transaction

    # ------------------------------------------------------------------
    # UTXOs

    async def admin_get_utxos(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Utxo]:
        return await self._admin_get_models(
            "/admin/utxos/search", Utxo, conditions, metadata, query_params, timeout=timeout
        )

    async def admin_get_utxos_count(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        return await self._admin_count("/admin/utxos/count", conditions, metadata, timeout=timeout)

    # ------------------------------------------------------------------
    # xPubs

    async def admin_get_xpubs(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        query_params: QueryParams | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Xpub]:
        return await self._admin_get_models(
            "/admin/xpubs/search", Xpub, conditions, metadata, query_params, timeout=timeout
        )

    async def admin_get_xpubs_count(
        self,
        conditions: Conditions | None = None,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        return await self._admin_count("/admin/xpubs/count", conditions, metadata, timeout=timeout)

    # ------------------------------------------------------------------
    # Shared helpers

    def _require_admin_key(self) -> PublicKey:
        if self.admin_xpriv is None:
            raise AdminKeyMissingError()
        return self.admin_xpriv

    async def _admin_get_models(
        self,
        path: str,
        model: type[ModelT],
        conditions: Conditions | None,
        metadata: Metadata | None,
        query_params: QueryParams | None,
        *,
        timeout: float | None = None,
    ) -> list[ModelT]:
        key = self._require_admin_key()
        payload = {
            FIELD_CONDITIONS: conditions,
            FIELD_METADATA: process_metadata(metadata),
            FIELD_QUERY_PARAMS: query_params.to_wire() if query_params is not None else None,
        }
        data = await self._do_http_request("GET", path, payload, key, sign=True, timeout=timeout)
        models = TypeAdapter(list[model]).validate_python(data or [])  # type: ignore[valid-type]
        logger.debug("%s: %d record(s)", path, len(models))
        return models

    async def _admin_count(
        self,
        path: str,
        conditions: Conditions | None,
        metadata: Metadata | None,
        *,
        timeout: float | None = None,
    ) -> int:
        key = self._require_admin_key()
        payload = {
            FIELD_CONDITIONS: conditions,
            FIELD_METADATA: process_metadata(metadata),
        }
        data = await self._do_http_request("GET", path, payload, key, sign=True, timeout=timeout)
        count = int(data) if data is not None else 0
        logger.debug("%s: %d", path, count)
        return count

    async def _do_http_request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None,
        key: PublicKey,
        *,
        sign: bool,
        timeout: float | None = None,
    ) -> Any:
        """Envía una request autenticada y devuelve la respuesta JSON decodificada.

        Errores:
        - La codificación JSON (`TypeError`/`ValueError`) y `httpx.HTTPError`
          se propagan sin cambios.
        - Con `timeout`, superar el deadline lanza `httpx.TimeoutException`.
        - Status >= 400 lanza `ServerResponseError`.
        """

        body = b"" if payload is None else json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        headers.update(build_auth_headers(key, body, sign=sign))

        # URL absoluta: un cliente inyectado puede no tener base_url.
        url = f"{self.server_url}{path}"
        request = self._client.build_request(
            method,
            url,
            content=body or None,
            headers=headers,
            timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
        )

        logger.debug("%s %s (%d bytes, signed=%s)", method, url, len(body), sign)
        if timeout is None:
            response = await self._client.send(request)
        else:
            try:
                response = await asyncio.wait_for(self._client.send(request), timeout)
            except asyncio.TimeoutError as exc:
                raise httpx.TimeoutException(f"no reply within {timeout}s", request=request) from exc

        if response.status_code >= 400:
            raise ServerResponseError(response.status_code, _error_message(response))
        if not response.content:
            return None
        return response.json()


def _parse_optional(model: type[ModelT], data: Any) -> ModelT | None:
    if data is None:
        return None
    return model.model_validate(data)
