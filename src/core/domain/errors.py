"""Tipos de error del cliente.

Aquí solo viven fallos locales. Los errores de transporte (`httpx.HTTPError`)
y de codificación JSON se propagan al llamador sin cambios.
"""

from __future__ import annotations


class BuxClientError(Exception):
    """Base exception for the admin client."""


class AdminKeyMissingError(BuxClientError):
    """Se lanza antes de cualquier request cuando una operación admin no tiene clave admin."""

    def __init__(self, message: str = "an admin key is required for this operation") -> None:
        super().__init__(message)


class SigningKeyError(BuxClientError):
    """Raised when a signature is required but the key cannot produce one."""


class KeyLoadError(BuxClientError):
    """Raised when configured key material cannot be turned into a key object."""


class ServerResponseError(BuxClientError):
    """El servidor respondió con status >= 400."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"server error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
