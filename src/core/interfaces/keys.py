"""Contratos de material de claves.

Por qué Protocol:
- La firma criptográfica del mensaje de auth la aporta quien tiene la clave
  (una librería HD-wallet, un HSM, un firmante remoto...).
- El cliente solo necesita el xPub y, cuando firma, una llamada a `sign`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PublicKey(Protocol):
    """Identidad mínima: la clave pública extendida que viaja en `bux-xpub`."""

    xpub: str


@runtime_checkable
class SigningKey(PublicKey, Protocol):
    """Clave capaz de firmar el mensaje de auth de una request.

    Reglas de diseño:
    - `sign` recibe el mensaje de auth completo y el nonce de la request; las
      claves que derivan una clave hija a partir del nonce pueden hacerlo.
    - Devuelve la firma tal cual debe viajar en `bux-auth-signature`.
    """

    def sign(self, message: str, nonce: str) -> str:
        ...
