"""Headers de autenticación para las requests al servidor.

Dos modos:
- Sin firma: solo `bux-xpub` identifica al llamador.
- Con firma: `bux-xpub` + hash del body, nonce y tiempo, más una firma sobre
  `xpub + hash + nonce + time` que produce la propia clave.
"""

from __future__ import annotations

import hashlib
import secrets
import time

from core.domain.errors import SigningKeyError
from core.interfaces.keys import PublicKey, SigningKey

AUTH_HEADER = "bux-xpub"
AUTH_HEADER_HASH = "bux-auth-hash"
AUTH_HEADER_NONCE = "bux-auth-nonce"
AUTH_HEADER_TIME = "bux-auth-time"
AUTH_SIGNATURE = "bux-auth-signature"


def body_hash(body: bytes) -> str:
    return hashlib.sha256(body).hexdigest()


def signing_message(xpub: str, auth_hash: str, nonce: str, auth_time: int) -> str:
    return f"{xpub}{auth_hash}{nonce}{auth_time}"


def build_auth_headers(
    key: PublicKey,
    body: bytes,
    *,
    sign: bool,
    nonce: str | None = None,
    now_ms: int | None = None,
) -> dict[str, str]:
    """Devuelve los headers que autentican `body` con `key`.

    `nonce` y `now_ms` solo existen para tests reproducibles.
    """

    if not sign:
        return {AUTH_HEADER: key.xpub}

    if not isinstance(key, SigningKey):
        raise SigningKeyError(f"{type(key).__name__} cannot sign requests; configure a signer factory")

    auth_hash = body_hash(body)
    nonce = nonce or secrets.token_hex(32)
    auth_time = now_ms if now_ms is not None else int(time.time() * 1000)
    signature = key.sign(signing_message(key.xpub, auth_hash, nonce, auth_time), nonce)

    return {
        AUTH_HEADER: key.xpub,
        AUTH_HEADER_HASH: auth_hash,
        AUTH_HEADER_NONCE: nonce,
        AUTH_HEADER_TIME: str(auth_time),
        AUTH_SIGNATURE: signature,
    }
