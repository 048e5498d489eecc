"""Loader de material de claves.

Este módulo vive en `core/` porque:
- centraliza *qué* claves tiene el cliente sin acoplarse a la CLI;
- evita duplicar la lógica de factory/import entre adaptadores.

Nota: no se incluye criptografía de clave privada. El material privado se
entrega a una factory configurada como `package.module:callable`
(`BUX_ADMIN_SIGNER_FACTORY`).
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Callable

from core.config import AppSettings
from core.domain.errors import KeyLoadError
from core.interfaces.keys import PublicKey

logger = logging.getLogger(__name__)

_PUBLIC_PREFIXES: tuple[str, ...] = ("xpub", "tpub")


@dataclass(frozen=True)
class XPubOnlyKey:
    """Clave solo pública: suficiente para requests sin firma (header `bux-xpub`)."""

    xpub: str

    def __repr__(self) -> str:
        return f"XPubOnlyKey(xpub={self.xpub[:12]}...)"


def resolve_factory(path: str) -> Callable[[str], PublicKey]:
    """Import `package.module:callable` and return the callable."""

    module_name, sep, attr_path = path.partition(":")
    if not sep or not module_name or not attr_path:
        raise KeyLoadError(f"invalid signer factory '{path}', expected 'package.module:callable'")

    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise KeyLoadError(f"cannot import signer factory module '{module_name}': {exc}") from exc

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise KeyLoadError(f"signer factory '{path}' not found") from exc

    if not callable(target):
        raise KeyLoadError(f"signer factory '{path}' is not callable")
    return target  # type: ignore[return-value]


def load_key(material: str | None, factory: str | None = None) -> PublicKey | None:
    """Construye un objeto clave a partir del material crudo.

    Reglas:
    - Material vacío -> None (la clave simplemente no está configurada).
    - Con factory, decide la factory (material privado o público).
    - Sin factory, solo se acepta material público (`xpub...`/`tpub...`).
    """

    material = (material or "").strip()
    if not material:
        return None

    if factory:
        key = resolve_factory(factory)(material)
        if not isinstance(key, PublicKey):
            raise KeyLoadError(f"signer factory '{factory}' returned {type(key).__name__}, not a key")
        logger.debug("loaded key through factory %s", factory)
        return key

    if material.startswith(_PUBLIC_PREFIXES):
        return XPubOnlyKey(xpub=material)

    raise KeyLoadError("private key material needs a signer factory (BUX_ADMIN_SIGNER_FACTORY)")


def load_keys(settings: AppSettings) -> tuple[PublicKey | None, PublicKey | None]:
    """Return `(xpriv, admin_xpriv)` as configured in `settings`."""

    return (
        load_key(settings.xpriv, settings.signer_factory),
        load_key(settings.admin_xpriv, settings.signer_factory),
    )
