"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que los adaptadores (HTTP/auth) lean config de forma consistente.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "bux-admin"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "bux-admin"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "bux-admin"
    return Path.home() / ".config" / "bux-admin"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        try:
            existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError):
            logger.warning("could not read %s, rewriting it", env_path)
            existing = {}

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# bux-admin user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    # Contiene material de claves privadas.
    if not sys.platform.startswith("win"):
        env_path.chmod(0o600)
    return env_path


class AppSettings(BaseSettings):
    """Settings centrales de la aplicación.

    Por qué pydantic-settings:
    - Tipado y validado en el borde (env vars) sin filtrarse al Core.
    - Un único contrato de configuración para la CLI y los adaptadores.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUX_ADMIN_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    server_url: str = Field(
        default="http://localhost:3003/v1",
        min_length=8,
        description="Base URL of the wallet server API (paths are appended to it).",
    )
    xpriv: str | None = Field(
        default=None,
        description="Regular key material (xPriv, or xPub for unsigned requests).",
    )
    admin_xpriv: str | None = Field(
        default=None,
        description="Admin key material, required by every admin operation.",
    )
    signer_factory: str | None = Field(
        default=None,
        pattern=r"^[\w.]+:[\w.]+$",
        description="Import path 'package.module:callable' that turns key material into a signing key.",
    )
    sign_request: bool = Field(
        default=True,
        description="Sign requests that do not force a signature (e.g. record transaction).",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    user_agent: str = Field(
        default="bux-admin/0.1",
        min_length=1,
        description="User-Agent sent to the server.",
    )
    debug: bool = Field(
        default=False,
        description="Log every request/response at DEBUG level.",
    )
