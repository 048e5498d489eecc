"""Exportación JSON de registros del servidor.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines (jq, hojas de cálculo).
- Guarda una foto estable y diffeable de lo que devolvió el servidor.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from pydantic import BaseModel


def export_models_json(*, models: BaseModel | Sequence[BaseModel], output_path: Path) -> Path:
    """Exporta un modelo o una lista de modelos a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(models, BaseModel):
        payload: object = models.model_dump(mode="json")
    else:
        payload = [m.model_dump(mode="json") for m in models]
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
