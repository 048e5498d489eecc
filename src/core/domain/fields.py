"""Nombres de campos JSON usados en los bodies de las requests.

El servidor lee exactamente estas keys; viven en un solo sitio para que
adaptadores y tests coincidan en el formato.
"""

from __future__ import annotations

FIELD_ADDRESS = "address"
FIELD_AVATAR = "avatar"
FIELD_CONDITIONS = "conditions"
FIELD_HEX = "hex"
FIELD_METADATA = "metadata"
FIELD_PUBLIC_NAME = "public_name"
FIELD_QUERY_PARAMS = "params"
FIELD_XPUB_ID = "xpub_id"
FIELD_XPUB_KEY = "key"
