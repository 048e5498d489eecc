"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2).
- El dominio no conoce HTTP, la CLI ni material de claves: solo los
  registros que gestiona el servidor de wallets.
"""
