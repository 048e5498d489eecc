"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan las claves concretas.
- Mantiene el Core independiente de cualquier librería de claves/cripto.
"""
