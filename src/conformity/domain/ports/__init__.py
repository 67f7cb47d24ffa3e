"""Domain port definitions for adapters."""

from __future__ import annotations

from .store import ANY_VALUE, Database, Store

__all__ = [
    "ANY_VALUE",
    "Database",
    "Store",
]
