"""In-memory store adapter used for speculative (dry-run) conformity."""

from __future__ import annotations

from .database import MemoryDatabase
from .speculative import SpeculativeStore, with_conforms

__all__ = [
    "MemoryDatabase",
    "SpeculativeStore",
    "with_conforms",
]
