"""SQLAlchemy adapter package: the durable fact store."""

from __future__ import annotations

from .engine import (
    StartupError,
    configured_engine,
    configured_store,
    create_store_engine,
    is_started,
    shutdown,
    startup,
)
from .mappings import metadata
from .migrations import upgrade_head
from .store import SqlAlchemyStore, SqlDatabase, enable_sqlite_write_locking

__all__ = [
    "SqlAlchemyStore",
    "SqlDatabase",
    "StartupError",
    "configured_engine",
    "configured_store",
    "create_store_engine",
    "enable_sqlite_write_locking",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
    "upgrade_head",
]
