"""Engine lifecycle for the durable store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from conformity.adapters.sqlalchemy.migrations import upgrade_head
from conformity.adapters.sqlalchemy.store import SqlAlchemyStore, enable_sqlite_write_locking
from conformity.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the durable store is used before initialisation."""


def create_store_engine(database_uri: str | None = None) -> Engine:
    """Create an engine for ``database_uri`` (default: configured URI) ready for the store."""

    config = get_database_config()
    engine = create_engine(database_uri or config.uri, echo=config.echo, future=True)
    enable_sqlite_write_locking(engine)
    return engine


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _store: SqlAlchemyStore | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._store = None
        self._engine = value

    @property
    def store(self) -> SqlAlchemyStore:
        if self._engine is None:
            raise StartupError(
                "Durable store not initialised. Call conformity.adapters.sqlalchemy."
                "engine.startup() before requesting the store."
            )
        if self._store is None:
            self._store = SqlAlchemyStore(self._engine)
        return self._store


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> SqlAlchemyStore:
    """Initialise the engine, bring the schema to the latest revision and return the store."""

    if _STATE.engine is not None and not force:
        raise StartupError("Durable store already initialised. Pass force=True to reconfigure.")

    resolved_engine = engine or create_store_engine(database_uri)
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine
    return _STATE.store


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def configured_store() -> SqlAlchemyStore:
    return _STATE.store


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
