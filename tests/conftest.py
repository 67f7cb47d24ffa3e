from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002

from conformity.adapters.memory import SpeculativeStore
from conformity.adapters.sqlalchemy import SqlAlchemyStore, create_store_engine, upgrade_head
from tests.helpers.migrations import build_generator_registry

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from conformity.common import Registry
    from conformity.domain.generators import Generator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_store_engine("sqlite+pysqlite:///:memory:")
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine: Engine) -> SqlAlchemyStore:
    return SqlAlchemyStore(sqlite_engine)


@pytest.fixture
def memory_store() -> SpeculativeStore:
    return SpeculativeStore()


@pytest.fixture
def generators() -> Registry[Generator]:
    return build_generator_registry()
