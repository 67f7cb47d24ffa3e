from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from conformity.adapters.memory import MemoryDatabase, with_conforms
from conformity.adapters.sqlalchemy import SqlAlchemyStore, create_store_engine, upgrade_head
from conformity.domain.conformity import ensure_conforms
from conformity.domain.errors import StoreSubmissionError
from conformity.domain.ledger import DEFAULT_MARKER_ATTRIBUTE, conforms_to, ensure_ledger
from conformity.domain.model import Assert, Norm, NormMap, TempId
from tests.helpers.migrations import TX_BAR, TX_FOO
from tests.helpers.norms import attribute_idents, marker_count, schema_norm

if TYPE_CHECKING:
    from pathlib import Path

    from conformity.common import Registry
    from conformity.domain.generators import Generator
    from conformity.domain.model import NormApplication


def _seed_norm_map() -> NormMap:
    return NormMap.of(
        [
            schema_norm("schema", "person/name"),
            Norm(
                name="seed",
                tx=[{"db/id": "ada", "person/name": "Ada"}],
                requires=("schema",),
            ),
        ]
    )


def test_durable_conformity_is_idempotent(sql_store: SqlAlchemyStore) -> None:
    norm_map = _seed_norm_map()

    first = ensure_conforms(sql_store, norm_map)
    second = ensure_conforms(sql_store, norm_map)

    assert [application.norm_name for application in first] == ["schema", "seed"]
    assert second == []
    snapshot = sql_store.current_snapshot()
    assert marker_count(snapshot, "seed") == 1
    assert len(snapshot.datoms(a="person/name")) == 1


def test_durable_and_speculative_runs_agree(
    sql_store: SqlAlchemyStore, generators: Registry[Generator]
) -> None:
    norm_map = NormMap.of(
        [
            Norm(name="foo", generator=TX_FOO),
            Norm(name="bar", generator=TX_BAR, requires=("foo",)),
            schema_norm("people", "person/name", requires=("bar",)),
        ]
    )

    speculative = with_conforms(MemoryDatabase.empty(), norm_map, generators=generators)
    durable = ensure_conforms(sql_store, norm_map, generators=generators)

    snapshot = sql_store.current_snapshot()
    assert [application.norm_name for application in durable] == speculative.norm_names
    assert attribute_idents(snapshot) == attribute_idents(speculative.db)
    for name in norm_map.names:
        assert conforms_to(snapshot, name)
        assert conforms_to(speculative.db, name)


def test_preview_of_conformed_store_applies_nothing(sql_store: SqlAlchemyStore) -> None:
    norm_map = _seed_norm_map()
    ensure_conforms(sql_store, norm_map)

    speculative = with_conforms(sql_store.current_snapshot(), norm_map)

    assert speculative.result == []


def test_failed_norm_commits_nothing(sql_store: SqlAlchemyStore) -> None:
    norm_map = NormMap.of(
        [
            schema_norm("schema", "person/name"),
            Norm(
                name="broken",
                tx=[Assert(TempId("p"), "person/name", "Ada"), Assert(TempId("p"), "x/y", 1)],
            ),
        ]
    )

    with pytest.raises(StoreSubmissionError) as exc:
        ensure_conforms(sql_store, norm_map)

    snapshot = sql_store.current_snapshot()
    assert [application.norm_name for application in exc.value.succeeded] == ["schema"]
    assert conforms_to(snapshot, "schema")
    assert not conforms_to(snapshot, "broken")
    assert snapshot.datoms(a="person/name") == ()


def test_concurrent_runs_apply_each_norm_once(tmp_path: Path) -> None:
    engine = create_store_engine(f"sqlite+pysqlite:///{tmp_path / 'store.db'}")
    upgrade_head(engine=engine)
    ensure_ledger(SqlAlchemyStore(engine), DEFAULT_MARKER_ATTRIBUTE)
    norm_map = _seed_norm_map()
    workers = 4
    barrier = threading.Barrier(workers)
    results: list[list[NormApplication]] = []
    errors: list[BaseException] = []

    def run() -> None:
        barrier.wait()
        try:
            results.append(ensure_conforms(SqlAlchemyStore(engine), norm_map))
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=run) for _ in range(workers)]
    try:
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        applied = sorted(application.norm_name for outcome in results for application in outcome)
        assert applied == ["schema", "seed"]
        snapshot = SqlAlchemyStore(engine).current_snapshot()
        assert marker_count(snapshot, "seed") == 1
        assert len(snapshot.datoms(a="person/name")) == 1
    finally:
        engine.dispose()
