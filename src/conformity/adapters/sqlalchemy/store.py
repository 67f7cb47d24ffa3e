"""Durable store backed by SQLAlchemy Core tables."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final

from sqlalchemy import Connection, and_, event, func, insert, or_, select, update

from conformity.adapters.sqlalchemy.mappings import (
    attribute_table,
    datom_table,
    entity_table,
    procedure_table,
    transaction_table,
    unique_key,
)
from conformity.domain.guard import default_procedures
from conformity.domain.model import AttributeSpec, Datom, ProcedureSpec, TxResult
from conformity.domain.ports import ANY_VALUE
from conformity.domain.transactor import prepare_transaction

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Executable, Row
    from sqlalchemy.engine import Engine

    from conformity.common import Registry
    from conformity.domain.model import TxData
    from conformity.domain.transactor import PreparedTransaction, Procedure

log = getLogger(__name__)

WRITE_OPTION: Final[str] = "conformity_write"


def _on_sqlite_connect(dbapi_connection: object, connection_record: object) -> None:
    _ = connection_record
    # Stop pysqlite from issuing its own BEGIN so _on_sqlite_begin controls locking.
    dbapi_connection.isolation_level = None  # pyright: ignore[reportAttributeAccessIssue]


def _on_sqlite_begin(connection: Connection) -> None:
    if connection.get_execution_options().get(WRITE_OPTION):
        connection.exec_driver_sql("BEGIN IMMEDIATE")
    else:
        connection.exec_driver_sql("BEGIN")


def enable_sqlite_write_locking(engine: Engine) -> None:
    """Make writes on a SQLite engine take the database write lock when they begin.

    Must run before the engine opens its first connection. No-op for other dialects.
    """

    if engine.dialect.name != "sqlite" or event.contains(engine, "begin", _on_sqlite_begin):
        return
    event.listen(engine, "connect", _on_sqlite_connect)
    event.listen(engine, "begin", _on_sqlite_begin)


def _basis_t(connection: Connection) -> int:
    stmt = select(func.coalesce(func.max(transaction_table.c.id), 0))
    return int(connection.execute(stmt).scalar_one())


def _allocate_entity(connection: Connection) -> int:
    result = connection.execute(insert(entity_table).values(kind="entity"))
    return int(result.inserted_primary_key[0])


def _attribute_from_row(row: Row[tuple[object, ...]]) -> AttributeSpec:
    return AttributeSpec(
        ident=row.ident,
        value_type=row.value_type,
        cardinality=row.cardinality,
        indexed=row.is_indexed,
        unique=row.is_unique,
        doc=row.doc,
    )


def _procedure_from_row(row: Row[tuple[object, ...]]) -> ProcedureSpec:
    return ProcedureSpec(ident=row.ident, function=row.function, doc=row.doc)


class SqlDatabase:
    """Snapshot of the durable store as of ``basis_t``.

    Bound to an engine it opens a short connection per read; bound to a
    connection it reads inside that connection's transaction.
    """

    def __init__(self, bind: Engine | Connection, basis_t: int) -> None:
        self._bind = bind
        self._basis_t = basis_t

    def __repr__(self) -> str:
        return f"SqlDatabase(basis_t={self._basis_t})"

    @property
    def basis_t(self) -> int:
        return self._basis_t

    def attribute(self, ident: str) -> AttributeSpec | None:
        stmt = (
            select(attribute_table)
            .where(attribute_table.c.ident == ident)
            .where(attribute_table.c.tx <= self._basis_t)
        )
        rows = self._rows(stmt)
        return _attribute_from_row(rows[0]) if rows else None

    def procedure(self, ident: str) -> ProcedureSpec | None:
        stmt = (
            select(procedure_table)
            .where(procedure_table.c.ident == ident)
            .where(procedure_table.c.tx <= self._basis_t)
        )
        rows = self._rows(stmt)
        return _procedure_from_row(rows[0]) if rows else None

    def attributes(self) -> tuple[AttributeSpec, ...]:
        stmt = (
            select(attribute_table)
            .where(attribute_table.c.tx <= self._basis_t)
            .order_by(attribute_table.c.tx, attribute_table.c.ident)
        )
        return tuple(_attribute_from_row(row) for row in self._rows(stmt))

    def procedures(self) -> tuple[ProcedureSpec, ...]:
        stmt = (
            select(procedure_table)
            .where(procedure_table.c.tx <= self._basis_t)
            .order_by(procedure_table.c.tx, procedure_table.c.ident)
        )
        return tuple(_procedure_from_row(row) for row in self._rows(stmt))

    def datoms(
        self,
        *,
        e: int | None = None,
        a: str | None = None,
        v: object = ANY_VALUE,
    ) -> tuple[Datom, ...]:
        stmt = select(
            datom_table.c.e, datom_table.c.a, datom_table.c.v, datom_table.c.tx
        ).where(self._visible())
        if e is not None:
            stmt = stmt.where(datom_table.c.e == e)
        if a is not None:
            stmt = stmt.where(datom_table.c.a == a)
        if v is not ANY_VALUE:
            stmt = stmt.where(datom_table.c.v == v)
        stmt = stmt.order_by(datom_table.c.id)
        return tuple(Datom(row.e, row.a, row.v, row.tx) for row in self._rows(stmt))

    def _visible(self) -> ColumnElement[bool]:
        return and_(
            datom_table.c.tx <= self._basis_t,
            or_(
                datom_table.c.retracted_tx.is_(None),
                datom_table.c.retracted_tx > self._basis_t,
            ),
        )

    def _rows(self, stmt: Executable) -> list[Row[tuple[object, ...]]]:
        if isinstance(self._bind, Connection):
            return list(self._bind.execute(stmt))
        with self._bind.connect() as connection:
            return list(connection.execute(stmt))


class SqlAlchemyStore:
    """Store adapter persisting facts through a SQLAlchemy engine.

    Every transaction runs in one database transaction that holds the write lock
    from its first statement (``BEGIN IMMEDIATE`` on SQLite, ``SERIALIZABLE``
    elsewhere). Procedure calls read and write inside it, which is what makes
    the conformity guard atomic against concurrent writers.

    A snapshot's basis is the highest committed transaction id, and ids are
    allocated when a transaction begins. On SQLite writers are serialized, so
    ids commit in order and snapshots never change. On other backends a
    lower-id transaction may still commit after a snapshot was taken and then
    become visible in it; snapshots there are stable only once no write is in
    flight.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        procedures: Registry[Procedure] = default_procedures,
        poll_interval: float = 0.05,
    ) -> None:
        enable_sqlite_write_locking(engine)
        self._engine = engine
        self._procedures = procedures
        self._poll_interval = poll_interval

    @property
    def engine(self) -> Engine:
        return self._engine

    def current_snapshot(self) -> SqlDatabase:
        with self._engine.connect() as connection:
            basis_t = _basis_t(connection)
        return SqlDatabase(self._engine, basis_t)

    def transact(self, tx_data: TxData) -> TxResult:
        with self._engine.connect() as connection:
            self._prepare_for_writing(connection)
            with connection.begin():
                basis_t = _basis_t(connection)
                prepared = prepare_transaction(
                    SqlDatabase(connection, basis_t),
                    tx_data,
                    allocate=lambda: _allocate_entity(connection),
                    procedures=self._procedures,
                )
                if not prepared.is_empty:
                    self._persist(connection, prepared)

        db_before = SqlDatabase(self._engine, basis_t)
        if prepared.tx_id is None:
            return TxResult(db_before=db_before, db_after=db_before)
        log.debug("Committed transaction %s with %d datoms", prepared.tx_id, len(prepared.datoms))
        return TxResult(
            db_before=db_before,
            db_after=SqlDatabase(self._engine, prepared.tx_id),
            tx_data=prepared.datoms,
            tempids=prepared.tempids,
            tx_id=prepared.tx_id,
        )

    def sync(self, timeout: float | None = None) -> SqlDatabase:
        _ = timeout
        return self.current_snapshot()

    def sync_schema(self, basis_t: int, timeout: float | None = None) -> SqlDatabase:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            snapshot = self.current_snapshot()
            if snapshot.basis_t >= basis_t:
                return snapshot
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"Store did not reach basis {basis_t} within {timeout}s")
            time.sleep(self._poll_interval)

    def install_attribute(self, spec: AttributeSpec) -> TxResult:
        return self.transact([spec])

    def install_procedure(self, spec: ProcedureSpec) -> TxResult:
        return self.transact([spec])

    def _prepare_for_writing(self, connection: Connection) -> None:
        if connection.dialect.name == "sqlite":
            connection.execution_options(**{WRITE_OPTION: True})
        else:
            connection.execution_options(isolation_level="SERIALIZABLE")

    def _persist(self, connection: Connection, prepared: PreparedTransaction) -> None:
        tx_id = prepared.tx_id
        connection.execute(
            update(entity_table).where(entity_table.c.id == tx_id).values(kind="transaction")
        )
        connection.execute(
            insert(transaction_table).values(id=tx_id, instant=datetime.now(tz=UTC))
        )
        if prepared.attributes:
            connection.execute(
                insert(attribute_table),
                [
                    {
                        "ident": spec.ident,
                        "value_type": spec.value_type,
                        "cardinality": spec.cardinality,
                        "is_indexed": spec.indexed,
                        "is_unique": spec.unique,
                        "doc": spec.doc,
                        "tx": tx_id,
                    }
                    for spec in prepared.attributes
                ],
            )
        if prepared.procedures:
            connection.execute(
                insert(procedure_table),
                [
                    {"ident": spec.ident, "function": spec.function, "doc": spec.doc, "tx": tx_id}
                    for spec in prepared.procedures
                ],
            )

        for datom in prepared.datoms:
            if datom.added:
                continue
            connection.execute(
                update(datom_table)
                .where(datom_table.c.e == datom.e)
                .where(datom_table.c.a == datom.a)
                .where(datom_table.c.v == datom.v)
                .where(datom_table.c.retracted_tx.is_(None))
                .values(retracted_tx=tx_id, unique_key=None)
            )

        additions = [
            {
                "e": datom.e,
                "a": datom.a,
                "v": datom.v,
                "tx": tx_id,
                "unique_key": (
                    unique_key(datom.a, datom.v) if prepared.schema[datom.a].unique else None
                ),
            }
            for datom in prepared.datoms
            if datom.added
        ]
        if additions:
            connection.execute(insert(datom_table), additions)

