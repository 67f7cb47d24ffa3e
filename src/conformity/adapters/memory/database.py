"""Immutable in-memory database values."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from types import MappingProxyType
from typing import TYPE_CHECKING

from conformity.domain.guard import default_procedures
from conformity.domain.model import TxResult
from conformity.domain.ports import ANY_VALUE
from conformity.domain.transactor import prepare_transaction

if TYPE_CHECKING:
    from collections.abc import Mapping

    from conformity.common import Registry
    from conformity.domain.model import AttributeSpec, Datom, ProcedureSpec, TxData
    from conformity.domain.ports import Database
    from conformity.domain.transactor import Procedure


@dataclass(frozen=True, slots=True)
class MemoryDatabase:
    """A database value held entirely in memory.

    Instances never change. :meth:`with_` simulates a transaction and returns a
    result whose ``db_after`` is a new value, leaving ``self`` untouched.
    """

    basis_t: int = 0
    next_entity_id: int = 1
    _attributes: Mapping[str, AttributeSpec] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )
    _procedures: Mapping[str, ProcedureSpec] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )
    _datoms: tuple[Datom, ...] = field(default=(), repr=False)

    @classmethod
    def empty(cls) -> MemoryDatabase:
        return cls()

    @classmethod
    def from_database(cls, db: Database) -> MemoryDatabase:
        """Copy any snapshot (a durable one included) into memory."""

        if isinstance(db, MemoryDatabase):
            return db
        datoms = db.datoms()
        highest = max(
            (max(datom.e, datom.tx) for datom in datoms),
            default=0,
        )
        return cls(
            basis_t=db.basis_t,
            next_entity_id=max(highest, db.basis_t) + 1,
            _attributes=MappingProxyType({spec.ident: spec for spec in db.attributes()}),
            _procedures=MappingProxyType({spec.ident: spec for spec in db.procedures()}),
            _datoms=datoms,
        )

    def attribute(self, ident: str) -> AttributeSpec | None:
        return self._attributes.get(ident)

    def procedure(self, ident: str) -> ProcedureSpec | None:
        return self._procedures.get(ident)

    def attributes(self) -> tuple[AttributeSpec, ...]:
        return tuple(self._attributes.values())

    def procedures(self) -> tuple[ProcedureSpec, ...]:
        return tuple(self._procedures.values())

    def datoms(
        self,
        *,
        e: int | None = None,
        a: str | None = None,
        v: object = ANY_VALUE,
    ) -> tuple[Datom, ...]:
        return tuple(
            datom
            for datom in self._datoms
            if (e is None or datom.e == e)
            and (a is None or datom.a == a)
            and (v is ANY_VALUE or datom.v == v)
        )

    def with_(
        self,
        tx_data: TxData,
        *,
        procedures: Registry[Procedure] = default_procedures,
    ) -> TxResult:
        ids = count(self.next_entity_id)
        prepared = prepare_transaction(
            self, tx_data, allocate=lambda: next(ids), procedures=procedures
        )
        if prepared.is_empty:
            return TxResult(db_before=self, db_after=self)

        retracted = {(d.e, d.a, d.v) for d in prepared.datoms if not d.added}
        kept = tuple(d for d in self._datoms if (d.e, d.a, d.v) not in retracted)
        added = tuple(d for d in prepared.datoms if d.added)
        db_after = MemoryDatabase(
            basis_t=prepared.tx_id or self.basis_t,
            next_entity_id=next(ids),
            _attributes=MappingProxyType(
                {**self._attributes, **{spec.ident: spec for spec in prepared.attributes}}
            ),
            _procedures=MappingProxyType(
                {**self._procedures, **{spec.ident: spec for spec in prepared.procedures}}
            ),
            _datoms=kept + added,
        )
        return TxResult(
            db_before=self,
            db_after=db_after,
            tx_data=prepared.datoms,
            tempids=prepared.tempids,
            tx_id=prepared.tx_id,
        )
