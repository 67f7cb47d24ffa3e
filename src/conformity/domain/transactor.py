"""Store-side transaction processing shared by every store adapter.

Adapters hand :func:`prepare_transaction` a snapshot read inside their commit
boundary together with an entity id allocator. Procedure calls are expanded
against that same snapshot, so a procedure's reads and the resulting writes
commit as one unit. The adapter then persists the returned datoms and schema.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from conformity.domain.model import (
    BUILTIN_ATTRIBUTES,
    DB_ID,
    TX,
    Assert,
    AttributeSpec,
    Call,
    Cardinality,
    Datom,
    ProcedureSpec,
    Retract,
    TempId,
    ValueType,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from conformity.common import Registry
    from conformity.domain.model import EntityRef, TxData
    from conformity.domain.ports import Database

log = getLogger(__name__)

type Procedure = Callable[..., TxData]
"""Store procedure: called as ``procedure(db, *args)`` and returns more statements."""

type EntityAllocator = Callable[[], int]

type _Expanded = Assert | Retract | AttributeSpec | ProcedureSpec


class TransactionError(RuntimeError):
    """Raised when transaction data violates the store's rules."""


@dataclass(frozen=True, slots=True, kw_only=True)
class PreparedTransaction:
    """Everything an adapter must persist for one transaction.

    ``tx_id`` is ``None`` when the transaction writes nothing.
    """

    tx_id: int | None = None
    datoms: tuple[Datom, ...] = ()
    attributes: tuple[AttributeSpec, ...] = ()
    procedures: tuple[ProcedureSpec, ...] = ()
    tempids: Mapping[TempId, int] = field(default_factory=dict["TempId", int])
    schema: Mapping[str, AttributeSpec] = field(default_factory=dict[str, AttributeSpec])

    @property
    def is_empty(self) -> bool:
        return self.tx_id is None


def prepare_transaction(
    db: Database,
    tx_data: TxData,
    *,
    allocate: EntityAllocator,
    procedures: Registry[Procedure],
) -> PreparedTransaction:
    statements = list(expand_statements(db, tx_data, procedures))
    if not statements:
        return PreparedTransaction()

    builder = _TransactionBuilder(db, allocate)
    # Schema first so assertions in the same transaction may use new attributes.
    for statement in statements:
        if isinstance(statement, AttributeSpec):
            builder.install_attribute(statement)
        elif isinstance(statement, ProcedureSpec):
            builder.install_procedure(statement)
    for statement in statements:
        if isinstance(statement, Assert):
            builder.add(statement)
        elif isinstance(statement, Retract):
            builder.retract(statement)
    return builder.build()


def expand_statements(
    db: Database,
    tx_data: TxData,
    procedures: Registry[Procedure],
) -> Iterator[_Expanded]:
    """Flatten procedure calls and entity maps into primitive statements."""

    for statement in tx_data:
        if isinstance(statement, Call):
            spec = db.procedure(statement.procedure)
            if spec is None:
                raise TransactionError(f"Unknown procedure: {statement.procedure}")
            function = procedures.resolve(spec.function)
            log.debug("Expanding procedure %s", spec.ident)
            yield from expand_statements(db, function(db, *statement.args), procedures)
        elif isinstance(statement, Assert | Retract | AttributeSpec | ProcedureSpec):
            yield statement
        elif isinstance(statement, Mapping):
            yield from _entity_map_assertions(statement)
        else:
            raise TransactionError(f"Unsupported statement: {statement!r}")


def _entity_map_assertions(entity_map: Mapping[str, object]) -> Iterator[Assert]:
    entity = entity_map.get(DB_ID)
    if entity is None:
        entity = TempId(f"entity-{uuid4().hex}")
    elif isinstance(entity, str):
        entity = TempId(entity)
    for attribute, value in entity_map.items():
        if attribute == DB_ID:
            continue
        values = value if isinstance(value, list | tuple | set | frozenset) else (value,)
        for item in values:  # pyright: ignore[reportUnknownVariableType]
            yield Assert(entity, attribute, item)  # pyright: ignore[reportArgumentType]


def _text(value: object) -> str:
    if not isinstance(value, str):
        raise TypeError("expected a string")
    return value


def _long(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("expected an integer")
    return value


def _double(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError("expected a number")
    return float(value)


def _boolean(value: object) -> bool:
    if not isinstance(value, bool):
        raise TypeError("expected a boolean")
    return value


def _instant(value: object) -> datetime:
    if not isinstance(value, datetime):
        raise TypeError("expected a datetime")
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _uuid(value: object) -> UUID:
    if not isinstance(value, UUID):
        raise TypeError("expected a UUID")
    return value


_COERCIONS: dict[ValueType, Callable[[object], Any]] = {
    ValueType.KEYWORD: _text,
    ValueType.STRING: _text,
    ValueType.LONG: _long,
    ValueType.DOUBLE: _double,
    ValueType.BOOLEAN: _boolean,
    ValueType.INSTANT: _instant,
    ValueType.UUID: _uuid,
}


class _TransactionBuilder:
    def __init__(self, db: Database, allocate: EntityAllocator) -> None:
        self._db = db
        self._allocate = allocate
        self.tx_id = allocate()
        self._tempids: dict[TempId, int] = {TX: self.tx_id}
        self._attributes: dict[str, AttributeSpec] = {}
        self._procedures: dict[str, ProcedureSpec] = {}
        self._schema: dict[str, AttributeSpec] = {}
        self._datoms: list[Datom] = []

    def install_attribute(self, spec: AttributeSpec) -> None:
        existing = self._attributes.get(spec.ident) or self._db.attribute(spec.ident)
        if existing is not None:
            if existing == spec:
                return
            raise TransactionError(
                f"Attribute {spec.ident} is already installed with a different definition"
            )
        self._ensure_ident_free(spec.ident)
        self._attributes[spec.ident] = spec
        self._describe(spec.ident, doc=spec.doc)

    def install_procedure(self, spec: ProcedureSpec) -> None:
        existing = self._procedures.get(spec.ident) or self._db.procedure(spec.ident)
        if existing is not None:
            if existing == spec:
                return
            raise TransactionError(
                f"Procedure {spec.ident} is already installed with a different definition"
            )
        self._ensure_ident_free(spec.ident)
        self._procedures[spec.ident] = spec
        self._describe(spec.ident, doc=spec.doc, function=spec.function)

    def add(self, statement: Assert) -> None:
        spec = self._attribute(statement.a)
        e = self._entity(statement.e)
        v = self._value(spec, statement.v)
        stored = self._stored_values(e, spec.ident)
        pending = [d.v for d in self._datoms if d.added and d.e == e and d.a == spec.ident]
        if v in stored or v in pending:
            return
        if spec.cardinality is Cardinality.ONE:
            if pending:
                raise TransactionError(
                    f"Conflicting values asserted for {spec.ident} on entity {e}: "
                    f"{pending[0]!r} and {v!r}"
                )
            for old in stored:
                self._datoms.append(Datom(e, spec.ident, old, self.tx_id, added=False))
        if spec.unique:
            self._ensure_unique(e, spec.ident, v)
        self._datoms.append(Datom(e, spec.ident, v, self.tx_id))

    def retract(self, statement: Retract) -> None:
        spec = self._attribute(statement.a)
        e = self._entity(statement.e)
        v = self._value(spec, statement.v)
        if v in self._stored_values(e, spec.ident):
            self._datoms.append(Datom(e, spec.ident, v, self.tx_id, added=False))

    def build(self) -> PreparedTransaction:
        if not self._datoms:
            return PreparedTransaction()
        return PreparedTransaction(
            tx_id=self.tx_id,
            datoms=tuple(self._datoms),
            attributes=tuple(self._attributes.values()),
            procedures=tuple(self._procedures.values()),
            tempids=dict(self._tempids),
            schema=dict(self._schema),
        )

    def _describe(self, ident: str, *, doc: str | None, function: str | None = None) -> None:
        entity = self._allocate()
        facts: list[tuple[str, object]] = [("db/ident", ident)]
        if doc is not None:
            facts.append(("db/doc", doc))
        if function is not None:
            facts.append(("db/fn", function))
        for attribute, value in facts:
            self._schema[attribute] = BUILTIN_ATTRIBUTES[attribute]
            self._datoms.append(Datom(entity, attribute, value, self.tx_id))

    def _ensure_ident_free(self, ident: str) -> None:
        taken = (
            ident in BUILTIN_ATTRIBUTES
            or ident in self._attributes
            or ident in self._procedures
            or self._db.attribute(ident) is not None
            or self._db.procedure(ident) is not None
        )
        if taken:
            raise TransactionError(f"Ident {ident} is already in use")

    def _attribute(self, ident: str) -> AttributeSpec:
        spec = (
            self._attributes.get(ident)
            or BUILTIN_ATTRIBUTES.get(ident)
            or self._db.attribute(ident)
        )
        if spec is None:
            raise TransactionError(f"Unknown attribute: {ident}")
        self._schema[ident] = spec
        return spec

    def _entity(self, ref: EntityRef) -> int:
        if isinstance(ref, TempId):
            if ref not in self._tempids:
                self._tempids[ref] = self._allocate()
            return self._tempids[ref]
        if isinstance(ref, bool) or not isinstance(ref, int) or ref <= 0:
            raise TransactionError(f"Invalid entity reference: {ref!r}")
        return ref

    def _value(self, spec: AttributeSpec, value: object) -> object:
        if spec.value_type is ValueType.REF:
            if isinstance(value, str):
                value = TempId(value)
            return self._entity(value)  # pyright: ignore[reportArgumentType]
        try:
            return _COERCIONS[spec.value_type](value)
        except TypeError as exc:
            raise TransactionError(
                f"Invalid value for {spec.ident} ({spec.value_type}): {value!r}, {exc}"
            ) from exc

    def _stored_values(self, e: int, a: str) -> list[object]:
        values = [datom.v for datom in self._db.datoms(e=e, a=a)]
        for datom in self._datoms:
            if not datom.added and datom.e == e and datom.a == a and datom.v in values:
                values.remove(datom.v)
        return values

    def _ensure_unique(self, e: int, a: str, v: object) -> None:
        owners = {datom.e for datom in self._db.datoms(a=a, v=v)}
        for datom in self._datoms:
            if datom.a != a or datom.v != v:
                continue
            if datom.added:
                owners.add(datom.e)
            else:
                owners.discard(datom.e)
        owners.discard(e)
        if owners:
            raise TransactionError(
                f"Unique conflict: {a} {v!r} already belongs to entity {min(owners)}"
            )
