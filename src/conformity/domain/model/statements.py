"""Transaction statements and facts understood by every store adapter."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Final


class ValueType(StrEnum):
    KEYWORD = "keyword"
    STRING = "string"
    LONG = "long"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    REF = "ref"
    INSTANT = "instant"
    UUID = "uuid"


class Cardinality(StrEnum):
    ONE = "one"
    MANY = "many"


@dataclass(frozen=True, slots=True)
class TempId:
    """Placeholder for an entity created by the transaction it appears in.

    Equal labels within one transaction denote the same new entity.
    """

    label: str


TX: Final[TempId] = TempId("db/current-tx")
"""Temp id of the transaction entity itself."""

DB_ID: Final[str] = "db/id"

type EntityRef = int | TempId


@dataclass(frozen=True, slots=True)
class Assert:
    e: EntityRef
    a: str
    v: object


@dataclass(frozen=True, slots=True)
class Retract:
    e: EntityRef
    a: str
    v: object


@dataclass(frozen=True, slots=True)
class Call:
    """Invocation of an installed store procedure inside the transaction."""

    procedure: str
    args: tuple[object, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class AttributeSpec:
    ident: str
    value_type: ValueType
    cardinality: Cardinality = Cardinality.ONE
    indexed: bool = False
    unique: bool = False
    doc: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ProcedureSpec:
    """Binds a procedure ident in the store to a function key in a procedure registry."""

    ident: str
    function: str
    doc: str | None = None


type Statement = Assert | Retract | Call | AttributeSpec | ProcedureSpec | Mapping[str, object]
type TxData = Sequence[Statement]


@dataclass(frozen=True, slots=True)
class Datom:
    """One fact as recorded by a transaction."""

    e: int
    a: str
    v: object
    tx: int
    added: bool = True


BUILTIN_ATTRIBUTES: Final[Mapping[str, AttributeSpec]] = {
    spec.ident: spec
    for spec in (
        AttributeSpec(
            ident="db/ident",
            value_type=ValueType.KEYWORD,
            indexed=True,
            unique=True,
            doc="Symbolic name of a schema entity",
        ),
        AttributeSpec(ident="db/doc", value_type=ValueType.STRING, doc="Documentation string"),
        AttributeSpec(
            ident="db/fn",
            value_type=ValueType.STRING,
            doc="Registry key of the function backing a store procedure",
        ),
    )
}
