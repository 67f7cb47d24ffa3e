"""SQLAlchemy table metadata for the durable fact store."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Final

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from conformity.domain.model import Cardinality, ValueType

_INSTANT_TAG: Final[str] = "#inst"
_UUID_TAG: Final[str] = "#uuid"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def encode_value(value: object) -> str:
    """Canonical JSON text for a datom value; equal values encode identically."""

    payload: object
    if isinstance(value, datetime):
        instant = value if value.tzinfo else value.replace(tzinfo=UTC)
        payload = {_INSTANT_TAG: instant.astimezone(UTC).isoformat()}
    elif isinstance(value, uuid.UUID):
        payload = {_UUID_TAG: str(value)}
    else:
        payload = value
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def _decode_tagged(mapping: dict[str, Any]) -> object:
    if _INSTANT_TAG in mapping and len(mapping) == 1:
        return datetime.fromisoformat(mapping[_INSTANT_TAG])
    if _UUID_TAG in mapping and len(mapping) == 1:
        return uuid.UUID(mapping[_UUID_TAG])
    return mapping


def decode_value(text: str) -> object:
    return json.loads(text, object_hook=_decode_tagged)


class DatomValueType(TypeDecorator[object]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: object, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return encode_value(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> object:
        _ = dialect
        if value is None:
            return None
        return decode_value(value)


def _enum_column(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=16,
        values_callable=lambda members: [member.value for member in members],
    )


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

entity_table = Table(
    "entity",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("kind", String(16), nullable=False, default="entity"),
    sqlite_autoincrement=True,
)

transaction_table = Table(
    "transaction",
    metadata,
    Column("id", Integer, ForeignKey("entity.id"), primary_key=True, autoincrement=False),
    Column("instant", UTCDateTime(), nullable=False),
)

attribute_table = Table(
    "attribute",
    metadata,
    Column("ident", String, primary_key=True),
    Column("value_type", _enum_column(ValueType), nullable=False),
    Column("cardinality", _enum_column(Cardinality), nullable=False),
    Column("is_indexed", Boolean, nullable=False, default=False),
    Column("is_unique", Boolean, nullable=False, default=False),
    Column("doc", Text, nullable=True),
    Column("tx", Integer, ForeignKey("transaction.id"), nullable=False),
)

procedure_table = Table(
    "procedure",
    metadata,
    Column("ident", String, primary_key=True),
    Column("function", String, nullable=False),
    Column("doc", Text, nullable=True),
    Column("tx", Integer, ForeignKey("transaction.id"), nullable=False),
)

datom_table = Table(
    "datom",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("e", Integer, nullable=False),
    Column("a", String, nullable=False),
    Column("v", DatomValueType(), nullable=False),
    Column("tx", Integer, ForeignKey("transaction.id"), nullable=False),
    Column("retracted_tx", Integer, ForeignKey("transaction.id"), nullable=True),
    # Set only for current values of unique attributes; NULLs never collide.
    Column("unique_key", Text, nullable=True, unique=True),
    Index("ix_datom_a_v", "a", "v"),
    Index("ix_datom_e_a", "e", "a"),
    sqlite_autoincrement=True,
)


def unique_key(attribute: str, value: object) -> str:
    return f"{attribute}\x1f{encode_value(value)}"
