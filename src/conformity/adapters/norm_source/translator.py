"""Translate validated norm payloads into domain norms and statements."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from conformity.domain.model import (
    Assert,
    AttributeSpec,
    Call,
    Norm,
    NormMap,
    NormSettings,
    Retract,
    TempId,
)

from .schema import (
    ADD_OPERATION,
    RETRACT_OPERATION,
    VALUE_TYPE_KEY,
    AttributePayload,
    NormMapPayload,
    NormPayload,
    RawStatement,
)

if TYPE_CHECKING:
    from conformity.domain.model import EntityRef, Statement

log = getLogger(__name__)


def entity_ref(value: object) -> EntityRef:
    """Integer ids name existing entities; strings label entities the transaction creates."""

    if isinstance(value, str):
        return TempId(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Invalid entity reference: {value!r}")
    return value


def translate_statement(raw: RawStatement) -> Statement:
    if isinstance(raw, dict):
        if VALUE_TYPE_KEY in raw:
            return _attribute_spec(AttributePayload.model_validate(raw))
        return raw
    operation, *args = raw
    if operation == ADD_OPERATION:
        e, a, v = args
        return Assert(entity_ref(e), str(a), v)
    if operation == RETRACT_OPERATION:
        e, a, v = args
        return Retract(entity_ref(e), str(a), v)
    return Call(str(operation), tuple(args))


def _attribute_spec(payload: AttributePayload) -> AttributeSpec:
    return AttributeSpec(
        ident=payload.ident,
        value_type=payload.value_type,
        cardinality=payload.cardinality,
        indexed=payload.indexed,
        unique=payload.unique,
        doc=payload.doc,
    )


def translate_norm(name: str, payload: NormPayload) -> Norm:
    tx = None if payload.tx is None else tuple(translate_statement(raw) for raw in payload.tx)
    return Norm(name=name, tx=tx, generator=payload.tx_fn, requires=tuple(payload.requires))


def translate_norm_map(payload: NormMapPayload) -> NormMap:
    norm_map = NormMap.of(
        (translate_norm(name, norm) for name, norm in payload.norms.items()),
        settings=NormSettings(sync_schema_timeout=payload.sync_schema_timeout),
    )
    log.debug("Translated norm map with %d norms", len(norm_map))
    return norm_map

