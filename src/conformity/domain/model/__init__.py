"""Public domain model surface."""

from __future__ import annotations

from conformity.domain.model.norms import Norm, NormMap, NormSettings
from conformity.domain.model.results import (
    FailedNorm,
    FailureContext,
    NormApplication,
    SpeculativeResult,
    TxResult,
)
from conformity.domain.model.statements import (
    BUILTIN_ATTRIBUTES,
    DB_ID,
    TX,
    Assert,
    AttributeSpec,
    Call,
    Cardinality,
    Datom,
    EntityRef,
    ProcedureSpec,
    Retract,
    Statement,
    TempId,
    TxData,
    ValueType,
)

__all__ = [
    "BUILTIN_ATTRIBUTES",
    "DB_ID",
    "TX",
    "Assert",
    "AttributeSpec",
    "Call",
    "Cardinality",
    "Datom",
    "EntityRef",
    "FailedNorm",
    "FailureContext",
    "Norm",
    "NormApplication",
    "NormMap",
    "NormSettings",
    "ProcedureSpec",
    "Retract",
    "SpeculativeResult",
    "Statement",
    "TempId",
    "TxData",
    "TxResult",
    "ValueType",
]
