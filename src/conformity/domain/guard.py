"""Exactly-once guard run by the store inside the transaction it protects.

The guard is installed as a store procedure. The resolver never checks and
writes in two steps: it submits ``Call(GUARD_PROCEDURE, (attr, name, tx))`` and
the transactor evaluates the guard against the snapshot the write commits on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from conformity.common import Registry
from conformity.domain.model import TX, Assert, Call, ProcedureSpec

if TYPE_CHECKING:
    from conformity.domain.model import Statement, TxData
    from conformity.domain.ports import Database
    from conformity.domain.transactor import Procedure

GUARD_PROCEDURE: Final[str] = "conformity/ensure-norm-tx"
GUARD_FUNCTION: Final[str] = "conformity.guard/ensure-norm-tx"

GUARD_PROCEDURE_SPEC: Final[ProcedureSpec] = ProcedureSpec(
    ident=GUARD_PROCEDURE,
    function=GUARD_FUNCTION,
    doc="Ensures each norm tx is executed exactly once",
)


def marker_transactions(db: Database, marker_attribute: str, norm_name: str) -> tuple[int, ...]:
    """Ids of transactions that recorded ``norm_name`` as conformed on themselves."""

    return tuple(
        datom.tx for datom in db.datoms(a=marker_attribute, v=norm_name) if datom.e == datom.tx
    )


def ensure_norm_tx(
    db: Database,
    marker_attribute: str,
    norm_name: str,
    tx: TxData,
) -> list[Statement]:
    if marker_transactions(db, marker_attribute, norm_name):
        return []
    return [Assert(TX, marker_attribute, norm_name), *tx]


def guarded(marker_attribute: str, norm_name: str, tx: TxData) -> Call:
    """The single statement that applies ``tx`` at most once under ``norm_name``."""

    return Call(GUARD_PROCEDURE, (marker_attribute, norm_name, tuple(tx)))


def build_procedure_registry() -> Registry[Procedure]:
    """A procedure registry preloaded with the guard, for adapters that need their own."""

    registry: Registry[Procedure] = Registry("procedure")
    registry.register(GUARD_FUNCTION, ensure_norm_tx)
    return registry


default_procedures: Final[Registry[Procedure]] = build_procedure_registry()
