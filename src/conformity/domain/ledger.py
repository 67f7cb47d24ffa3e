"""Conformity ledger: the marker attribute and guard procedure a store needs."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from conformity.domain.guard import GUARD_PROCEDURE, GUARD_PROCEDURE_SPEC, marker_transactions
from conformity.domain.model import AttributeSpec, Cardinality, ValueType

if TYPE_CHECKING:
    from conformity.domain.ports import Database, Store

log = getLogger(__name__)

DEFAULT_MARKER_ATTRIBUTE: Final[str] = "conformity/conformed-norms"

# Probed in order. The second name is a misspelling shipped by early releases;
# stores that recorded conformance under it must keep using it.
MARKER_ATTRIBUTE_CANDIDATES: Final[tuple[str, ...]] = (
    DEFAULT_MARKER_ATTRIBUTE,
    "confirmity/conformed-norms",
)


def has_attribute(db: Database, ident: str) -> bool:
    return db.attribute(ident) is not None


def has_procedure(db: Database, ident: str) -> bool:
    return db.procedure(ident) is not None


def default_marker_attribute(db: Database) -> str:
    """The marker attribute already used by ``db``, or the canonical default."""

    for candidate in MARKER_ATTRIBUTE_CANDIDATES:
        if has_attribute(db, candidate):
            return candidate
    return DEFAULT_MARKER_ATTRIBUTE


def marker_attribute_spec(ident: str) -> AttributeSpec:
    return AttributeSpec(
        ident=ident,
        value_type=ValueType.KEYWORD,
        cardinality=Cardinality.ONE,
        indexed=True,
        doc="Name of this transaction's norm",
    )


def ensure_ledger(store: Store, marker_attribute: str) -> None:
    """Install the marker attribute and the guard procedure when missing.

    Safe to call on every run. Each install is its own transaction.
    """

    if not has_attribute(store.current_snapshot(), marker_attribute):
        log.info("Installing conformity marker attribute %s", marker_attribute)
        store.install_attribute(marker_attribute_spec(marker_attribute))
    if not has_procedure(store.current_snapshot(), GUARD_PROCEDURE):
        log.info("Installing conformity guard procedure %s", GUARD_PROCEDURE)
        store.install_procedure(GUARD_PROCEDURE_SPEC)


def conforms_to(db: Database, norm_name: str, *, marker_attribute: str | None = None) -> bool:
    """Whether ``db`` records ``norm_name`` as applied."""

    attribute = marker_attribute or default_marker_attribute(db)
    return has_attribute(db, attribute) and bool(
        marker_transactions(db, attribute, norm_name)
    )
