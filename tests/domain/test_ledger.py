from __future__ import annotations

from conformity.adapters.memory import SpeculativeStore
from conformity.domain.guard import GUARD_PROCEDURE, GUARD_PROCEDURE_SPEC
from conformity.domain.ledger import (
    DEFAULT_MARKER_ATTRIBUTE,
    conforms_to,
    default_marker_attribute,
    ensure_ledger,
    marker_attribute_spec,
)
from conformity.domain.model import TX, Assert, Cardinality, ValueType

LEGACY_MARKER = "confirmity/conformed-norms"


def test_ensure_ledger_installs_marker_attribute_and_guard() -> None:
    store = SpeculativeStore()

    ensure_ledger(store, DEFAULT_MARKER_ATTRIBUTE)

    db = store.current_snapshot()
    spec = db.attribute(DEFAULT_MARKER_ATTRIBUTE)
    assert spec is not None
    assert spec.value_type is ValueType.KEYWORD
    assert spec.cardinality is Cardinality.ONE
    assert spec.indexed
    assert spec.doc == "Name of this transaction's norm"
    assert db.procedure(GUARD_PROCEDURE) == GUARD_PROCEDURE_SPEC


def test_ensure_ledger_is_idempotent() -> None:
    store = SpeculativeStore()
    ensure_ledger(store, DEFAULT_MARKER_ATTRIBUTE)
    installed = store.current_snapshot()

    ensure_ledger(store, DEFAULT_MARKER_ATTRIBUTE)

    assert store.current_snapshot() is installed


def test_default_marker_attribute_prefers_canonical_name() -> None:
    store = SpeculativeStore()

    assert default_marker_attribute(store.current_snapshot()) == DEFAULT_MARKER_ATTRIBUTE

    store.install_attribute(marker_attribute_spec(DEFAULT_MARKER_ATTRIBUTE))
    store.install_attribute(marker_attribute_spec(LEGACY_MARKER))
    assert default_marker_attribute(store.current_snapshot()) == DEFAULT_MARKER_ATTRIBUTE


def test_default_marker_attribute_detects_legacy_name() -> None:
    store = SpeculativeStore()
    store.install_attribute(marker_attribute_spec(LEGACY_MARKER))

    assert default_marker_attribute(store.current_snapshot()) == LEGACY_MARKER


def test_conforms_to_is_false_without_marker_attribute() -> None:
    store = SpeculativeStore()

    assert not conforms_to(store.current_snapshot(), "people")
    assert not conforms_to(store.current_snapshot(), "people", marker_attribute="app/markers")


def test_conforms_to_reads_markers_under_detected_attribute() -> None:
    store = SpeculativeStore()
    ensure_ledger(store, LEGACY_MARKER)
    store.transact([Assert(TX, LEGACY_MARKER, "people")])

    db = store.current_snapshot()
    assert conforms_to(db, "people")
    assert not conforms_to(db, "places")
    assert not conforms_to(db, "people", marker_attribute=DEFAULT_MARKER_ATTRIBUTE)
