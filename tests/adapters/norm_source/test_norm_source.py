from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from conformity.adapters.memory import SpeculativeStore
from conformity.adapters.norm_source import NormSourceError, load_norm_map, parse_norm_map
from conformity.domain.conformity import ensure_conforms
from conformity.domain.model import (
    TX,
    Assert,
    AttributeSpec,
    Call,
    Cardinality,
    Retract,
    TempId,
    ValueType,
)
from tests.helpers.migrations import TX_FOO

if TYPE_CHECKING:
    from pathlib import Path

RAW_NORM_MAP: dict[str, object] = {
    "conformity.setting/sync-schema-timeout": 2.5,
    "people/schema": {
        "tx": [
            {
                "db/ident": "person/name",
                "db/valueType": "db.type/string",
                "db/cardinality": "db.cardinality/one",
                "db/doc": "Full name",
            },
            {
                "db/ident": "person/email",
                "db/valueType": "string",
                "db/unique": "db.unique/identity",
                "db/index": True,
            },
            {
                "db/ident": "person/alias",
                "db/valueType": "db.type/string",
                "db/cardinality": "db.cardinality/many",
            },
        ]
    },
    "people/seed": {
        "requires": ["people/schema"],
        "tx": [
            {"db/id": "ada", "person/name": "Ada", "person/alias": ["A", "AL"]},
            ["db/add", "ada", "person/email", "ada@example.com"],
        ],
    },
    "generated": {"tx-fn": TX_FOO},
}


def test_parse_norm_map_reads_settings_and_norms() -> None:
    norm_map = parse_norm_map(RAW_NORM_MAP)

    assert norm_map.names == ("people/schema", "people/seed", "generated")
    assert norm_map.settings.sync_schema_timeout == 2.5
    seed = norm_map.get("people/seed")
    assert seed is not None
    assert seed.requires == ("people/schema",)
    generated = norm_map.get("generated")
    assert generated is not None
    assert generated.generator == TX_FOO
    assert generated.tx is None


def test_attribute_maps_become_attribute_specs() -> None:
    norm_map = parse_norm_map(RAW_NORM_MAP)

    schema = norm_map.get("people/schema")
    assert schema is not None
    assert schema.tx == (
        AttributeSpec(ident="person/name", value_type=ValueType.STRING, doc="Full name"),
        AttributeSpec(
            ident="person/email", value_type=ValueType.STRING, indexed=True, unique=True
        ),
        AttributeSpec(
            ident="person/alias", value_type=ValueType.STRING, cardinality=Cardinality.MANY
        ),
    )


def test_list_statements_are_translated() -> None:
    norm_map = parse_norm_map(
        {
            "statements": {
                "tx": [
                    ["db/add", "db/current-tx", "audit/reason", "bootstrap"],
                    ["db/retract", 42, "person/name", "Ada"],
                    ["app/rename", 42, "Ada Lovelace"],
                ]
            }
        }
    )

    norm = norm_map.get("statements")
    assert norm is not None
    assert norm.tx == (
        Assert(TX, "audit/reason", "bootstrap"),
        Retract(42, "person/name", "Ada"),
        Call("app/rename", (42, "Ada Lovelace")),
    )


def test_entity_maps_pass_through() -> None:
    norm_map = parse_norm_map(RAW_NORM_MAP)

    seed = norm_map.get("people/seed")
    assert seed is not None
    assert seed.tx is not None
    assert seed.tx[0] == {"db/id": "ada", "person/name": "Ada", "person/alias": ["A", "AL"]}
    assert seed.tx[1] == Assert(TempId("ada"), "person/email", "ada@example.com")


def test_parsed_norm_map_conforms_a_store(memory_store: SpeculativeStore) -> None:
    norm_map = parse_norm_map(RAW_NORM_MAP)

    applied = ensure_conforms(memory_store, norm_map, ["people/seed"])

    assert [application.norm_name for application in applied] == ["people/schema", "people/seed"]
    db = memory_store.current_snapshot()
    (email,) = db.datoms(a="person/email")
    assert sorted(d.v for d in db.datoms(e=email.e, a="person/alias")) == ["A", "AL"]


@pytest.mark.parametrize(
    "raw",
    [
        {"both": {"tx": [["db/add", 1, "a/b", 1]], "tx-fn": "app/gen"}},
        {"bad-arity": {"tx": [["db/add", 1, "a/b"]]}},
        {"empty-statement": {"tx": [[]]}},
        {"bad-operation": {"tx": [[1, 2, 3]]}},
        {"unknown-key": {"txes": []}},
        {"not-a-norm": 5},
        {"conformity.setting/sync-schema-timeout": -1},
        {"bad-type": {"tx": [{"db/ident": "a/b", "db/valueType": "db.type/blob"}]}},
        {"bad-entity": {"tx": [["db/add", 1.5, "a/b", 1]]}},
        {
            "bad-unique": {
                "tx": [{"db/ident": "a/b", "db/valueType": "string", "db/unique": "false"}]
            }
        },
    ],
)
def test_invalid_norm_maps_are_rejected(raw: dict[str, object]) -> None:
    with pytest.raises(NormSourceError):
        parse_norm_map(raw)


def test_unique_value_marks_attribute_unique() -> None:
    raw = {
        "codes": {
            "tx": [
                {
                    "db/ident": "code/value",
                    "db/valueType": "string",
                    "db/unique": "db.unique/value",
                }
            ]
        }
    }

    codes = parse_norm_map(raw).get("codes")

    assert codes is not None
    assert codes.tx is not None
    (spec,) = codes.tx
    assert isinstance(spec, AttributeSpec)
    assert spec.unique


def test_parse_norm_map_requires_a_mapping() -> None:
    with pytest.raises(NormSourceError, match="must be a mapping"):
        parse_norm_map([])  # pyright: ignore[reportArgumentType]


def test_norm_without_payload_is_accepted() -> None:
    norm_map = parse_norm_map({"placeholder": {}})

    placeholder = norm_map.get("placeholder")
    assert placeholder is not None
    assert placeholder.tx is None
    assert placeholder.generator is None


def test_load_norm_map_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "norms.json"
    path.write_text(json.dumps(RAW_NORM_MAP), encoding="utf-8")

    norm_map = load_norm_map(path)

    assert norm_map.names == ("people/schema", "people/seed", "generated")


def test_load_norm_map_reports_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "norms.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(NormSourceError, match="Invalid JSON"):
        load_norm_map(path)
