"""Pydantic models describing raw norm maps."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Final, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from conformity.domain.model import Cardinality, ValueType  # noqa: TC001

SYNC_SCHEMA_TIMEOUT_SETTING: Final[str] = "conformity.setting/sync-schema-timeout"
SETTING_KEYS: Final[frozenset[str]] = frozenset({SYNC_SCHEMA_TIMEOUT_SETTING})

ADD_OPERATION: Final[str] = "db/add"
RETRACT_OPERATION: Final[str] = "db/retract"
VALUE_TYPE_KEY: Final[str] = "db/valueType"

UNIQUE_VALUES: Final[frozenset[str]] = frozenset({"db.unique/identity", "db.unique/value"})

RawStatement = Annotated[list[object], Field(min_length=1)] | dict[str, object]


def _strip_namespace(value: object) -> object:
    # "db.type/string" -> "string", "db.cardinality/many" -> "many"
    if isinstance(value, str) and "/" in value:
        return value.rsplit("/", 1)[1]
    return value


class NormSourceModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AttributePayload(NormSourceModel):
    """An attribute installation written as an entity map."""

    # Exported schemas carry installation keys such as "db/id" and "db.install/_attribute".
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    ident: str = Field(alias="db/ident")
    value_type: ValueType = Field(alias=VALUE_TYPE_KEY)
    cardinality: Cardinality = Field(default=Cardinality.ONE, alias="db/cardinality")
    indexed: bool = Field(default=False, alias="db/index")
    unique: bool = Field(default=False, alias="db/unique")
    doc: str | None = Field(default=None, alias="db/doc")

    _normalize_value_type = field_validator("value_type", mode="before")(_strip_namespace)
    _normalize_cardinality = field_validator("cardinality", mode="before")(_strip_namespace)

    @field_validator("unique", mode="before")
    @classmethod
    def _parse_unique(cls, value: object) -> object:
        # "db.unique/identity" and "db.unique/value" both mean unique here.
        if isinstance(value, str):
            if value not in UNIQUE_VALUES:
                allowed = ", ".join(sorted(UNIQUE_VALUES))
                raise ValueError(f"db/unique must be one of {allowed}, got {value!r}")
            return True
        return value


class NormPayload(NormSourceModel):
    tx: list[RawStatement] | None = None
    tx_fn: str | None = Field(default=None, alias="tx-fn")
    requires: list[str] = Field(default_factory=list)

    @field_validator("tx")
    @classmethod
    def _check_statements(cls, value: list[RawStatement] | None) -> list[RawStatement] | None:
        for statement in value or ():
            if isinstance(statement, dict):
                continue
            operation = statement[0]
            if not isinstance(operation, str):
                raise ValueError(f"statement operation must be a string, got {operation!r}")
            if operation in {ADD_OPERATION, RETRACT_OPERATION} and len(statement) != 4:
                raise ValueError(f"{operation} takes entity, attribute and value: {statement!r}")
        return value

    @model_validator(mode="after")
    def _check_single_payload(self) -> NormPayload:
        if self.tx is not None and self.tx_fn is not None:
            raise ValueError("a norm declares either tx or tx-fn, not both")
        return self


class NormMapPayload(NormSourceModel):
    sync_schema_timeout: float | None = Field(
        default=None, ge=0, alias=SYNC_SCHEMA_TIMEOUT_SETTING
    )
    norms: dict[str, NormPayload] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _split_settings(cls, value: object) -> object:
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[str, object], value)
            data: dict[str, object] = {
                key: item for key, item in mapping_value.items() if key in SETTING_KEYS
            }
            data["norms"] = {
                key: item for key, item in mapping_value.items() if key not in SETTING_KEYS
            }
            return data
        return value
