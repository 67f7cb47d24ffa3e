from __future__ import annotations

from typing import TYPE_CHECKING, Final

from conformity.common import Registry
from conformity.domain.model import AttributeSpec, ValueType

if TYPE_CHECKING:
    from conformity.domain.generators import Generator
    from conformity.domain.model import TxData
    from conformity.domain.ports import Store

TX_FOO: Final[str] = "migrations.txes/tx-foo"
TX_BAR: Final[str] = "migrations.txes/tx-bar"
TX_BROKEN: Final[str] = "migrations.txes/tx-broken"


def _string_attributes(*idents: str) -> list[AttributeSpec]:
    return [
        AttributeSpec(ident=ident, value_type=ValueType.STRING, doc=f"{ident} attribute")
        for ident in idents
    ]


def tx_foo(store: Store) -> TxData:
    _ = store
    return _string_attributes("tx-fn/foo-1", "tx-fn/foo-2")


def tx_bar(store: Store) -> TxData:
    _ = store
    return _string_attributes("tx-fn/bar-1", "tx-fn/bar-2")


def tx_broken(store: Store) -> TxData:
    _ = store
    raise RuntimeError("boom")


def build_generator_registry() -> Registry[Generator]:
    registry: Registry[Generator] = Registry("generator")
    registry.register(TX_FOO, tx_foo)
    registry.register(TX_BAR, tx_bar)
    registry.register(TX_BROKEN, tx_broken)
    return registry
