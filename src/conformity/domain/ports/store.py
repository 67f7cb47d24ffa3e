"""Capability surfaces the conformity core needs from a transactional store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

if TYPE_CHECKING:
    from conformity.domain.model import (
        AttributeSpec,
        Datom,
        ProcedureSpec,
        TxData,
        TxResult,
    )


class _AnyValue:
    def __repr__(self) -> str:
        return "ANY_VALUE"


ANY_VALUE: Final = _AnyValue()
"""Sentinel for ``Database.datoms`` meaning "do not filter on the value"."""


@runtime_checkable
class Database(Protocol):
    """Read-only view of a store as of ``basis_t``."""

    @property
    def basis_t(self) -> int: ...

    def attribute(self, ident: str) -> AttributeSpec | None: ...

    def procedure(self, ident: str) -> ProcedureSpec | None: ...

    def attributes(self) -> tuple[AttributeSpec, ...]: ...

    def procedures(self) -> tuple[ProcedureSpec, ...]: ...

    def datoms(
        self,
        *,
        e: int | None = None,
        a: str | None = None,
        v: object = ANY_VALUE,
    ) -> tuple[Datom, ...]:
        """Current facts matching every given component, in commit order."""
        ...


@runtime_checkable
class Store(Protocol):
    """Transactional store the resolver drives."""

    def current_snapshot(self) -> Database: ...

    def transact(self, tx_data: TxData) -> TxResult: ...

    def sync(self, timeout: float | None = None) -> Database: ...

    def sync_schema(self, basis_t: int, timeout: float | None = None) -> Database:
        """Wait until schema changes up to ``basis_t`` are visible.

        Raises ``TimeoutError`` when ``timeout`` seconds pass first.
        """
        ...

    def install_attribute(self, spec: AttributeSpec) -> TxResult: ...

    def install_procedure(self, spec: ProcedureSpec) -> TxResult: ...
