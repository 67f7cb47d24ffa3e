"""Speculative store: run conformity against a throwaway in-memory snapshot."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING

from conformity.domain.conformity import ensure_conforms
from conformity.domain.generators import default_generators
from conformity.domain.guard import default_procedures
from conformity.domain.model import SpeculativeResult

from .database import MemoryDatabase

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conformity.common import Registry
    from conformity.domain.generators import Generator
    from conformity.domain.model import (
        AttributeSpec,
        NormMap,
        ProcedureSpec,
        TxData,
        TxResult,
    )
    from conformity.domain.ports import Database
    from conformity.domain.transactor import Procedure

log = getLogger(__name__)


class SpeculativeStore:
    """Store adapter whose transactions only replace an in-memory snapshot.

    Intended for a single logical caller such as one dry run; the lock only
    keeps the snapshot swap itself consistent.
    """

    def __init__(
        self,
        db: MemoryDatabase | None = None,
        *,
        procedures: Registry[Procedure] = default_procedures,
    ) -> None:
        self._db = db or MemoryDatabase.empty()
        self._procedures = procedures
        self._lock = threading.Lock()

    def current_snapshot(self) -> MemoryDatabase:
        return self._db

    def transact(self, tx_data: TxData) -> TxResult:
        with self._lock:
            result = self._db.with_(tx_data, procedures=self._procedures)
            self._db = result.db_after  # pyright: ignore[reportAttributeAccessIssue]
        return result

    def sync(self, timeout: float | None = None) -> MemoryDatabase:
        _ = timeout
        return self._db

    def sync_schema(self, basis_t: int, timeout: float | None = None) -> MemoryDatabase:
        _ = basis_t, timeout
        return self._db

    def install_attribute(self, spec: AttributeSpec) -> TxResult:
        return self.transact([spec])

    def install_procedure(self, spec: ProcedureSpec) -> TxResult:
        return self.transact([spec])


def with_conforms(
    db: Database,
    norm_map: NormMap,
    norm_names: Iterable[str] | None = None,
    *,
    marker_attribute: str | None = None,
    generators: Registry[Generator] = default_generators,
    procedures: Registry[Procedure] = default_procedures,
    detect_cycles: bool = False,
) -> SpeculativeResult:
    """Speculatively conform ``db`` and return the resulting snapshot with the applications.

    ``db`` is never modified; a durable snapshot is first copied into memory.
    Failures raise the same errors as :func:`ensure_conforms`.
    """

    store = SpeculativeStore(MemoryDatabase.from_database(db), procedures=procedures)
    result = ensure_conforms(
        store,
        norm_map,
        norm_names,
        marker_attribute=marker_attribute,
        generators=generators,
        detect_cycles=detect_cycles,
    )
    log.debug("Speculative run applied %d norms", len(result))
    return SpeculativeResult(db=store.current_snapshot(), result=result)


if TYPE_CHECKING:
    from conformity.domain.ports import Store

    _store_check: Store = SpeculativeStore()
