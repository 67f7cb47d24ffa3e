"""Result and failure records returned to callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from conformity.domain.ports.store import Database

    from .statements import Datom, TempId


@dataclass(frozen=True, slots=True, kw_only=True)
class TxResult:
    """Outcome of one submitted transaction.

    ``tx_data`` holds every datom the transaction wrote; it is empty when the
    transaction expanded to nothing (for example a guard no-op), in which case
    ``tx_id`` is ``None`` and ``db_after`` is ``db_before``.
    """

    db_before: Database
    db_after: Database
    tx_data: tuple[Datom, ...] = ()
    tempids: Mapping[TempId, int] = field(default_factory=dict["TempId", int])
    tx_id: int | None = None

    @property
    def added(self) -> int:
        return sum(1 for datom in self.tx_data if datom.added)

    def resolve_tempid(self, tempid: TempId) -> int:
        try:
            return self.tempids[tempid]
        except KeyError as exc:
            raise KeyError(f"Temp id {tempid.label!r} was not used by this transaction") from exc


@dataclass(frozen=True, slots=True)
class NormApplication:
    """A norm whose transaction actually wrote to the store."""

    norm_name: str
    tx_result: TxResult


@dataclass(frozen=True, slots=True)
class FailedNorm:
    norm_name: str
    reason: str


@dataclass(frozen=True, slots=True)
class FailureContext:
    """Progress made before a resolution aborted, and the norm that stopped it."""

    succeeded: tuple[NormApplication, ...]
    failed: FailedNorm


@dataclass(frozen=True, slots=True)
class SpeculativeResult:
    db: Database
    result: list[NormApplication]

    @property
    def norm_names(self) -> list[str]:
        return [application.norm_name for application in self.result]
