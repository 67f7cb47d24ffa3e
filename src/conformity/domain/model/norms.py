"""Norms: named, idempotently applicable bundles of transaction statements."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from .statements import Statement


@dataclass(frozen=True, slots=True, kw_only=True)
class Norm:
    """One change unit.

    ``tx`` is a literal transaction, ``generator`` names a registered callable that
    builds the transaction from a live store. A norm carrying neither is valid
    here and fails when resolved.
    """

    name: str
    tx: tuple[Statement, ...] | None = None
    generator: str | None = None
    requires: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.tx is not None and self.generator is not None:
            raise ValueError(f"Norm {self.name} declares both tx and generator")
        if self.tx is not None and not isinstance(self.tx, tuple):
            object.__setattr__(self, "tx", tuple(self.tx))
        if not isinstance(self.requires, tuple):
            object.__setattr__(self, "requires", tuple(self.requires))


@dataclass(frozen=True, slots=True)
class NormSettings:
    sync_schema_timeout: float | None = None  # seconds; None waits without bound


@dataclass(frozen=True, slots=True)
class NormMap:
    """Immutable lookup of norms by name, in definition order."""

    norms: Mapping[str, Norm] = field(default_factory=lambda: MappingProxyType({}))
    settings: NormSettings = field(default_factory=NormSettings)

    def __post_init__(self) -> None:
        if not isinstance(self.norms, MappingProxyType):
            object.__setattr__(self, "norms", MappingProxyType(dict(self.norms)))

    @classmethod
    def of(cls, norms: Iterable[Norm], *, settings: NormSettings | None = None) -> NormMap:
        by_name: dict[str, Norm] = {}
        for norm in norms:
            if norm.name in by_name:
                raise ValueError(f"Duplicate norm name: {norm.name}")
            by_name[norm.name] = norm
        return cls(norms=by_name, settings=settings or NormSettings())

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self.norms)

    def get(self, name: str) -> Norm | None:
        return self.norms.get(name)

    def with_settings(self, settings: NormSettings) -> NormMap:
        return replace(self, settings=settings)

    def __contains__(self, name: object) -> bool:
        return name in self.norms

    def __iter__(self) -> Iterator[Norm]:
        return iter(self.norms.values())

    def __len__(self) -> int:
        return len(self.norms)
