"""Resolve norm dependencies and apply each outstanding norm through the guard.

Norms are applied depth-first: a norm's ``requires`` are conformed, left to
right, before the norm itself. Conformance is re-read from the store before
every norm, never cached across the run.

The dependency walk performs no cycle detection unless ``detect_cycles`` is
set. A cyclic ``requires`` graph then recurses until Python raises
``RecursionError``; keeping the graph acyclic is the caller's responsibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, NoReturn

from conformity.domain.errors import (
    ConformityError,
    CyclicRequirementError,
    GeneratorFailureError,
    MissingPayloadError,
    StoreSubmissionError,
    SyncTimeoutError,
)
from conformity.domain.generators import default_generators
from conformity.domain.guard import guarded
from conformity.domain.ledger import conforms_to, default_marker_attribute, ensure_ledger
from conformity.domain.model import FailedNorm, FailureContext, NormApplication

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conformity.common import Registry
    from conformity.domain.generators import Generator
    from conformity.domain.model import Norm, NormMap, Statement
    from conformity.domain.ports import Store

log = getLogger(__name__)


@dataclass(slots=True)
class _Resolution:
    store: Store
    marker_attribute: str
    norm_map: NormMap
    generators: Registry[Generator]
    detect_cycles: bool = False
    applied: list[NormApplication] = field(default_factory=list[NormApplication])

    def conform(self, norm_names: Iterable[str], path: tuple[str, ...] = ()) -> None:
        for norm_name in norm_names:
            if self.detect_cycles and norm_name in path:
                chain = " -> ".join((*path, norm_name))
                self._fail(CyclicRequirementError, norm_name, f"Cyclic norm requirement: {chain}")

            norm = self.norm_map.get(norm_name)
            if norm is not None and norm.requires:
                self.conform(norm.requires, (*path, norm_name))

            snapshot = self.store.current_snapshot()
            if conforms_to(snapshot, norm_name, marker_attribute=self.marker_attribute):
                log.debug("Norm %s already conformed; skipping", norm_name)
                continue

            self._transact(norm_name, self._norm_transaction(norm_name, norm))

    def _norm_transaction(self, norm_name: str, norm: Norm | None) -> tuple[Statement, ...]:
        tx = norm.tx if norm is not None else None
        if norm is not None and norm.generator is not None:
            try:
                generator = self.generators.resolve(norm.generator)
                result = generator(self.store)
                tx = None if result is None else tuple(result)
            except Exception as exc:  # noqa: BLE001
                reason = f"Exception evaluating {norm.generator}: {exc}"
                self._fail(GeneratorFailureError, norm_name, reason, cause=exc)
        if not tx:
            self._fail(
                MissingPayloadError, norm_name, f"No transactions provided for norm {norm_name}"
            )
        return tx

    def _transact(self, norm_name: str, tx: tuple[Statement, ...]) -> None:
        timeout = self.norm_map.settings.sync_schema_timeout
        try:
            basis_t = self.store.current_snapshot().basis_t
            self.store.sync_schema(basis_t, timeout=timeout)
        except TimeoutError as exc:
            reason = "Timed out calling sync_schema between conformity transactions"
            context = self._context(norm_name, reason)
            raise SyncTimeoutError(reason, context, timeout=timeout) from exc
        except Exception as exc:  # noqa: BLE001
            self._fail(StoreSubmissionError, norm_name, str(exc) or repr(exc), cause=exc)

        try:
            result = self.store.transact([guarded(self.marker_attribute, norm_name, tx)])
        except Exception as exc:  # noqa: BLE001
            self._fail(StoreSubmissionError, norm_name, str(exc) or repr(exc), cause=exc)

        if not result.tx_data:
            log.debug("Norm %s was conformed concurrently; guard wrote nothing", norm_name)
            return
        log.info("Conformed norm %s in transaction %s", norm_name, result.tx_id)
        self.applied.append(NormApplication(norm_name=norm_name, tx_result=result))

    def _context(self, norm_name: str, reason: str) -> FailureContext:
        return FailureContext(
            succeeded=tuple(self.applied),
            failed=FailedNorm(norm_name=norm_name, reason=reason),
        )

    def _fail(
        self,
        error_type: type[ConformityError],
        norm_name: str,
        reason: str,
        *,
        cause: BaseException | None = None,
    ) -> NoReturn:
        log.debug("Norm %s failed: %s", norm_name, reason)
        raise error_type(reason, self._context(norm_name, reason)) from cause


def reduce_norms(
    acc: Iterable[NormApplication],
    store: Store,
    marker_attribute: str,
    norm_map: NormMap,
    norm_names: Iterable[str],
    *,
    generators: Registry[Generator] = default_generators,
    detect_cycles: bool = False,
) -> list[NormApplication]:
    """Conform ``norm_names`` and return ``acc`` extended with every norm that wrote.

    Raises a :class:`ConformityError` subclass on the first failure; its context
    lists ``acc`` plus the norms committed during this call.
    """

    resolution = _Resolution(
        store=store,
        marker_attribute=marker_attribute,
        norm_map=norm_map,
        generators=generators,
        detect_cycles=detect_cycles,
        applied=list(acc),
    )
    resolution.conform(norm_names)
    return resolution.applied


def ensure_conforms(
    store: Store,
    norm_map: NormMap,
    norm_names: Iterable[str] | None = None,
    *,
    marker_attribute: str | None = None,
    generators: Registry[Generator] = default_generators,
    detect_cycles: bool = False,
) -> list[NormApplication]:
    """Ensure the store conforms to ``norm_names`` (default: every norm in ``norm_map``).

    ``marker_attribute`` defaults to whichever known marker attribute the store
    already uses. Returns one :class:`NormApplication` per norm that wrote, in
    application order; norms already conformed contribute nothing.
    """

    if isinstance(norm_names, str):
        raise TypeError("norm_names must be a collection of names, not a single string")
    attribute = marker_attribute or default_marker_attribute(store.current_snapshot())
    ensure_ledger(store, attribute)
    names = norm_map.names if norm_names is None else tuple(norm_names)
    return reduce_norms(
        [],
        store,
        attribute,
        norm_map,
        names,
        generators=generators,
        detect_cycles=detect_cycles,
    )
