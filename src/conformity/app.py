"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from conformity.adapters.memory import MemoryDatabase, with_conforms
from conformity.adapters.sqlalchemy import configured_store, is_started, startup
from conformity.config import get_conformity_config
from conformity.domain.conformity import ensure_conforms
from conformity.domain.generators import default_generators
from conformity.domain.model import NormSettings

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conformity.common import Registry
    from conformity.domain.generators import Generator
    from conformity.domain.model import NormApplication, NormMap, SpeculativeResult
    from conformity.domain.ports import Store


log = getLogger(__name__)


def _durable_store() -> Store:
    if not is_started():
        startup()
    return configured_store()


def _with_configured_timeout(norm_map: NormMap, timeout: float | None) -> NormMap:
    if norm_map.settings.sync_schema_timeout is not None or timeout is None:
        return norm_map
    return norm_map.with_settings(NormSettings(sync_schema_timeout=timeout))


def conform(
    norm_map: NormMap,
    norm_names: Iterable[str] | None = None,
    *,
    store: Store | None = None,
    generators: Registry[Generator] = default_generators,
    detect_cycles: bool = False,
) -> list[NormApplication]:
    """Conform the configured durable store (or ``store``) to ``norm_names``."""

    config = get_conformity_config()
    effective_store = store or _durable_store()
    effective_map = _with_configured_timeout(norm_map, config.sync_schema_timeout)
    names = effective_map.names if norm_names is None else tuple(norm_names)
    log.info(
        "Starting conformity run: norms=%s, marker_attribute=%s, sync_schema_timeout=%s",
        ", ".join(names),
        config.marker_attribute or "<detect>",
        effective_map.settings.sync_schema_timeout,
    )

    applied = ensure_conforms(
        effective_store,
        effective_map,
        names,
        marker_attribute=config.marker_attribute,
        generators=generators,
        detect_cycles=detect_cycles,
    )

    log.info(
        f"Finished conformity run: applied={len(applied)}, "
        f"norms={[application.norm_name for application in applied]}"
    )
    return applied


def preview(
    norm_map: NormMap,
    norm_names: Iterable[str] | None = None,
    *,
    store: Store | None = None,
    generators: Registry[Generator] = default_generators,
    detect_cycles: bool = False,
) -> SpeculativeResult:
    """Report what :func:`conform` would apply, without writing to the store."""

    config = get_conformity_config()
    effective_store = store or _durable_store()
    snapshot = MemoryDatabase.from_database(effective_store.current_snapshot())
    log.info("Starting conformity preview at basis %s", snapshot.basis_t)

    result = with_conforms(
        snapshot,
        norm_map,
        norm_names,
        marker_attribute=config.marker_attribute,
        generators=generators,
        detect_cycles=detect_cycles,
    )

    log.info(f"Finished conformity preview: would apply {list(result.norm_names)}")
    return result
