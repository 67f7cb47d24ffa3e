"""Generators: application functions that build a norm's transaction from a live store."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Final

from conformity.common import Registry

if TYPE_CHECKING:
    from conformity.domain.model import TxData
    from conformity.domain.ports import Store

type Generator = Callable[[Store], TxData]

default_generators: Final[Registry[Generator]] = Registry("generator")
"""Registry consulted when a run is not given its own.

Register with ``@default_generators.register("migrations/backfill-emails")``.
"""
