"""Failures surfaced by a conformity run.

Every error carries the :class:`FailureContext` of the run it aborted: the
norms committed before the failure and the norm that failed. Committed norms
are never rolled back, and retrying the same run is safe because they are
skipped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from conformity.domain.model import FailedNorm, FailureContext, NormApplication


class ConformityError(RuntimeError):
    def __init__(self, reason: str, context: FailureContext) -> None:
        super().__init__(reason)
        self.reason = reason
        self.context = context

    @property
    def succeeded(self) -> tuple[NormApplication, ...]:
        return self.context.succeeded

    @property
    def failed(self) -> FailedNorm:
        return self.context.failed


class MissingPayloadError(ConformityError):
    """A requested norm resolved to no transaction data."""


class GeneratorFailureError(ConformityError):
    """A norm's generator could not be resolved or raised."""


class SyncTimeoutError(ConformityError):
    """Waiting for the store to sync its schema exceeded the configured timeout."""

    def __init__(self, reason: str, context: FailureContext, *, timeout: float | None) -> None:
        super().__init__(reason, context)
        self.timeout = timeout


class StoreSubmissionError(ConformityError):
    """The store rejected or failed a guarded transaction."""


class CyclicRequirementError(ConformityError):
    """A norm requires itself, directly or transitively (only with cycle detection)."""
