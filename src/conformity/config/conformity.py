"""Defaults applied to conformity runs started through the application layer."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, optional_float_env_var

MARKER_ATTRIBUTE_ENV_VAR = "CONFORMITY_MARKER_ATTRIBUTE"
SYNC_SCHEMA_TIMEOUT_ENV_VAR = "CONFORMITY_SYNC_SCHEMA_TIMEOUT"


@dataclass(frozen=True, slots=True)
class ConformityConfig:
    """Run defaults.

    ``marker_attribute`` of ``None`` means "detect from the store";
    ``sync_schema_timeout`` is in seconds and only used when a norm map does not
    carry its own setting.
    """

    marker_attribute: str | None = None
    sync_schema_timeout: float | None = None


def get_conformity_config() -> ConformityConfig:
    return ConformityConfig(
        marker_attribute=optional_env_var(MARKER_ATTRIBUTE_ENV_VAR),
        sync_schema_timeout=optional_float_env_var(SYNC_SCHEMA_TIMEOUT_ENV_VAR),
    )
