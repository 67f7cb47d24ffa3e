"""Shared logging helpers for conformity."""

from __future__ import annotations

import logging

from .env import optional_env_var
from .errors import ConfigurationError

LOG_LEVEL_ENV_VAR = "CONFORMITY_LOG_LEVEL"


def resolve_log_level(value: int | str | None = None) -> int:
    """Turn a level name or number into a logging level, falling back to the environment."""

    if value is None:
        value = optional_env_var(LOG_LEVEL_ENV_VAR) or logging.INFO
    if isinstance(value, int):
        return value
    level = logging.getLevelNamesMapping().get(value.strip().upper())
    if level is None:
        raise ConfigurationError(f"Unknown log level: {value}")
    return level


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger once with a terse format suitable for CLI output.

    ``level`` defaults to ``CONFORMITY_LOG_LEVEL`` and then INFO. Pass ``force=True``
    to reconfigure during tests or specialised entry points.
    """

    logging.basicConfig(
        level=resolve_log_level(level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
