"""Application configuration helpers."""

from __future__ import annotations

from .conformity import ConformityConfig, get_conformity_config
from .env import optional_env_var, optional_float_env_var
from .errors import ConfigurationError
from .logging import configure_logging, resolve_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "ConformityConfig",
    "DatabaseConfig",
    "StorageConfig",
    "configure_logging",
    "get_conformity_config",
    "get_database_config",
    "get_storage_config",
    "optional_env_var",
    "optional_float_env_var",
    "resolve_log_level",
]
