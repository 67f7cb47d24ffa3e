"""Shared helpers without domain knowledge."""

from __future__ import annotations

from .registry import Registry, UnregisteredError

__all__ = [
    "Registry",
    "UnregisteredError",
]
