"""Norm source adapter: build norm maps from plain data (e.g. parsed JSON)."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .schema import SYNC_SCHEMA_TIMEOUT_SETTING, NormMapPayload, NormPayload
from .translator import translate_norm_map, translate_statement

if TYPE_CHECKING:
    from conformity.domain.model import NormMap


class NormSourceError(ValueError):
    """Raised when raw norm data cannot be turned into a norm map."""


def parse_norm_map(raw: Mapping[str, object]) -> NormMap:
    """Validate an already-parsed norm map and translate it into domain norms."""

    if not isinstance(raw, Mapping):
        raise NormSourceError(f"Norm map must be a mapping, got {type(raw).__name__}")
    try:
        return translate_norm_map(NormMapPayload.model_validate(raw))
    except ValidationError as exc:
        raise NormSourceError(f"Invalid norm map: {exc}") from exc
    except ValueError as exc:
        raise NormSourceError(str(exc)) from exc


def load_norm_map(path: Path | str) -> NormMap:
    """Read a JSON norm map from ``path``."""

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise NormSourceError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_norm_map(raw)


__all__ = [
    "SYNC_SCHEMA_TIMEOUT_SETTING",
    "NormMapPayload",
    "NormPayload",
    "NormSourceError",
    "load_norm_map",
    "parse_norm_map",
    "translate_statement",
]
