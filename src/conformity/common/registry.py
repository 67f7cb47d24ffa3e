"""Named registries resolving stable string keys to values supplied by the application."""

from __future__ import annotations

from typing import TYPE_CHECKING, overload

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


class UnregisteredError(LookupError):
    """Raised when a registry lookup names a key nobody registered."""


class Registry[T]:
    """Mapping of stable keys to values with explicit, checked lookup.

    ``kind`` only flavours error messages (``"generator"``, ``"procedure"``).
    Re-registering a key with the same value is allowed; binding a key to a
    different value raises ``ValueError``.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._entries: dict[str, T] = {}

    @overload
    def register(self, key: str) -> Callable[[T], T]: ...

    @overload
    def register(self, key: str, value: T) -> T: ...

    def register(self, key: str, value: T | None = None) -> T | Callable[[T], T]:
        if value is None:

            def decorator(item: T) -> T:
                return self.register(key, item)

            return decorator

        existing = self._entries.get(key)
        if existing is not None and existing is not value:
            raise ValueError(f"{self.kind} {key!r} is already registered")
        self._entries[key] = value
        return value

    def unregister(self, key: str) -> None:
        self._entries.pop(key, None)

    def resolve(self, key: str) -> T:
        try:
            return self._entries[key]
        except KeyError as exc:
            raise UnregisteredError(f"No {self.kind} registered for {key!r}") from exc

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
