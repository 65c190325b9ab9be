"""Per-run store for values handed from one fixture to the next."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from alchemy_fixtures.exceptions import ReferenceNotFoundError
from alchemy_fixtures.utils.sync_tools import ReadWriteLock

if TYPE_CHECKING:
    from collections.abc import KeysView

__all__ = ("ReferenceStore",)

_MISSING: Any = object()


class ReferenceStore:
    """Concurrent mapping of reference ids to opaque values.

    A loader creates one store per run and passes it to every fixture of that
    run. Writes take the lock exclusively, reads share it, so fixtures loading
    in parallel observe each key linearizably.

    Example:
        >>> store = ReferenceStore()
        >>> store.set("user:alice", 1)
        >>> store.lookup("user:alice")
        (1, True)
        >>> store.lookup("user:bob")
        (None, False)
    """

    __slots__ = ("_lock", "_references")

    def __init__(self) -> None:
        self._references: dict[str, Any] = {}
        self._lock = ReadWriteLock()

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        with self._lock.write():
            self._references[key] = value

    def lookup(self, key: str) -> tuple[Any, bool]:
        """Return ``(value, True)`` for a stored key, ``(None, False)`` otherwise."""
        with self._lock.read():
            value = self._references.get(key, _MISSING)
        if value is _MISSING:
            return None, False
        return value, True

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock.read():
            return self._references.get(key, default)

    def require(self, key: str) -> Any:
        """Return the value stored under ``key``.

        Raises:
            ReferenceNotFoundError: If no fixture has set ``key`` in this run.
        """
        value, found = self.lookup(key)
        if not found:
            raise ReferenceNotFoundError(key)
        return value

    def keys(self) -> KeysView[str]:
        return self.as_dict().keys()

    def as_dict(self) -> dict[str, Any]:
        """Return a snapshot copy of the stored references."""
        with self._lock.read():
            return dict(self._references)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._references

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._references)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(keys={sorted(self.keys())!r})"
