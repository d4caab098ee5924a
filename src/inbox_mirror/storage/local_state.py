from __future__ import annotations
import copy
from typing import Any, Dict, Optional, Protocol, Set

from inbox_mirror.storage.keys import hash_key


class StorageError(Exception):
    """Raised when the record store cannot be read or written."""
    pass


# -----------------------------
# Record store interface
# -----------------------------
class MirrorStore(Protocol):
    """
    Key-value interface for mirror state and per-message records.

    Keys are arbitrary strings (message-ids, the state key); implementations
    file them under ``hash_key(key)`` so that ``known_digests()`` doubles as
    the index of every message-id ever recorded.
    """
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...
    def set(self, key: str, value: Dict[str, Any], force: bool = False) -> None: ...
    def known_digests(self) -> Set[str]: ...


class InMemoryMirrorStore:
    """In-memory record store for tests and dry runs; nothing survives a restart."""
    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(hash_key(key))
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Dict[str, Any], force: bool = False) -> None:
        digest = hash_key(key)
        if digest in self._data and not force:
            raise StorageError(f"Record for '{key}' already exists (use force to overwrite)")
        self._data[digest] = copy.deepcopy(value)

    def known_digests(self) -> Set[str]:
        return set(self._data)
