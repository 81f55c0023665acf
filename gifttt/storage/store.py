# gifttt/storage/store.py
"""
Key/value byte stores backing gifttt variables.

Stores know nothing about variables: keys and payloads are plain strings.
The VariableManager namespaces its keys (``var~<name>``) so other users of
the same store do not collide with it.
"""
from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Iterator

from gifttt.core.exceptions import KeyNotFoundError, StoreError
from .file_io import read_json_object, write_json_atomic

LOGGER = logging.getLogger(__name__)


class Store(ABC):
    """Durable key/value store interface."""

    @abstractmethod
    def get(self, key: str) -> str:
        """Return the payload for ``key`` or raise KeyNotFoundError."""

    @abstractmethod
    def set(self, key: str, data: str) -> None:
        """Persist ``data`` under ``key``; raise StoreError on failure."""

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over all stored keys."""


class MemoryStore(Store):
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: Dict[str, str] | None = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = Lock()
        self.reads = 0
        self.writes = 0

    def get(self, key: str) -> str:
        with self._lock:
            self.reads += 1
            try:
                return self._data[key]
            except KeyError:
                raise KeyNotFoundError(key) from None

    def set(self, key: str, data: str) -> None:
        with self._lock:
            self.writes += 1
            self._data[key] = data

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))


class JsonFileStore(Store):
    """
    Store persisted as a single JSON object on disk.

    The whole file is loaded once; every ``set`` rewrites it atomically.
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._lock = Lock()
        self._data: Dict[str, str] = read_json_object(self.path)
        LOGGER.debug("JsonFileStore opened %s (%d keys)", self.path, len(self._data))

    def get(self, key: str) -> str:
        with self._lock:
            try:
                return self._data[key]
            except KeyError:
                raise KeyNotFoundError(key) from None

    def set(self, key: str, data: str) -> None:
        with self._lock:
            previous = self._data.get(key)
            self._data[key] = data
            try:
                write_json_atomic(self.path, self._data)
            except StoreError:
                if previous is None:
                    del self._data[key]
                else:
                    self._data[key] = previous
                raise

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))


def open_store(path: str | None) -> Store:
    """JsonFileStore for ``path``, or a MemoryStore when no path is given."""
    if path:
        return JsonFileStore(path)
    LOGGER.warning("No store path configured; variables will not survive a restart")
    return MemoryStore()
