# gifttt/core/variables.py
"""
VariableManager — the single owner of variable state.

Reads go through a write-through cache and fall back to the store; writes
that change a value are persisted, cached, and then handed to the
``updates`` channel. The hand-off blocks until the dispatch loop takes the
event.

The cache is never invalidated by other writers of the store: if another
process edits the store, this process keeps serving the value it wrote
last.
"""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, List, Optional

from gifttt.data.values import decode_record, encode_record, validate_value, values_equal
from gifttt.storage.store import Store
from .events import ChangeEvent, UpdateChannel
from .exceptions import DecodeError, KeyNotFoundError, UndefinedSymbolError

LOGGER = logging.getLogger(__name__)

DEFAULT_PREFIX = "var~"


class VariableManager:
    """Mediates all variable reads and writes against a Store."""

    def __init__(
        self,
        store: Store,
        *,
        prefix: str = DEFAULT_PREFIX,
        updates: Optional[UpdateChannel] = None,
    ):
        self.store = store
        self.prefix = prefix
        self.updates = updates or UpdateChannel()
        self._cache: Dict[str, Any] = {}
        self._lock = Lock()

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    # ------------------------------------------------------------------
    def get(self, name: str) -> Any:
        """Return the current value of ``name``.

        Raises UndefinedSymbolError if it was never set and DecodeError if
        its stored record is unreadable.
        """
        with self._lock:
            return self._lookup(name)

    def _lookup(self, name: str) -> Any:
        if name in self._cache:
            return self._cache[name]
        try:
            data = self.store.get(self._key(name))
        except KeyNotFoundError:
            raise UndefinedSymbolError(name) from None
        return decode_record(data)

    async def set(self, name: str, value: Any) -> bool:
        """Write ``name`` and publish the change.

        Returns False without writing or publishing when the value is
        unchanged. Otherwise waits until the change event was received.
        """
        value = validate_value(value)

        with self._lock:
            try:
                old = self._lookup(name)
            except UndefinedSymbolError:
                pass
            except DecodeError as e:
                LOGGER.warning(f"Overwriting undecodable record for {name}: {e}")
            else:
                if values_equal(old, value):
                    return False

            self.store.set(self._key(name), encode_record(value))
            self._cache[name] = value

        LOGGER.debug(f"{name} = {value!r}")
        await self.updates.send(ChangeEvent(name, value))
        return True

    def store_value(self, name: str, value: Any) -> None:
        """Persist ``value`` without touching the cache or publishing."""
        self.store.set(self._key(name), encode_record(validate_value(value)))

    def cached_names(self) -> List[str]:
        with self._lock:
            return sorted(self._cache)

    def stored_names(self) -> List[str]:
        """Names of every variable in the store, prefix removed."""
        n = len(self.prefix)
        return sorted(k[n:] for k in self.store.keys() if k.startswith(self.prefix))
