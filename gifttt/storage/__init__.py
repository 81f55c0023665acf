"""
Persistent key/value stores backing gifttt variables.
"""

from .store import JsonFileStore, MemoryStore, Store, open_store

__all__ = ["JsonFileStore", "MemoryStore", "Store", "open_store"]
