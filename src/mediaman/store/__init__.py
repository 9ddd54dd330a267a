"""Namespaced asynchronous key-value stores.

Each namespace holds the records of one variant. Backends:
- MemoryBackend: process-local dictionaries, for tests and scratch use
- JsonFileBackend: one directory per namespace, one JSON file per key
- SqliteBackend: a single SQLite file shared by all namespaces
"""

from .base import DEFAULT_NAMESPACE_PREFIX, KeyValueStore, StoreBackend, namespace_for
from .jsonfile import JsonFileBackend, JsonFileStore
from .memory import MemoryBackend, MemoryStore
from .sqlite import SqliteBackend, SqliteStore

__all__ = [
    "DEFAULT_NAMESPACE_PREFIX",
    "KeyValueStore",
    "StoreBackend",
    "namespace_for",
    "MemoryBackend",
    "MemoryStore",
    "JsonFileBackend",
    "JsonFileStore",
    "SqliteBackend",
    "SqliteStore",
]
