from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..models import resolve_variant

DEFAULT_NAMESPACE_PREFIX = "mediaman"


def namespace_for(variant: Any, prefix: str = DEFAULT_NAMESPACE_PREFIX) -> str:
    """Return the partition name reserved for ``variant``, e.g. ``mediaman-book``."""
    return f"{prefix}-{resolve_variant(variant).variant}"


class KeyValueStore(ABC):
    """Asynchronous key-value store scoped to one namespace.

    Values are plain structured data (dict, list, str, int, float, bool, None).
    Writes are last-write-wins; there are no transactions.
    """

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    @abstractmethod
    async def get_item(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key``, or None if there is none."""

    @abstractmethod
    async def set_item(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is a no-op."""

    @abstractmethod
    async def keys(self) -> List[str]:
        """Return every key in this namespace, in the backend's enumeration order."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self.namespace!r})"


class StoreBackend(ABC):
    """Factory for namespaced stores sharing one physical location."""

    @abstractmethod
    def open(self, namespace: str) -> KeyValueStore:
        """Return the store for ``namespace``, creating it if needed."""
