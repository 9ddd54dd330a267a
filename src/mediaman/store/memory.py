from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from .base import KeyValueStore, StoreBackend


class MemoryStore(KeyValueStore):
    """Dictionary-backed store. Values are deep-copied in and out."""

    def __init__(self, namespace: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(namespace)
        self._data: Dict[str, Any] = {} if data is None else data

    async def get_item(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    async def set_item(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> List[str]:
        return list(self._data)


class MemoryBackend(StoreBackend):
    """Holds every namespace in process memory; nothing survives the process."""

    def __init__(self) -> None:
        self._partitions: Dict[str, Dict[str, Any]] = {}

    def open(self, namespace: str) -> MemoryStore:
        return MemoryStore(namespace, self._partitions.setdefault(namespace, {}))

    def namespaces(self) -> List[str]:
        return list(self._partitions)
