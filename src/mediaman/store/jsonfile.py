from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import quote, unquote

from ..codec import decode_record, encode_record
from .base import KeyValueStore, StoreBackend

logger = logging.getLogger(__name__)

SUFFIX = ".json"


class JsonFileStore(KeyValueStore):
    """Filesystem-backed store: ``<root>/<namespace>/<quoted key>.json``.

    Writes go to a temporary file that is fsynced and then moved over the
    target with ``os.replace``, so a reader never sees a half-written value.
    Blocking I/O runs in a worker thread.
    """

    def __init__(self, namespace: str, directory: Path) -> None:
        super().__init__(namespace)
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / (quote(key, safe="") + SUFFIX)

    async def get_item(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read, key)

    async def set_item(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def keys(self) -> List[str]:
        return await asyncio.to_thread(self._list)

    # Blocking helpers

    def _read(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return decode_record(text)

    def _write(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        # Each write gets its own temp file; concurrent writers race only at os.replace.
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.directory, prefix=path.name + ".", suffix=".tmp", delete=False
        ) as f:
            tmp = Path(f.name)
            logger.debug("Writing %s via %s", path, tmp)
            try:
                f.write(encode_record(value))
                f.flush()
                os.fsync(f.fileno())
            except Exception:
                f.close()
                tmp.unlink(missing_ok=True)
                raise
        try:
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def _delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass

    def _list(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        names = sorted(p.name for p in self.directory.iterdir() if p.is_file() and p.name.endswith(SUFFIX))
        return [unquote(name[: -len(SUFFIX)]) for name in names]


class JsonFileBackend(StoreBackend):
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def open(self, namespace: str) -> JsonFileStore:
        return JsonFileStore(namespace, self.root / quote(namespace, safe=""))
