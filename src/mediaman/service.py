from __future__ import annotations

import logging
from typing import Any, Awaitable, List, Optional, TypeVar

from .codec import from_record, to_record
from .collection import MediaCollection
from .errors import MediaManError, NotFoundError, StoreError, ValidationError
from .models import MediaItem, resolve_variant
from .store import DEFAULT_NAMESPACE_PREFIX, KeyValueStore, MemoryBackend, StoreBackend, namespace_for

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def _require_id(identifier: Any, what: str = "identifier") -> str:
    if not isinstance(identifier, str) or not identifier.strip():
        raise ValidationError(f"A non-empty {what} is required")
    return identifier


class CollectionService:
    """CRUD over stored collections of a single variant.

    The service is bound to one variant tag for its whole life and reads and
    writes only that variant's store partition, so a "book" service and a
    "movie" service never see each other's records even under the same id.

    There is no locking and no retry: concurrent saves of one id are decided
    by the store (last write wins) and every store failure surfaces once as
    StoreError.
    """

    def __init__(
        self,
        variant: Any,
        backend: Optional[StoreBackend] = None,
        logger: Optional[logging.Logger] = None,
        namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX,
    ) -> None:
        self.variant = resolve_variant(variant).variant
        self.backend = backend if backend is not None else MemoryBackend()
        self.namespace = namespace_for(self.variant, namespace_prefix)
        self.store: KeyValueStore = self.backend.open(self.namespace)
        self.log = logger or _logger

    def __repr__(self) -> str:
        return f"CollectionService(variant={self.variant!r}, namespace={self.namespace!r})"

    async def _guard(self, action: str, key: Optional[str], pending: Awaitable[T]) -> T:
        try:
            return await pending
        except MediaManError:
            raise
        except Exception as exc:
            self.log.exception("Store %s failed for %s/%s", action, self.namespace, key)
            raise StoreError(f"Store {action} failed for {key!r}: {exc}") from exc

    # Core operations

    async def load(self, identifier: str) -> MediaCollection:
        _require_id(identifier)
        record = await self._guard("read", identifier, self.store.get_item(identifier))
        if record is None:
            raise NotFoundError(identifier)
        collection = from_record(record, self.variant, default_id=identifier)
        self.log.debug("Loaded %s collection %s (%d items)", self.variant, identifier, len(collection))
        return collection

    async def save(self, collection: Optional[MediaCollection]) -> None:
        # Rejected before any store access.
        if collection is None:
            raise ValidationError("A collection is required")
        if not isinstance(collection, MediaCollection):
            raise ValidationError(f"Expected a MediaCollection, got {type(collection).__name__}")
        if collection.variant != self.variant:
            raise ValidationError(
                f"Cannot save a {collection.variant!r} collection through a {self.variant!r} service"
            )
        item_cls = resolve_variant(self.variant)
        for item in collection.items:
            if not isinstance(item, item_cls):
                raise ValidationError(
                    f"Item {getattr(item, 'id', item)!r} is a {type(item).__name__}, not a {item_cls.__name__}"
                )
        record = to_record(collection)
        await self._guard("write", collection.id, self.store.set_item(collection.id, record))
        self.log.debug("Saved %s collection %s (%d items)", self.variant, collection.id, len(collection))

    async def list_identifiers(self) -> List[str]:
        return list(await self._guard("keys", None, self.store.keys()))

    async def remove(self, identifier: str) -> None:
        """Delete the record stored under ``identifier``; missing records are fine."""
        _require_id(identifier)
        await self._guard("delete", identifier, self.store.remove_item(identifier))
        self.log.debug("Removed %s collection %s", self.variant, identifier)

    # Conveniences built on the core operations

    async def exists(self, identifier: str) -> bool:
        _require_id(identifier)
        return await self._guard("read", identifier, self.store.get_item(identifier)) is not None

    async def create(self, name: str, identifier: Optional[str] = None) -> MediaCollection:
        """Create an empty collection, persist it and return it."""
        collection = MediaCollection.create(self.variant, name=name, id=identifier)
        await self.save(collection)
        return collection

    async def add_item(self, identifier: str, item: MediaItem) -> MediaCollection:
        if item is None:
            raise ValidationError("An item is required")
        if resolve_variant(type(item)).variant != self.variant:
            raise ValidationError(f"{type(item).__name__} does not belong in a {self.variant!r} collection")
        collection = (await self.load(identifier)).add(item)
        await self.save(collection)
        return collection

    async def remove_item(self, identifier: str, item_id: str) -> MediaCollection:
        _require_id(item_id, "item id")
        collection = (await self.load(identifier)).remove_by_id(item_id)
        await self.save(collection)
        return collection

    async def clear(self) -> int:
        """Remove every record in this variant's partition; return how many went."""
        keys = await self.list_identifiers()
        for key in keys:
            await self._guard("delete", key, self.store.remove_item(key))
        self.log.debug("Cleared %d %s collection(s)", len(keys), self.variant)
        return len(keys)
