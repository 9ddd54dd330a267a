from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterator, List, Optional, Tuple

from .errors import ValidationError
from .ids import new_id
from .models import MediaItem, resolve_variant

__all__ = ["MediaCollection"]


@dataclass(frozen=True)
class MediaCollection:
    """An ordered, named sequence of items of one declared variant.

    Values are immutable: ``add`` and ``remove_by_id`` return new collections.
    The container does not enforce item-id uniqueness, and ``add`` does not
    check that the item matches ``variant``; the caller owns both.
    """

    variant: str
    name: str = ""
    id: str = field(default_factory=new_id)
    items: Tuple[MediaItem, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            object.__setattr__(self, "id", new_id())
        if not isinstance(self.name, str):
            raise ValidationError("MediaCollection.name must be a string")
        object.__setattr__(self, "variant", resolve_variant(self.variant).variant)
        object.__setattr__(self, "items", tuple(self.items))

    @classmethod
    def create(cls, variant: Any, name: str = "", id: Optional[str] = None) -> "MediaCollection":
        """Create an empty collection bound to ``variant`` (tag string or variant class)."""
        return cls(variant=resolve_variant(variant).variant, name=name or "", id=id or new_id())

    # Mutation (by replacement)

    def add(self, item: Optional[MediaItem]) -> "MediaCollection":
        if item is None:
            return self
        return replace(self, items=self.items + (item,))

    def remove_by_id(self, item_id: Optional[str]) -> "MediaCollection":
        """Drop every item whose id equals ``item_id``; all duplicates go."""
        if not item_id:
            return self
        return replace(self, items=tuple(i for i in self.items if i.id != item_id))

    def rename(self, name: str) -> "MediaCollection":
        return replace(self, name=name)

    def clear(self) -> "MediaCollection":
        return replace(self, items=())

    # Read helpers

    def get(self, item_id: str) -> Optional[MediaItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def ids(self) -> List[str]:
        return [i.id for i in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[MediaItem]:
        return iter(self.items)
