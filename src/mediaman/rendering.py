from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import fields
from typing import Any, Dict, List, Mapping, Union

from .collection import MediaCollection
from .errors import (
    CorruptRecordError,
    MediaManError,
    NotFoundError,
    StoreError,
    TypeResolutionError,
    ValidationError,
)
from .models import MediaItem, resolve_variant


class CollectionRenderer(ABC):
    """Presentation boundary for collections.

    Renderers only read the collections they are handed and never touch the
    store. ``read_new_item`` turns raw form input into an item, or returns an
    error string for the user when the input is unusable.
    """

    @abstractmethod
    def render_collection(self, collection: MediaCollection) -> str:
        raise NotImplementedError

    @abstractmethod
    def render_item(self, item: MediaItem) -> str:
        raise NotImplementedError

    @abstractmethod
    def read_new_item(self, variant: Any, raw: Mapping[str, str]) -> Union[MediaItem, str]:
        raise NotImplementedError

    def describe_error(self, exc: MediaManError) -> str:
        """Translate a library error into a sentence for the user."""
        if isinstance(exc, NotFoundError):
            return f"No collection with id {exc.identifier!r} exists."
        if isinstance(exc, ValidationError):
            return f"Invalid input: {exc}"
        if isinstance(exc, TypeResolutionError):
            return f"Unknown media type: {exc}"
        if isinstance(exc, CorruptRecordError):
            return f"Stored collection is damaged: {exc}"
        if isinstance(exc, StoreError):
            return f"Storage failure: {exc}"
        return str(exc)


class TextRenderer(CollectionRenderer):
    """Plain-text renderer used by the command line."""

    def render_collection(self, collection: MediaCollection) -> str:
        header = f"{collection.name or '(unnamed)'} [{collection.variant}] id={collection.id}"
        if not collection.items:
            return header + "\n  (empty)"
        return "\n".join([header] + ["  " + self.render_item(item) for item in collection])

    def render_item(self, item: MediaItem) -> str:
        extras = []
        for f in fields(item):
            if f.name in ("id", "name", "description", "picture_location", "genre"):
                continue
            extras.append(f"{f.name}={getattr(item, f.name)}")
        genre = item.genre.value if item.genre is not None else "-"
        parts = [f"{item.id}  {item.name!r}", f"genre={genre}"] + extras
        if item.description:
            parts.append(f"description={item.description!r}")
        if item.picture_location:
            parts.append(f"picture={item.picture_location}")
        return "  ".join(parts)

    def read_new_item(self, variant: Any, raw: Mapping[str, str]) -> Union[MediaItem, str]:
        cls = resolve_variant(variant)
        known: Dict[str, Any] = {}
        for f in fields(cls):
            known[f.name] = f
            known[f.metadata.get("record_key", f.name)] = f

        unknown: List[str] = sorted(k for k in raw if k not in known)
        if unknown:
            return f"Unknown field(s) for {cls.variant}: {', '.join(unknown)}"

        kwargs: Dict[str, Any] = {}
        for key, value in raw.items():
            f = known[key]
            value = value.strip()
            if isinstance(f.default, int) and not isinstance(f.default, bool):
                if not value.isdigit():
                    return f"{f.name} must be a whole number, got {value!r}"
                kwargs[f.name] = int(value)
            elif f.name in ("genre", "id"):
                kwargs[f.name] = value or None
            else:
                kwargs[f.name] = value

        if not kwargs.get("name"):
            return "name is required"
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            return str(exc)
