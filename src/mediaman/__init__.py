"""Typed media collections persisted to namespaced key-value stores.

Records in the store carry no type information; each CollectionService is
bound to one variant tag and rebuilds items as that variant on load.
"""
import logging

__version__ = "0.1.0"

from .collection import MediaCollection
from .codec import from_record, to_record
from .errors import (
    CorruptRecordError,
    MediaManError,
    NotFoundError,
    StoreError,
    TypeResolutionError,
    ValidationError,
)
from .ids import new_id
from .models import Book, Genre, MediaItem, Movie, register_variant, resolve_variant, variant_tag
from .service import CollectionService

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "MediaCollection",
    "MediaItem",
    "Book",
    "Movie",
    "Genre",
    "register_variant",
    "resolve_variant",
    "variant_tag",
    "new_id",
    "to_record",
    "from_record",
    "CollectionService",
    "MediaManError",
    "ValidationError",
    "NotFoundError",
    "TypeResolutionError",
    "StoreError",
    "CorruptRecordError",
]
