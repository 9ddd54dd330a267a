from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, Union

from .errors import TypeResolutionError, ValidationError
from .ids import new_id

__all__ = [
    "Genre",
    "MediaItem",
    "Book",
    "Movie",
    "register_variant",
    "resolve_variant",
    "variant_tag",
    "registered_variants",
]


class Genre(str, Enum):
    HORROR = "Horror"
    FANTASY = "Fantasy"
    THRILLER = "Thriller"
    ROMANCE = "Romance"
    FICTION = "Fiction"

    @classmethod
    def parse(cls, value: Union["Genre", str]) -> "Genre":
        """Return the member matching ``value`` by value or name, case-insensitively.

        Records written by older builds spell Fantasy as ``"Fantasic"``; that
        spelling is accepted as well. Anything else raises ValidationError.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValidationError(f"Genre must be a string, got {type(value).__name__}")
        key = value.strip().lower()
        for member in cls:
            if key in (member.value.lower(), member.name.lower()):
                return member
        if key in _LEGACY_GENRES:
            return _LEGACY_GENRES[key]
        raise ValidationError(f"Unknown genre: {value!r}")


_LEGACY_GENRES: Dict[str, Genre] = {"fantasic": Genre.FANTASY}


@dataclass
class MediaItem:
    """Common shape of every media item.

    Concrete variants subclass this and set ``variant``. ``id`` is generated
    when omitted; reassigning it after the owning collection was saved breaks
    the link to the stored record.
    """

    variant: ClassVar[str] = ""

    id: str = field(default_factory=new_id)
    name: str = ""
    description: str = ""
    picture_location: str = field(default="", metadata={"record_key": "pictureLocation"})
    genre: Optional[Genre] = None

    def __post_init__(self) -> None:
        if type(self) is MediaItem or not self.variant:
            raise TypeError("MediaItem is abstract; instantiate a registered variant")
        if not self.id:
            self.id = new_id()
        if not isinstance(self.id, str):
            raise ValidationError(f"{type(self).__name__}.id must be a string")
        for name in ("name", "description", "picture_location"):
            if not isinstance(getattr(self, name), str):
                raise ValidationError(f"{type(self).__name__}.{name} must be a string")
        if self.genre is not None:
            self.genre = Genre.parse(self.genre)


def _check_count(owner: MediaItem, attr: str) -> None:
    value = getattr(owner, attr)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{type(owner).__name__}.{attr} must be a non-negative integer")


_REGISTRY: Dict[str, Type[MediaItem]] = {}


def register_variant(cls: Type[MediaItem]) -> Type[MediaItem]:
    """Class decorator adding a MediaItem subclass to the variant registry."""
    if not isinstance(cls, type) or not issubclass(cls, MediaItem) or not cls.variant:
        raise TypeResolutionError(f"{cls!r} is not a taggable MediaItem variant")
    existing = _REGISTRY.get(cls.variant)
    if existing is not None and existing is not cls:
        raise TypeResolutionError(f"Variant tag {cls.variant!r} already bound to {existing.__name__}")
    _REGISTRY[cls.variant] = cls
    return cls


@register_variant
@dataclass
class Book(MediaItem):
    variant: ClassVar[str] = "book"

    author: str = ""
    pages: int = 0

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.author, str):
            raise ValidationError("Book.author must be a string")
        _check_count(self, "pages")


@register_variant
@dataclass
class Movie(MediaItem):
    variant: ClassVar[str] = "movie"

    director: str = ""
    duration: int = 0  # minutes

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.director, str):
            raise ValidationError("Movie.director must be a string")
        _check_count(self, "duration")


def resolve_variant(tag: Any) -> Type[MediaItem]:
    """Map a variant tag (or a registered variant class) to its item class."""
    if tag is None or tag == "":
        raise TypeResolutionError("Variant tag is missing")
    if isinstance(tag, type):
        if issubclass(tag, MediaItem) and _REGISTRY.get(tag.variant) is tag:
            return tag
        raise TypeResolutionError(f"{tag.__name__} is not a registered variant")
    if isinstance(tag, str):
        try:
            return _REGISTRY[tag.strip().lower()]
        except KeyError:
            raise TypeResolutionError(f"Unknown variant tag: {tag!r}") from None
    raise TypeResolutionError(f"Cannot resolve variant from {type(tag).__name__}")


def variant_tag(obj: Any) -> str:
    """Return the registered tag of an item, item class or tag string."""
    if isinstance(obj, MediaItem):
        obj = type(obj)
    return resolve_variant(obj).variant


def registered_variants() -> List[str]:
    return sorted(_REGISTRY)
