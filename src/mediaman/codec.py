"""Conversion between typed collections and plain, store-safe records.

A record carries no type information. The variant is supplied by whoever
performs the load, so ``from_record`` always takes the tag explicitly.

Record layout::

    {
      "id": "9f2c...",
      "name": "Sci-Fi",
      "collection": [
        {"id": "...", "name": "Dune", "description": "", "pictureLocation": "",
         "genre": "Fiction", "author": "Herbert", "pages": 412}
      ]
    }
"""
from __future__ import annotations

import json
import logging
from dataclasses import Field, fields
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type

from jsonschema import Draft202012Validator

from .collection import MediaCollection
from .errors import CorruptRecordError, ValidationError
from .models import Genre, MediaItem, resolve_variant

logger = logging.getLogger(__name__)

__all__ = [
    "RECORD_SCHEMA",
    "to_record",
    "from_record",
    "item_to_record",
    "item_from_record",
    "validate_record",
    "encode_record",
    "decode_record",
]

_NULLABLE_STRING = {"type": ["string", "null"]}
_ITEM_ARRAY = {"type": ["array", "null"], "items": {"type": "object"}}

# No key is required: partially written or older records still load.
RECORD_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "id": _NULLABLE_STRING,
        "name": _NULLABLE_STRING,
        "collection": _ITEM_ARRAY,
        "_identifier": _NULLABLE_STRING,
        "_name": _NULLABLE_STRING,
        "_collection": _ITEM_ARRAY,
    },
}

_VALIDATOR = Draft202012Validator(RECORD_SCHEMA)
_MISSING = object()


def _record_fields(cls: Type[MediaItem]) -> Iterator[Tuple[Field, str]]:
    for f in fields(cls):
        yield f, f.metadata.get("record_key", f.name)


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    """Find ``key`` in a record, accepting the underscore-prefixed legacy spelling."""
    candidates = [key, "_" + key]
    if key == "id":
        candidates += ["_identifier", "identifier"]
    for candidate in candidates:
        if candidate in data:
            return data[candidate]
    return _MISSING


def item_to_record(item: MediaItem) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f, key in _record_fields(type(item)):
        value = getattr(item, f.name)
        out[key] = value.value if isinstance(value, Enum) else value
    return out


def to_record(collection: MediaCollection) -> Dict[str, Any]:
    """Flatten a collection into a fresh plain dict with no references into it."""
    return {
        "id": collection.id,
        "name": collection.name,
        "collection": [item_to_record(item) for item in collection.items],
    }


def _coerce(cls: Type[MediaItem], f: Field, value: Any) -> Any:
    where = f"{cls.__name__}.{f.name}"
    if f.name == "genre":
        return Genre.parse(value)
    if f.name == "id":
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return str(value)
        raise CorruptRecordError(f"{where}: expected a string identifier, got {value!r}")
    zero = f.default
    if isinstance(zero, str):
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise CorruptRecordError(f"{where}: expected text, got {value!r}")
    if isinstance(zero, int):
        if isinstance(value, bool):
            raise CorruptRecordError(f"{where}: expected a number, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        raise CorruptRecordError(f"{where}: expected a number, got {value!r}")
    return value


def item_from_record(data: Mapping[str, Any], variant: Any) -> MediaItem:
    """Rebuild one item as an instance of ``variant``.

    Absent or null fields fall back to the variant's zero-values; an absent id
    yields a freshly generated one.
    """
    cls = resolve_variant(variant)
    if not isinstance(data, Mapping):
        raise CorruptRecordError(f"Item record must be an object, got {type(data).__name__}")
    kwargs: Dict[str, Any] = {}
    for f, key in _record_fields(cls):
        value = _lookup(data, key)
        if value is _MISSING or value is None:
            continue
        try:
            kwargs[f.name] = _coerce(cls, f, value)
        except ValidationError as exc:
            raise CorruptRecordError(str(exc)) from exc
    try:
        return cls(**kwargs)
    except ValidationError as exc:
        raise CorruptRecordError(str(exc)) from exc


def validate_record(record: Any) -> None:
    """Check the structural shape of a stored record.

    Raises:
        CorruptRecordError if the record is not an object, or its fields have
        the wrong JSON types.
    """
    errors = sorted(_VALIDATOR.iter_errors(record), key=lambda e: str(list(e.path)))
    if errors:
        for err in errors:
            logger.error("Record schema error at %s: %s", list(err.path), err.message)
        raise CorruptRecordError(f"Invalid collection record: {errors[0].message}")


def from_record(record: Any, variant: Any, default_id: Optional[str] = None) -> MediaCollection:
    """Rebuild a collection of ``variant`` items from a stored record.

    ``default_id`` (usually the store key) is used only when the record has no
    identifier under any of its spellings; otherwise a fresh id is generated.

    The tag is resolved before the record is inspected, so a missing tag
    raises TypeResolutionError regardless of the data.
    """
    cls = resolve_variant(variant)
    validate_record(record)

    identifier = _lookup(record, "id")
    name = _lookup(record, "name")
    raw_items = _lookup(record, "collection")

    collection = MediaCollection.create(
        cls,
        name="" if name is _MISSING or name is None else name,
        id=default_id if identifier is _MISSING or not identifier else identifier,
    )
    items: List[Any] = [] if raw_items is _MISSING or raw_items is None else raw_items
    for data in items:
        collection = collection.add(item_from_record(data, cls))
    logger.debug("Decoded %s collection %s with %d item(s)", cls.variant, collection.id, len(collection))
    return collection


def encode_record(record: Mapping[str, Any]) -> str:
    """Encode a record as pretty-printed JSON text."""
    return json.dumps(record, ensure_ascii=False, sort_keys=True, indent=2)


def decode_record(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptRecordError(f"Invalid JSON: {e}") from e
