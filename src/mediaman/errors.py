from __future__ import annotations

from typing import Optional


class MediaManError(Exception):
    """Base exception for collection and persistence errors."""


class ValidationError(MediaManError, ValueError):
    """Raised when a required argument is empty or missing, or a field value is invalid."""


class NotFoundError(MediaManError):
    """Raised when no record is stored under the requested identifier."""

    def __init__(self, identifier: str, message: Optional[str] = None) -> None:
        self.identifier = identifier
        super().__init__(message or f"No collection stored under {identifier!r}")


class TypeResolutionError(MediaManError):
    """Raised when a variant tag cannot be resolved to a registered item class."""


class StoreError(MediaManError):
    """Raised when the underlying key-value store operation fails."""


class CorruptRecordError(StoreError):
    """Raised when a stored record is structurally invalid and cannot be decoded."""
