from __future__ import annotations

"""Errors raised by content store bindings."""

__all__ = [
    "StorageError",
    "TransientStorageError",
    "StorageUnavailableError",
    "DuplicateCodeError",
]


class StorageError(Exception):
    """Store rejected a request (4xx other than not-found)."""


class TransientStorageError(StorageError):
    """Timeouts, 5xx answers and dropped connections. Safe to retry."""


class StorageUnavailableError(TransientStorageError):
    """The store cannot be reached at all."""


class DuplicateCodeError(StorageError):
    """A school with the same code already exists."""

    def __init__(self, code: int | None, message: str = "") -> None:
        super().__init__(message or f"school code {code} already exists")
        self.code = code
