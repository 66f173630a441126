"""Content store bindings (HTTP and in-memory) and their errors."""

from .base import ContentStore
from .errors import DuplicateCodeError, StorageError, StorageUnavailableError, TransientStorageError
from .http_store import HttpContentStore
from .memory import InMemoryContentStore

__all__ = [
    "ContentStore",
    "HttpContentStore",
    "InMemoryContentStore",
    "StorageError",
    "TransientStorageError",
    "StorageUnavailableError",
    "DuplicateCodeError",
]
