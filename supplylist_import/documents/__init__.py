"""Document sources: ZIP archives and remote URLs."""

from .archive import ArchiveEntry, ArchiveError, find_entry, list_entries
from .downloader import HttpDocumentDownloader

__all__ = [
    "ArchiveEntry",
    "ArchiveError",
    "find_entry",
    "list_entries",
    "HttpDocumentDownloader",
]
