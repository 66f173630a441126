from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath

"""Archive reader: PDF entries of a ZIP bundle.

find_entry() implements the manifest lookup: case-insensitive and
extension-agnostic, exact match first, then containment in either direction.
"""

__all__ = [
    "ArchiveEntry",
    "ArchiveError",
    "list_entries",
    "find_entry",
]


class ArchiveError(Exception):
    """Raised when the archive cannot be opened."""


@dataclass(frozen=True)
class ArchiveEntry:
    name: str  # base file name, folders dropped
    data: bytes
    path: str = ""  # full path inside the archive


def list_entries(zip_bytes: bytes, *, pdf_only: bool = True) -> list[ArchiveEntry]:
    try:
        archive = zipfile.ZipFile(io.BytesIO(zip_bytes))
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"invalid zip archive: {e}") from e
    entries: list[ArchiveEntry] = []
    with archive:
        for info in archive.infolist():
            if info.is_dir() or info.filename.startswith("__MACOSX/"):
                continue
            name = PurePosixPath(info.filename).name
            if not name or name.startswith("._"):
                continue
            if pdf_only and not name.lower().endswith(".pdf"):
                continue
            entries.append(ArchiveEntry(name=name, data=archive.read(info), path=info.filename))
    return entries


def _stem(name: str) -> str:
    lowered = PurePosixPath(name.strip()).name.lower()
    return lowered[:-4] if lowered.endswith(".pdf") else lowered


def find_entry(entries: list[ArchiveEntry], wanted: str) -> ArchiveEntry | None:
    target = _stem(wanted)
    if not target:
        return None
    for entry in entries:
        if _stem(entry.name) == target:
            return entry
    for entry in entries:
        stem = _stem(entry.name)
        if stem and (target in stem or stem in target):
            return entry
    return None
