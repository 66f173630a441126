from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Document candidates and uploaded document references."""

__all__ = [
    "DocumentOrigin",
    "DocumentCandidate",
    "UploadedDocument",
]


class DocumentOrigin(Enum):
    MANUAL = "manual"
    ARCHIVE = "archive"
    URL = "url"


@dataclass(frozen=True)
class DocumentCandidate:
    """A file that may become a list version's document.

    URL candidates carry no bytes until downloaded; the others carry their
    content. A candidate has no identity until it is uploaded.
    """
    name: str
    data: bytes | None = None
    origin: DocumentOrigin = DocumentOrigin.MANUAL
    source_url: str | None = None

    @classmethod
    def from_url(cls, url: str, name: str) -> DocumentCandidate:
        return cls(name=name, origin=DocumentOrigin.URL, source_url=url)


@dataclass(frozen=True)
class UploadedDocument:
    id: int | str
    url: str | None
    name: str
    source_url: str | None = None
