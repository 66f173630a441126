from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Records of the remote content store, as seen by the import pipeline."""

__all__ = [
    "SchoolRecord",
    "CourseRecord",
]


@dataclass(frozen=True)
class SchoolRecord:
    id: int | str
    name: str
    code: int | None = None
    commune: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class CourseRecord:
    id: int | str
    school_id: int | str | None
    name: str
    level: str | None = None
    grade: int | None = None
    year: int | None = None
    versions: list[dict[str, Any]] = field(default_factory=list, compare=False)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
