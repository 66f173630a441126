from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from .components import CourseComponents, Level

"""Group model: the unit of import.

A Group folds every spreadsheet row sharing the composite key
(school, course, subject, list) into one School -> Course -> Subject -> List
hierarchy with its line items. Groups only live for one import job.
"""

__all__ = [
    "GroupKey",
    "GroupStatus",
    "SchoolRef",
    "CourseRef",
    "SubjectRef",
    "ListRef",
    "LineItem",
    "Group",
]

# Declared orders sort missing values last.
_MISSING_ORDER = 999_999


class GroupKey(NamedTuple):
    school: str
    course: str
    subject: str
    list_name: str

    @property
    def label(self) -> str:
        return " | ".join(self)


class GroupStatus(Enum):
    """Lifecycle of a group inside one job.

    PENDING -> RESOLVED (school and course known) -> COMPLETED
    PENDING/RESOLVED -> FAILED, or SKIPPED when the job stops early.
    """
    PENDING = "pending"
    RESOLVED = "resolved"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SchoolRef:
    name: str
    code: int | None = None
    commune: str | None = None
    order: int | None = None
    exists: bool = False  # display only; binding resolution happens later
    existing: dict[str, Any] | None = None


@dataclass
class CourseRef:
    name: str
    components: CourseComponents
    level: Level
    grade: int
    year: int | None = None
    order: int | None = None
    needs_review: bool = False  # grade/level was guessed


@dataclass
class SubjectRef:
    name: str
    order: int | None = None


@dataclass
class ListRef:
    name: str
    year: int | None = None
    updated_at: str | None = None
    published_at: str | None = None
    url: str | None = None
    publication_url: str | None = None
    order: int | None = None


@dataclass(frozen=True)
class LineItem:
    name: str
    code: str | None = None
    isbn: str | None = None
    author: str | None = None
    publisher: str | None = None
    quantity: int = 1
    notes: str | None = None
    usage_month: str | None = None
    order: int | None = None
    position: int = 0  # input position, keeps sorting stable

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.order if self.order is not None else _MISSING_ORDER, self.position)


@dataclass
class Group:
    key: GroupKey
    school: SchoolRef
    course: CourseRef
    subject: SubjectRef
    list: ListRef
    line_items: list[LineItem] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)
    raw_rows: list[dict[str, Any]] = field(default_factory=list, repr=False)  # source records, same order as row_numbers
    status: GroupStatus = GroupStatus.PENDING

    def add_item(self, item: LineItem) -> None:
        self.line_items.append(item)
        self.line_items.sort(key=lambda i: i.sort_key)

    @property
    def processing_order(self) -> tuple[int, int, int, int]:
        """School, course, subject then list order; missing values count as 0."""
        return (
            self.school.order or 0,
            self.course.order or 0,
            self.subject.order or 0,
            self.list.order or 0,
        )
