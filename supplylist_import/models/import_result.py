from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .group import Group, GroupKey

"""Per-group outcomes and the job-level report.

One ImportResult is produced per group: either the failure of the stage
where the group stopped, or the success of its List stage.
"""

__all__ = [
    "Stage",
    "ImportResult",
    "ImportReport",
]


class Stage(Enum):
    SCHOOL = "School"
    COURSE = "Course"
    LIST = "List"


@dataclass(frozen=True)
class ImportResult:
    group_key: GroupKey
    stage: Stage
    success: bool
    message: str
    error_type: str | None = None  # UPPER_SNAKE, failures only
    payload: dict[str, Any] | None = None

    @property
    def line_items(self) -> int:
        return int((self.payload or {}).get("line_items", 0)) if self.success else 0

    @property
    def versions(self) -> int:
        return int((self.payload or {}).get("versions_appended", 0)) if self.success else 0


@dataclass
class ImportReport:
    """Aggregated outcome of one import job."""
    results: list[ImportResult]
    total_groups: int
    start_time: datetime
    end_time: datetime
    skipped_rows: int = 0
    cancelled: bool = False
    aborted_reason: str | None = None  # set when the store became unreachable
    unmatched_documents: list[str] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list, repr=False)  # for the failed-rows report

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def line_items_written(self) -> int:
        return sum(r.line_items for r in self.results)

    @property
    def versions_appended(self) -> int:
        return sum(r.versions for r in self.results)

    @property
    def elapsed_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    def failures(self) -> list[ImportResult]:
        return [r for r in self.results if not r.success]
