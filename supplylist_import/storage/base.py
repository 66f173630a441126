from __future__ import annotations

from typing import Any, Protocol

from ..models.documents import UploadedDocument
from ..models.records import CourseRecord, SchoolRecord

"""Content store interface consumed by the import pipeline.

Field dictionaries use the pipeline's own keys:
- school: name, code, commune
- course: name, level, grade, year, active

Bindings translate them to whatever the backend expects. Lookups return None
for "not found"; everything else that goes wrong raises one of
supplylist_import.storage.errors.
"""

__all__ = [
    "ContentStore",
]


class ContentStore(Protocol):
    def list_schools(self) -> list[SchoolRecord]:
        """Every existing school (used to build the run's school index)."""
        ...

    def find_school(self, *, code: int | None = None, name: str | None = None) -> SchoolRecord | None:
        ...

    def create_school(self, fields: dict[str, Any]) -> SchoolRecord:
        ...

    def list_courses(self, school_id: int | str) -> list[CourseRecord]:
        ...

    def create_course(self, school_id: int | str, fields: dict[str, Any]) -> CourseRecord:
        ...

    def get_course(self, course_id: int | str) -> CourseRecord | None:
        ...

    def update_course_versions(self, course_id: int | str, versions: list[dict[str, Any]]) -> None:
        ...

    def upload_file(self, data: bytes, name: str) -> UploadedDocument:
        ...
