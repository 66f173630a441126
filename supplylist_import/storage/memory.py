from __future__ import annotations

import copy
import itertools
import threading
from collections import Counter
from typing import Any

from ..models.documents import UploadedDocument
from ..models.records import CourseRecord, SchoolRecord
from .errors import DuplicateCodeError

"""In-memory content store.

Backs ``--dry-run`` and the test-suite. It can mimic an eventually consistent
backend: with ``read_lag=n`` a freshly created course is invisible to the
first n get_course calls. fail_next() queues errors for a given operation.
"""

__all__ = [
    "InMemoryContentStore",
]


class InMemoryContentStore:
    def __init__(self, *, read_lag: int = 0) -> None:
        self.read_lag = read_lag
        self.calls: Counter[str] = Counter()
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._schools: dict[str, SchoolRecord] = {}
        self._courses: dict[str, dict[str, Any]] = {}
        self._hidden_reads: dict[str, int] = {}
        self._files: dict[str, tuple[str, bytes]] = {}
        self._failures: dict[str, list[Exception]] = {}

    # -- test helpers -------------------------------------------------
    def fail_next(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error``."""
        self._failures.setdefault(operation, []).extend([error] * times)

    def add_school(self, name: str, code: int | None = None, commune: str | None = None) -> SchoolRecord:
        """Seed an existing school without counting a create call."""
        record = SchoolRecord(id=f"sch-{next(self._ids)}", name=name, code=code, commune=commune)
        self._schools[str(record.id)] = record
        return record

    def add_course(self, school_id: int | str, name: str, level: str | None, grade: int | None,
                   year: int | None = None, versions: list[dict[str, Any]] | None = None) -> CourseRecord:
        """Seed an existing course without counting a create call."""
        course_id = f"crs-{next(self._ids)}"
        self._courses[course_id] = {
            "school_id": school_id, "name": name, "level": level, "grade": grade,
            "year": year, "versions": list(versions or []),
        }
        return self._course_record(course_id)

    def versions(self, course_id: int | str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._courses[str(course_id)]["versions"])

    def uploaded_names(self) -> list[str]:
        return [name for name, _ in self._files.values()]

    # -- ContentStore -------------------------------------------------
    def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _course_record(self, course_id: str) -> CourseRecord:
        c = self._courses[course_id]
        return CourseRecord(
            id=course_id,
            school_id=c["school_id"],
            name=c["name"],
            level=c["level"],
            grade=c["grade"],
            year=c["year"],
            versions=copy.deepcopy(c["versions"]),
        )

    def list_schools(self) -> list[SchoolRecord]:
        with self._lock:
            self._enter("list_schools")
            return list(self._schools.values())

    def find_school(self, *, code: int | None = None, name: str | None = None) -> SchoolRecord | None:
        with self._lock:
            self._enter("find_school")
            for school in self._schools.values():
                if code is not None and school.code == code:
                    return school
                if name and school.name.strip().lower() == name.strip().lower():
                    return school
            return None

    def create_school(self, fields: dict[str, Any]) -> SchoolRecord:
        with self._lock:
            self._enter("create_school")
            code = fields.get("code")
            if code is not None and any(s.code == code for s in self._schools.values()):
                raise DuplicateCodeError(code)
            record = SchoolRecord(
                id=f"sch-{next(self._ids)}",
                name=fields.get("name") or "",
                code=code,
                commune=fields.get("commune"),
            )
            self._schools[str(record.id)] = record
            return record

    def list_courses(self, school_id: int | str) -> list[CourseRecord]:
        with self._lock:
            self._enter("list_courses")
            return [
                self._course_record(cid)
                for cid, c in self._courses.items()
                if str(c["school_id"]) == str(school_id) and self._hidden_reads.get(cid, 0) == 0
            ]

    def create_course(self, school_id: int | str, fields: dict[str, Any]) -> CourseRecord:
        with self._lock:
            self._enter("create_course")
            course_id = f"crs-{next(self._ids)}"
            self._courses[course_id] = {
                "school_id": school_id,
                "name": fields.get("name") or "",
                "level": fields.get("level"),
                "grade": fields.get("grade"),
                "year": fields.get("year"),
                "versions": [],
            }
            if self.read_lag:
                self._hidden_reads[course_id] = self.read_lag
            return self._course_record(course_id)

    def get_course(self, course_id: int | str) -> CourseRecord | None:
        with self._lock:
            self._enter("get_course")
            key = str(course_id)
            if key not in self._courses:
                return None
            hidden = self._hidden_reads.get(key, 0)
            if hidden:
                self._hidden_reads[key] = hidden - 1
                return None
            return self._course_record(key)

    def update_course_versions(self, course_id: int | str, versions: list[dict[str, Any]]) -> None:
        with self._lock:
            self._enter("update_course_versions")
            self._courses[str(course_id)]["versions"] = copy.deepcopy(versions)

    def upload_file(self, data: bytes, name: str) -> UploadedDocument:
        with self._lock:
            self._enter("upload_file")
            file_id = next(self._ids)
            self._files[str(file_id)] = (name, data)
            return UploadedDocument(id=file_id, url=f"memory://uploads/{file_id}/{name}", name=name)
