from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from ..errors import ResolutionError
from ..models.components import Level
from ..models.group import SchoolRef
from ..models.records import CourseRecord, SchoolRecord
from ..storage.base import ContentStore
from ..storage.errors import DuplicateCodeError, StorageError, StorageUnavailableError
from .normalizer import normalize_name
from .school_index import SchoolIndex

"""School and course resolution with run-scoped caches.

Each import job owns one ImportSession; nothing is shared between jobs, so
concurrent jobs can never see each other's half-resolved entities. Within a
job a school or course is created at most once and reused afterwards.
"""

__all__ = [
    "CourseKey",
    "ImportSession",
    "Resolution",
    "SchoolResolver",
    "CourseResolver",
]

logger = logging.getLogger(__name__)

CourseKey = tuple[str, str, str, int, int | None]


@dataclass
class ImportSession:
    """Run-scoped state passed by reference into every resolver call."""
    school_index: SchoolIndex = field(default_factory=SchoolIndex)
    school_cache: dict[str, SchoolRecord] = field(default_factory=dict)
    course_cache: dict[CourseKey, CourseRecord] = field(default_factory=dict)
    _course_locks: dict[str, threading.Lock] = field(default_factory=dict, repr=False)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def course_lock(self, course_id: int | str) -> threading.Lock:
        """Lock serializing the read-modify-write of one course's versions."""
        with self._locks_guard:
            return self._course_locks.setdefault(str(course_id), threading.Lock())


@dataclass(frozen=True)
class Resolution:
    record: SchoolRecord | CourseRecord
    created: bool = False

    @property
    def id(self) -> int | str:
        return self.record.id


def _school_keys(code: int | None, name: str | None) -> list[str]:
    keys = []
    if code is not None:
        keys.append(f"code:{code}")
    normalized = normalize_name(name)
    if normalized:
        keys.append(f"name:{normalized}")
    return keys


class SchoolResolver:
    """Resolution order: code -> normalized name -> fresh lookup by code -> create."""

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    def resolve_or_create(self, session: ImportSession, ref: SchoolRef) -> Resolution:
        keys = _school_keys(ref.code, ref.name)
        for key in keys:
            cached = session.school_cache.get(key)
            if cached is not None:
                return Resolution(cached)

        record = session.school_index.by_code(ref.code) or session.school_index.by_name(ref.name)
        created = False
        try:
            if record is None and ref.code is not None:
                # the index is a snapshot; another process may have added the code since
                record = self._store.find_school(code=ref.code)
            if record is None:
                if ref.code is None:
                    raise ResolutionError(
                        f'cannot create school "{ref.name}" without a code (RBD); '
                        "add its RBD or the exact name of an existing school"
                    )
                record, created = self._create(ref)
        except StorageUnavailableError:
            raise
        except StorageError as e:
            raise ResolutionError(f'school "{ref.name}": {e}') from e

        session.school_index.add(record)
        for key in keys + _school_keys(record.code, record.name):
            session.school_cache[key] = record
        return Resolution(record, created=created)

    def _create(self, ref: SchoolRef) -> tuple[SchoolRecord, bool]:
        fields = {"name": ref.name, "code": ref.code}
        if ref.commune:
            fields["commune"] = ref.commune
        try:
            record = self._store.create_school(fields)
        except DuplicateCodeError:
            # lost a race with another process creating the same code
            record = self._store.find_school(code=ref.code)
            if record is None:
                raise ResolutionError(f"school code {ref.code} reported as duplicate but not found") from None
            logger.info("school code=%s created concurrently, reusing id=%s", ref.code, record.id)
            return record, False
        logger.info("school created name=%s code=%s id=%s", ref.name, ref.code, record.id)
        return record, True


class CourseResolver:
    """Course lookup: run cache -> school's existing courses -> create."""

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    @staticmethod
    def cache_key(school_id: int | str, name: str, level: Level, grade: int, year: int | None) -> CourseKey:
        return (str(school_id), normalize_name(name), level.value, grade, year)

    def resolve_or_create(
        self,
        session: ImportSession,
        school_id: int | str,
        name: str,
        level: Level,
        grade: int,
        year: int | None = None,
    ) -> Resolution:
        key = self.cache_key(school_id, name, level, grade, year)
        cached = session.course_cache.get(key)
        if cached is not None:
            return Resolution(cached)

        created = False
        try:
            record = self._find_existing(school_id, key)
            if record is None:
                record = self._store.create_course(
                    school_id,
                    {"name": name, "level": level.value, "grade": grade, "year": year, "active": True},
                )
                created = True
                logger.info("course created name=%s level=%s grade=%s id=%s", name, level.value, grade, record.id)
        except StorageUnavailableError:
            raise
        except StorageError as e:
            raise ResolutionError(f'course "{name}": {e}') from e

        session.course_cache[key] = record
        return Resolution(record, created=created)

    def _find_existing(self, school_id: int | str, key: CourseKey) -> CourseRecord | None:
        _, name, level, grade, year = key
        for course in self._store.list_courses(school_id):
            course_level = Level.parse(course.level)
            if (
                normalize_name(course.name) == name
                and course_level is not None
                and course_level.value == level
                and course.grade == grade
                and (course.year or 0) == (year or 0)
            ):
                return course
        return None
