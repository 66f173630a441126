from __future__ import annotations

from collections.abc import Iterable

from ..models.records import SchoolRecord
from ..storage.base import ContentStore
from .normalizer import normalize_name

"""Snapshot of existing schools, looked up by code then by normalized name."""

__all__ = [
    "SchoolIndex",
]


class SchoolIndex:
    def __init__(self, schools: Iterable[SchoolRecord] = ()) -> None:
        self._by_code: dict[int, SchoolRecord] = {}
        self._by_name: dict[str, SchoolRecord] = {}
        for school in schools:
            self.add(school)

    @classmethod
    def from_store(cls, store: ContentStore) -> SchoolIndex:
        return cls(store.list_schools())

    def add(self, school: SchoolRecord) -> None:
        if school.code is not None:
            self._by_code[school.code] = school
        name = normalize_name(school.name)
        if name:
            self._by_name[name] = school

    def by_code(self, code: int | None) -> SchoolRecord | None:
        return self._by_code.get(code) if code is not None else None

    def by_name(self, name: str | None) -> SchoolRecord | None:
        key = normalize_name(name)
        return self._by_name.get(key) if key else None

    def lookup(self, *, code: int | None = None, name: str | None = None) -> SchoolRecord | None:
        return self.by_code(code) or self.by_name(name)

    def __len__(self) -> int:
        return len({s.id for s in [*self._by_code.values(), *self._by_name.values()]})
