from __future__ import annotations

import pytest

from supplylist_import.errors import ResolutionError
from supplylist_import.models.components import Level
from supplylist_import.models.group import SchoolRef
from supplylist_import.services.resolvers import CourseResolver, ImportSession, SchoolResolver
from supplylist_import.services.school_index import SchoolIndex
from supplylist_import.storage.errors import DuplicateCodeError, StorageError, StorageUnavailableError


def test_existing_school_by_code_is_reused(store) -> None:
    existing = store.add_school("Colegio A", code=111)
    session = ImportSession(school_index=SchoolIndex.from_store(store))
    resolution = SchoolResolver(store).resolve_or_create(session, SchoolRef(name="Otro nombre", code=111))
    assert resolution.id == existing.id
    assert resolution.created is False
    assert store.calls["create_school"] == 0


def test_existing_school_by_normalized_name(store) -> None:
    existing = store.add_school("Colegio San José", code=222)
    session = ImportSession(school_index=SchoolIndex.from_store(store))
    resolution = SchoolResolver(store).resolve_or_create(session, SchoolRef(name="colegio  san jose"))
    assert resolution.id == existing.id


def test_fresh_lookup_covers_schools_added_after_snapshot(store) -> None:
    """Codes missing from the index snapshot are looked up again before creating."""
    session = ImportSession(school_index=SchoolIndex.from_store(store))
    late = store.add_school("Colegio Tardío", code=333)
    resolution = SchoolResolver(store).resolve_or_create(session, SchoolRef(name="Colegio Tardío", code=333))
    assert resolution.id == late.id
    assert store.calls["create_school"] == 0


def test_school_created_once_per_session(store) -> None:
    session = ImportSession()
    resolver = SchoolResolver(store)
    first = resolver.resolve_or_create(session, SchoolRef(name="Nuevo", code=444))
    second = resolver.resolve_or_create(session, SchoolRef(name="Nuevo", code=444))
    assert first.created is True
    assert second.created is False
    assert first.id == second.id
    assert store.calls["create_school"] == 1


def test_school_without_code_cannot_be_created(store) -> None:
    with pytest.raises(ResolutionError, match="without a code"):
        SchoolResolver(store).resolve_or_create(ImportSession(), SchoolRef(name="Sin RBD"))
    assert store.calls["create_school"] == 0


def test_duplicate_code_race_recovers(store) -> None:
    """Another process created the code between our lookup and our create."""
    resolver = SchoolResolver(store)

    # simulate another process creating the school between lookup and create
    original_create = store.create_school

    def racing_create(fields):
        store.add_school("Creado por otro", code=fields["code"])
        return original_create(fields)

    store.create_school = racing_create
    resolution = resolver.resolve_or_create(ImportSession(), SchoolRef(name="Nuevo", code=555))
    assert resolution.created is False
    assert resolution.record.name == "Creado por otro"


def test_store_errors_become_resolution_errors(store) -> None:
    store.fail_next("find_school", StorageError("403 forbidden"))
    with pytest.raises(ResolutionError, match="403"):
        SchoolResolver(store).resolve_or_create(ImportSession(), SchoolRef(name="X", code=1))


def test_unavailable_store_propagates(store) -> None:
    store.fail_next("find_school", StorageUnavailableError("connection refused"))
    with pytest.raises(StorageUnavailableError):
        SchoolResolver(store).resolve_or_create(ImportSession(), SchoolRef(name="X", code=1))


def test_duplicate_without_match_is_resolution_error(store) -> None:
    store.fail_next("create_school", DuplicateCodeError(9))
    with pytest.raises(ResolutionError, match="duplicate"):
        SchoolResolver(store).resolve_or_create(ImportSession(), SchoolRef(name="X", code=9))


def test_course_created_at_most_once_per_key(store) -> None:
    school = store.add_school("A", code=1)
    session = ImportSession()
    resolver = CourseResolver(store)
    a = resolver.resolve_or_create(session, school.id, "1º Básico", Level.BASIC, 1, 2026)
    b = resolver.resolve_or_create(session, school.id, "1º básico", Level.BASIC, 1, 2026)
    assert a.created is True
    assert b.id == a.id
    assert store.calls["create_course"] == 1


def test_existing_course_is_reused(store) -> None:
    school = store.add_school("A", code=1)
    existing = store.add_course(school.id, "2 Medio", "Media", 2)
    resolution = CourseResolver(store).resolve_or_create(ImportSession(), school.id, "2 medio", Level.SECONDARY, 2)
    assert resolution.id == existing.id
    assert resolution.created is False


def test_course_year_mismatch_creates_new(store) -> None:
    school = store.add_school("A", code=1)
    store.add_course(school.id, "2 Medio", "Media", 2, year=2025)
    resolution = CourseResolver(store).resolve_or_create(ImportSession(), school.id, "2 Medio", Level.SECONDARY, 2, 2026)
    assert resolution.created is True


def test_sessions_do_not_share_caches(store) -> None:
    school = store.add_school("A", code=1)
    resolver = CourseResolver(store)
    one, two = ImportSession(), ImportSession()
    resolver.resolve_or_create(one, school.id, "3 basico", Level.BASIC, 3)
    resolver.resolve_or_create(two, school.id, "3 basico", Level.BASIC, 3)
    assert store.calls["create_course"] == 1  # second session finds it in the store
    assert one.course_cache.keys() == two.course_cache.keys()
    assert one.course_cache is not two.course_cache


def test_course_lock_is_per_course() -> None:
    session = ImportSession()
    assert session.course_lock("c1") is session.course_lock("c1")
    assert session.course_lock("c1") is not session.course_lock("c2")
