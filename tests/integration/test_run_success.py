from __future__ import annotations

from pathlib import Path

import pytest

from supplylist_import.models.config_models import ImportConfig
from supplylist_import.services.orchestrator import process_all
from supplylist_import.storage.memory import InMemoryContentStore

"""End-to-end import against the in-memory store.

Four rows of one school (RBD 12345) and course "1º Básico" split over two
subjects: one school, one course, two list versions, two successful groups.
"""

URL = "https://example.cl/listas/1basico.pdf"


@pytest.fixture()
def spreadsheet(write_xlsx, make_record) -> Path:
    return write_xlsx([
        make_record(Asignatura="Lenguaje", Libro_nombre="Cuaderno college", Libro_orden=2),
        make_record(Asignatura="Lenguaje", Libro_nombre="Lápiz grafito", Libro_orden=1),
        make_record(Asignatura="Matemática", Libro_nombre="Regla 30 cm", Libro_orden=1),
        make_record(Asignatura="Matemática", Libro_nombre="Compás", Libro_orden=2),
    ])


def _run(config: ImportConfig, store: InMemoryContentStore, spreadsheet: Path, **kw):
    return process_all(config, store, spreadsheet, sleep=lambda _: None, **kw)


def test_url_documents(fast_config, store, spreadsheet, downloader) -> None:
    report = _run(fast_config, store, spreadsheet, downloader=downloader)

    assert report.total_groups == 2
    assert report.success_count == 2
    assert report.line_items_written == 4
    assert report.versions_appended == 2
    assert store.calls["create_school"] == 1
    assert store.calls["create_course"] == 1
    assert downloader.urls == [URL, URL]

    course_ids = {r.payload["course_id"] for r in report.results}
    assert len(course_ids) == 1
    versions = store.versions(course_ids.pop())
    assert [v["id"] for v in versions] == [1, 2]
    assert [v["metadata"]["asignatura"] for v in versions] == ["Lenguaje", "Matemática"]
    assert [m["nombre"] for m in versions[0]["materiales"]] == ["Lápiz grafito", "Cuaderno college"]
    assert all(v["url_origen"] == URL for v in versions)


def test_archive_documents_matched_by_name(fast_config, store, spreadsheet, downloader, make_zip) -> None:
    archive = make_zip({
        "1-basico-lenguaje.pdf": b"%PDF lenguaje",
        "1-basico-matematica.pdf": b"%PDF matematica",
        "menu-casino.pdf": b"%PDF menu",
    })
    report = _run(fast_config, store, spreadsheet, archive=archive, downloader=downloader)

    assert report.success_count == 2
    assert report.unmatched_documents == ["menu-casino.pdf"]
    assert downloader.urls == []
    assert sorted(store.uploaded_names()) == ["1-basico-lenguaje.pdf", "1-basico-matematica.pdf"]
    by_subject = {r.group_key.subject: len(r.payload["documents"]) for r in report.results}
    assert by_subject["Lenguaje"] == 1
    assert by_subject["Matemática"] == 1


def test_manifest_assigns_archive_entries(fast_config, store, spreadsheet, downloader, make_zip, write_xlsx) -> None:
    archive = make_zip({"lista_a.pdf": b"%PDF a"})
    manifest = write_xlsx(
        [{"Nombre PDF": "lista_a.pdf", "Curso": "1º Básico", "Asignatura": "Lenguaje"}],
        name="manifest.xlsx",
    )
    report = _run(fast_config, store, spreadsheet, archive=archive, manifest=manifest, downloader=downloader)

    assert report.success_count == 2
    assert report.unmatched_documents == []
    # Matemática has no manifest entry and falls back to its list URL
    assert downloader.urls == [URL]
    assert "lista_a.pdf" in store.uploaded_names()


def test_second_run_reuses_school_and_course(fast_config, store, spreadsheet, downloader) -> None:
    _run(fast_config, store, spreadsheet, downloader=downloader)
    report = _run(fast_config, store, spreadsheet, downloader=downloader)

    assert report.success_count == 2
    assert store.calls["create_school"] == 1
    assert store.calls["create_course"] == 1
    assert not any(r.payload["school_created"] or r.payload["course_created"] for r in report.results)
    versions = store.versions(report.results[0].payload["course_id"])
    assert [v["id"] for v in versions] == [1, 2, 3, 4]
