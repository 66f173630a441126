from __future__ import annotations

from pathlib import Path

import pandas as pd

from supplylist_import.documents.archive import ArchiveEntry
from supplylist_import.models.components import Level
from supplylist_import.models.documents import DocumentCandidate, DocumentOrigin
from supplylist_import.models.row import Row
from supplylist_import.services.grouper import group_rows
from supplylist_import.services.matcher import (
    DocumentMatcher,
    ManifestEntry,
    match_documents,
    read_manifest,
)
from supplylist_import.services.normalizer import extract_components


def _groups(*specs: tuple[str, str]):
    rows = [
        Row(row_number=i, school_code=1, course_name=course, subject_name=subject, item_name="x")
        for i, (course, subject) in enumerate(specs, start=1)
    ]
    return group_rows(rows).groups


def _pdf(name: str) -> DocumentCandidate:
    return DocumentCandidate(name=name, data=b"%PDF", origin=DocumentOrigin.MANUAL)


def test_strong_match_scores_at_least_five_and_excludes_other_grades() -> None:
    groups = _groups(("5° Básico 2026", "Lenguaje"), ("4° Básico 2026", "Lenguaje"))
    matcher = DocumentMatcher(groups)
    score = matcher.score(extract_components("5-basico-2026"), groups[0])
    assert score.score >= 5
    assigned = match_documents([_pdf("5-basico-2026.pdf")], groups)
    assert list(assigned) == [groups[0].key]


def test_score_components() -> None:
    (group,) = _groups(("3° Medio", "Historia"))
    s = DocumentMatcher([group]).score(extract_components("3 medio"), group)
    assert (s.grade_match, s.level_match, s.year_match, s.text_match) == (True, True, False, True)
    assert s.score == 6


def test_level_only_agreement_is_accepted() -> None:
    (group,) = _groups(("Kinder Básico", "Arte"))
    outcome = DocumentMatcher([group]).match_documents([_pdf("lista basico.pdf")])
    assert outcome.assignments[group.key][0].name == "lista basico.pdf"


def test_unrelated_document_is_unmatched() -> None:
    groups = _groups(("1° Básico", "Lenguaje"))
    outcome = DocumentMatcher(groups).match_documents([_pdf("menu-casino.pdf")])
    assert outcome.assignments == {}
    assert outcome.unmatched == ["menu-casino.pdf"]


def test_low_score_tie_assigns_all_tied_groups() -> None:
    """Below the high-score threshold every tied group receives the document."""
    groups = _groups(("2° Básico A", "Lenguaje"), ("2° Básico B", "Lenguaje"), ("3° Medio", "Lenguaje"))
    # "segundo" only carries the grade: 3 points for both 2° groups
    outcome = DocumentMatcher(groups).match_documents([_pdf("segundo.pdf")])
    assert set(outcome.assignments) == {groups[0].key, groups[1].key}


def test_high_score_tie_assigns_single_group() -> None:
    """At 5 points or more a tie goes to one group: subject token in the file name, else the first."""
    groups = _groups(("1° Básico", "Lenguaje"), ("1° Básico", "Matemática"))
    outcome = DocumentMatcher(groups).match_documents([_pdf("1-basico-matematica.pdf")])
    assert list(outcome.assignments) == [groups[1].key]

    outcome = DocumentMatcher(groups).match_documents([_pdf("1-basico.pdf")])
    assert list(outcome.assignments) == [groups[0].key]


def test_matches_are_appended() -> None:
    (group,) = _groups(("6° Básico", "Ciencias"))
    outcome = DocumentMatcher([group]).match_documents([_pdf("6 basico.pdf"), _pdf("6to basico v2.pdf")])
    assert [d.name for d in outcome.assignments[group.key]] == ["6 basico.pdf", "6to basico v2.pdf"]


def test_manifest_assigns_by_course_label() -> None:
    groups = _groups(("1° Básico", "Lenguaje"), ("2° Básico", "Lenguaje"))
    archive = [ArchiveEntry(name="Lista_1B.PDF", data=b"a"), ArchiveEntry(name="otro.pdf", data=b"b")]
    entries = [ManifestEntry(document_name="lista_1b", course_label="1° Básico")]
    outcome = DocumentMatcher(groups).match_manifest(entries, archive)
    (doc,) = outcome.assignments[groups[0].key]
    assert doc.name == "Lista_1B.PDF"
    assert doc.origin is DocumentOrigin.ARCHIVE


def test_manifest_falls_back_to_grade_and_level() -> None:
    groups = _groups(("Primero Básico", "Lenguaje"), ("Segundo Básico", "Lenguaje"))
    archive = [ArchiveEntry(name="2basico.pdf", data=b"a")]
    entries = [ManifestEntry(document_name="2basico.pdf", course_label="2do basico")]
    outcome = DocumentMatcher(groups).match_manifest(entries, archive)
    assert list(outcome.assignments) == [groups[1].key]


def test_manifest_subject_filter_and_missing_document() -> None:
    groups = _groups(("1° Básico", "Lenguaje"), ("1° Básico", "Inglés"))
    archive = [ArchiveEntry(name="ingles.pdf", data=b"a")]
    entries = [
        ManifestEntry(document_name="ingles", course_label="1° Básico", subject="inglés"),
        ManifestEntry(document_name="no-existe.pdf", course_label="1° Básico"),
    ]
    outcome = DocumentMatcher(groups).match_manifest(entries, archive)
    assert list(outcome.assignments) == [groups[1].key]
    assert outcome.unmatched == ["no-existe.pdf"]


def test_read_manifest(temp_workdir: Path) -> None:
    path = temp_workdir / "manifest.xlsx"
    pd.DataFrame.from_records([
        {"Nombre PDF": "a.pdf", "Curso": "1 basico", "Nivel": "Básica", "Grado": 1, "Asignatura": None},
        {"Nombre PDF": None, "Curso": "2 basico", "Nivel": None, "Grado": None, "Asignatura": None},
        {"Nombre PDF": "c.pdf", "Curso": "3 medio", "Nivel": None, "Grado": None, "Asignatura": "Física"},
    ]).to_excel(path, index=False)
    entries = read_manifest(path)
    assert [e.document_name for e in entries] == ["a.pdf", "c.pdf"]
    assert entries[0].level is Level.BASIC
    assert entries[0].grade == 1
    assert entries[1].subject == "Física"
    assert entries[1].grade is None
