from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from ..documents.archive import ArchiveEntry, find_entry
from ..excel.reader import read_sheet
from ..models.components import CourseComponents, Level
from ..models.documents import DocumentCandidate, DocumentOrigin
from ..models.group import Group, GroupKey
from .normalizer import extract_components, normalize_name

"""Document matcher: assign PDF documents to groups.

Two modes:

* manifest: a spreadsheet maps a course label to a document name; the
  document is looked up in the archive (case-insensitive, extension-agnostic,
  containment tolerated) and assigned to the group of that course.
* heuristic: the file name goes through the normalizer and is scored against
  every group's course label:

    +3 same grade, +2 same level, +1 same year,
    +1 normalized text contained in either direction

  A group is a match with score >= 3, or score >= 2 when that comes from a
  grade or level agreement. A single best group takes the document. Several
  groups tied at the top all receive it, unless the top score is >= 5, in
  which case one group does (the one whose subject or list name appears in
  the file name, else the first in group order).

Matches are appended to a group's candidates, never replacing earlier ones.
"""

__all__ = [
    "HIGH_SCORE",
    "MatchScore",
    "ManifestEntry",
    "MatchOutcome",
    "DocumentMatcher",
    "match_documents",
    "read_manifest",
]

logger = logging.getLogger(__name__)

HIGH_SCORE = 5
_ACCEPT_SCORE = 3
_WEAK_SCORE = 2

_MANIFEST_DOCUMENT = ("nombre_pdf", "archivo_pdf", "ruta_pdf", "pdf")
_MANIFEST_COURSE = ("nombre_curso", "curso", "curso_nombre")
_MANIFEST_SUBJECT = ("asignatura", "asignaura")


@dataclass(frozen=True)
class MatchScore:
    group_key: GroupKey
    score: int
    grade_match: bool = False
    level_match: bool = False
    year_match: bool = False
    text_match: bool = False

    @property
    def accepted(self) -> bool:
        if self.score >= _ACCEPT_SCORE:
            return True
        return self.score >= _WEAK_SCORE and (self.grade_match or self.level_match)


@dataclass(frozen=True)
class ManifestEntry:
    document_name: str
    course_label: str = ""
    level: Level | None = None
    grade: int | None = None
    subject: str | None = None


@dataclass
class MatchOutcome:
    assignments: dict[GroupKey, list[DocumentCandidate]] = field(default_factory=dict)
    unmatched: list[str] = field(default_factory=list)

    def assign(self, key: GroupKey, candidate: DocumentCandidate) -> None:
        self.assignments.setdefault(key, []).append(candidate)

    def merge(self, other: MatchOutcome) -> MatchOutcome:
        for key, documents in other.assignments.items():
            for document in documents:
                self.assign(key, document)
        self.unmatched.extend(other.unmatched)
        return self


def _file_stem(name: str) -> str:
    base = PurePosixPath(name.replace("\\", "/")).name
    return re.sub(r"\.pdf$", "", base, flags=re.IGNORECASE)


def _contains_either(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


class DocumentMatcher:
    def __init__(self, groups: Iterable[Group]) -> None:
        self._groups = list(groups)

    # -- heuristic ------------------------------------------------------
    def score(self, components: CourseComponents, group: Group) -> MatchScore:
        course = group.course
        grade_match = components.grade is not None and components.grade == course.grade
        level_match = components.level is not None and components.level == course.level
        group_year = course.year or course.components.year or group.list.year
        year_match = components.year is not None and components.year == group_year
        text_match = _contains_either(components.normalized_text, course.components.normalized_text)
        score = 3 * grade_match + 2 * level_match + year_match + text_match
        return MatchScore(group.key, score, grade_match, level_match, year_match, text_match)

    def rank(self, candidate: DocumentCandidate) -> list[MatchScore]:
        """Accepted scores for ``candidate``, best first (stable by group order)."""
        components = extract_components(_file_stem(candidate.name))
        scores = [self.score(components, group) for group in self._groups]
        accepted = [s for s in scores if s.accepted]
        return sorted(accepted, key=lambda s: -s.score)

    def _break_tie(self, candidate: DocumentCandidate, tied: list[MatchScore]) -> MatchScore:
        stem = re.sub(r"[^a-z0-9]", "", normalize_name(_file_stem(candidate.name)))
        by_key = {g.key: g for g in self._groups}
        named = []
        for s in tied:
            group = by_key[s.group_key]
            for label in (group.subject.name, group.list.name):
                token = re.sub(r"[^a-z0-9]", "", normalize_name(label))
                if token and token in stem:
                    named.append(s)
                    break
        return named[0] if len(named) == 1 else tied[0]

    def select(self, candidate: DocumentCandidate) -> list[MatchScore]:
        ranked = self.rank(candidate)
        if not ranked:
            return []
        top = ranked[0].score
        tied = [s for s in ranked if s.score == top]
        if len(tied) == 1:
            return tied
        if top >= HIGH_SCORE:
            return [self._break_tie(candidate, tied)]
        return tied

    def match_documents(self, candidates: Iterable[DocumentCandidate]) -> MatchOutcome:
        outcome = MatchOutcome()
        for candidate in candidates:
            winners = self.select(candidate)
            if not winners:
                outcome.unmatched.append(candidate.name)
                logger.warning("document %s matched no group", candidate.name)
                continue
            for s in winners:
                outcome.assign(s.group_key, candidate)
                logger.info("document %s -> %s (score=%d)", candidate.name, s.group_key.label, s.score)
        return outcome

    # -- manifest -------------------------------------------------------
    def _groups_for(self, entry: ManifestEntry) -> list[Group]:
        label = normalize_name(entry.course_label)
        found = [g for g in self._groups if label and normalize_name(g.course.name) == label]
        if not found:
            components = extract_components(entry.course_label)
            level = entry.level or components.level
            grade = entry.grade if entry.grade is not None else components.grade
            if level is not None and grade is not None:
                found = [g for g in self._groups if g.course.level == level and g.course.grade == grade]
        if entry.subject:
            subject = normalize_name(entry.subject)
            found = [g for g in found if normalize_name(g.subject.name) == subject]
        return found

    def match_manifest(self, entries: Iterable[ManifestEntry], archive: list[ArchiveEntry]) -> MatchOutcome:
        outcome = MatchOutcome()
        for entry in entries:
            document = find_entry(archive, entry.document_name)
            if document is None:
                outcome.unmatched.append(entry.document_name)
                logger.warning("manifest document not found in archive: %s", entry.document_name)
                continue
            targets = self._groups_for(entry)
            if not targets:
                outcome.unmatched.append(entry.document_name)
                logger.warning("manifest course '%s' matched no group (%s)", entry.course_label, entry.document_name)
                continue
            candidate = DocumentCandidate(name=document.name, data=document.data, origin=DocumentOrigin.ARCHIVE)
            outcome.assign(targets[0].key, candidate)
        return outcome


def match_documents(candidates: Iterable[DocumentCandidate], groups: Iterable[Group]) -> dict[GroupKey, list[DocumentCandidate]]:
    return DocumentMatcher(groups).match_documents(candidates).assignments


def _manifest_key(name: str) -> str:
    return re.sub(r"\s+", "_", str(name).strip().lower())


def _first(record: dict[str, Any], names: tuple[str, ...]) -> str:
    for name in names:
        value = record.get(name)
        if value is not None and str(value).strip():
            value = int(value) if isinstance(value, float) and value.is_integer() else value
            return str(value).strip()
    return ""


def read_manifest(source: Path | bytes, name: str | None = None) -> list[ManifestEntry]:
    """Manifest spreadsheet -> entries; rows without a document name are ignored."""
    entries: list[ManifestEntry] = []
    for raw in read_sheet(source, name).rows:
        record = {_manifest_key(k): v for k, v in raw.items()}
        document = _first(record, _MANIFEST_DOCUMENT)
        if not document:
            continue
        grade_text = _first(record, ("grado",))
        entries.append(
            ManifestEntry(
                document_name=document,
                course_label=_first(record, _MANIFEST_COURSE),
                level=Level.parse(_first(record, ("nivel",))),
                grade=int(grade_text) if grade_text.isdigit() else None,
                subject=_first(record, _MANIFEST_SUBJECT) or None,
            )
        )
    return entries
