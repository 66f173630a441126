from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..errors import ValidationError
from ..models.components import Level
from ..models.group import CourseRef, Group, GroupKey, LineItem, ListRef, SchoolRef, SubjectRef
from ..models.row import Row
from .normalizer import GRADE_MAX, GRADE_MIN, extract_components
from .school_index import SchoolIndex

"""Grouper: fold flat rows into School -> Course -> Subject -> List groups.

Groups come out in order of first appearance of their composite key. Rows
missing the minimum fields are skipped and counted; they never fail the job.
A later row with an existing key adds its line item and backfills list-level
fields the group does not have yet (first non-empty value wins).
"""

__all__ = [
    "DEFAULT_LIST_NAME",
    "GroupingResult",
    "validate_row",
    "group_rows",
]

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "Lista de Útiles"
DEFAULT_LEVEL = Level.BASIC
DEFAULT_GRADE = 1


@dataclass
class GroupingResult:
    groups: list[Group]
    skipped_rows: list[ValidationError] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_rows)


def validate_row(row: Row) -> None:
    missing = row.missing_required()
    if missing:
        raise ValidationError(row.row_number, missing)


def _course_ref(row: Row) -> CourseRef:
    name = row.course_name or ""
    components = extract_components(name)
    level = Level.parse(row.level_hint) or components.level
    hint = row.grade_hint
    if hint is not None and not GRADE_MIN <= hint <= GRADE_MAX:
        logger.warning("course '%s' (row %d): grade %d out of range, ignored", name, row.row_number, hint)
        hint = None
        needs_review = True
    else:
        needs_review = components.ambiguous_grade and hint is None
    grade = hint if hint is not None else components.grade
    if level is None:
        level = DEFAULT_LEVEL
        needs_review = True
    if grade is None:
        grade = DEFAULT_GRADE
        needs_review = True
    if needs_review:
        logger.warning("course '%s' (row %d): grade/level guessed as %s %s", name, row.row_number, grade, level.value)
    return CourseRef(
        name=name,
        components=components,
        level=level,
        grade=grade,
        year=row.course_year or components.year,
        order=row.course_order,
        needs_review=needs_review,
    )


def _school_ref(row: Row, index: SchoolIndex | None) -> SchoolRef:
    existing = index.lookup(code=row.school_code, name=row.school_name) if index is not None else None
    if existing is not None:
        return SchoolRef(
            name=existing.name or row.school_name or f"Colegio RBD {row.school_code}",
            code=row.school_code if row.school_code is not None else existing.code,
            commune=existing.commune or row.commune,
            order=row.school_order,
            exists=True,
            existing=existing.raw or None,
        )
    return SchoolRef(
        name=row.school_name or f"Colegio RBD {row.school_code}",
        code=row.school_code,
        commune=row.commune,
        order=row.school_order,
    )


def _line_item(row: Row, position: int) -> LineItem:
    return LineItem(
        name=row.item_name or "",
        code=row.item_code,
        isbn=row.isbn,
        author=row.author,
        publisher=row.publisher,
        quantity=row.quantity or 1,
        notes=row.notes,
        usage_month=row.usage_month,
        order=row.item_order,
        position=position,
    )


def _backfill(group: Group, row: Row) -> None:
    target = group.list
    if not target.url and row.list_url:
        target.url = row.list_url
    if not target.publication_url and row.publication_url:
        target.publication_url = row.publication_url
    if not target.updated_at and row.updated_at:
        target.updated_at = row.updated_at
    if not target.published_at and row.published_at:
        target.published_at = row.published_at
    if target.year is None and (row.list_year or row.course_year):
        target.year = row.list_year or row.course_year


def group_rows(
    rows: list[Row],
    school_index: SchoolIndex | None = None,
    *,
    default_list_name: str = DEFAULT_LIST_NAME,
) -> GroupingResult:
    """Fold ``rows`` into groups keyed by (school, course, subject, list).

    ``school_index`` is only used for labelling (exists flag, display name,
    commune); the binding resolution happens in the orchestrator.
    """
    groups: dict[GroupKey, Group] = {}
    skipped: list[ValidationError] = []

    for position, row in enumerate(rows):
        try:
            validate_row(row)
        except ValidationError as e:
            skipped.append(e)
            logger.debug("skip %s", e)
            continue

        list_name = row.list_name or row.subject_name or default_list_name
        key = GroupKey(
            school=row.school_identifier,
            course=row.course_name or "",
            subject=row.subject_name or "",
            list_name=list_name,
        )
        group = groups.get(key)
        if group is None:
            group = Group(
                key=key,
                school=_school_ref(row, school_index),
                course=_course_ref(row),
                subject=SubjectRef(name=row.subject_name or "", order=row.subject_order),
                list=ListRef(
                    name=list_name,
                    year=row.list_year or row.course_year,
                    updated_at=row.updated_at,
                    published_at=row.published_at,
                    url=row.list_url,
                    publication_url=row.publication_url,
                    order=row.list_order,
                ),
            )
            groups[key] = group
        else:
            _backfill(group, row)
        group.add_item(_line_item(row, position))
        group.row_numbers.append(row.row_number)
        group.raw_rows.append(dict(row.raw))

    if skipped:
        logger.info("skipped %d incomplete row(s)", len(skipped))
    return GroupingResult(groups=list(groups.values()), skipped_rows=skipped)
