from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Row model: one spreadsheet record after column alias resolution.

The alias step (supplylist_import.excel.aliases) is the only place that knows
about the many possible column spellings; everything downstream works on
this canonical structure.
"""

__all__ = [
    "Row",
]


@dataclass(frozen=True)
class Row:
    """Canonical spreadsheet record. Every field is optional."""
    row_number: int  # 1-based data row number (header excluded)
    # school identity
    school_name: str | None = None
    school_code: int | None = None  # RBD
    commune: str | None = None
    school_order: int | None = None
    # course identity
    course_name: str | None = None
    course_year: int | None = None
    course_order: int | None = None
    level_hint: str | None = None  # dedicated level column, if any
    grade_hint: int | None = None  # dedicated grade column, if any
    # subject identity
    subject_name: str | None = None
    subject_order: int | None = None
    # list identity
    list_name: str | None = None
    list_year: int | None = None
    updated_at: str | None = None
    published_at: str | None = None
    list_url: str | None = None
    publication_url: str | None = None
    list_order: int | None = None
    # line item
    item_name: str | None = None
    item_code: str | None = None
    isbn: str | None = None
    author: str | None = None
    publisher: str | None = None
    quantity: int | None = None
    notes: str | None = None
    usage_month: str | None = None
    item_order: int | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def school_identifier(self) -> str:
        """School part of the group key: the name, else ``RBD_<code>``."""
        if self.school_name:
            return self.school_name
        if self.school_code is not None:
            return f"RBD_{self.school_code}"
        return ""

    def missing_required(self) -> list[str]:
        """Names of the minimum fields this row lacks (empty when usable)."""
        missing: list[str] = []
        if not self.school_name and self.school_code is None:
            missing.append("school_code|school_name")
        if not self.course_name:
            missing.append("course_name")
        if not self.subject_name:
            missing.append("subject_name")
        if not self.item_name:
            missing.append("item_name")
        return missing
