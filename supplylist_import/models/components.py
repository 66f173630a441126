from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Course label components derived by the normalizer.

CourseComponents is never persisted: it only exists so that two free-text
course labels ("1º Básico", "Primero basico 2026", "1-basico.pdf") can be
compared on grade, level and year.
"""

__all__ = [
    "Level",
    "CourseComponents",
]


class Level(Enum):
    """School level. Values are the labels the content store expects."""
    BASIC = "Basica"
    SECONDARY = "Media"

    @classmethod
    def parse(cls, value: object) -> Level | None:
        """Read a level from a loose label ("Básica", "media", "MEDIO")."""
        if value is None:
            return None
        text = str(value).strip().lower()
        if not text:
            return None
        if "basic" in text or "básic" in text or "primaria" in text:
            return cls.BASIC
        if "medi" in text or "secundari" in text:
            return cls.SECONDARY
        return None


@dataclass(frozen=True)
class CourseComponents:
    """Comparable pieces of a course label.

    grade is 1-12 when present, year is within [2000, 2100] when present.
    ambiguous_grade is set when more than one short number could have been
    the grade and the first one was taken.
    """
    grade: int | None = None
    level: Level | None = None
    year: int | None = None
    normalized_text: str = ""
    ambiguous_grade: bool = False

    @property
    def is_empty(self) -> bool:
        return self.grade is None and self.level is None and self.year is None
