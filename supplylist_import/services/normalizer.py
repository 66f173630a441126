from __future__ import annotations

import re
import unicodedata

from ..models.components import CourseComponents, Level

"""Course label normalizer.

extract_components() turns a free-text course label or a file name into
comparable CourseComponents. The steps run in a fixed order:

1. lowercase, strip accents, turn ``- _ .`` into spaces
2. Spanish ordinal words -> digits ("primero" -> 1, "décimo" -> 10); this
   runs before the ordinal marks are stripped
3. strip ordinal marks (° º ª) and digit suffixes ("5to" -> "5")
4. fold level words to ``basico`` / ``medio`` (plurals and synonyms too)
5. roman numerals in front of a level word -> digits ("ii medio" -> "2 medio")
6. digit runs: a 4-digit run in [2000, 2100] is the year, the first
   remaining run in [1, 12] is the grade
7. level from the folded words, else from a word glued to a digit
   ("5basico")
"""

__all__ = [
    "strip_accents",
    "normalize_name",
    "canonicalize",
    "extract_components",
]

_ORDINAL_WORDS = {
    "primero": 1, "primera": 1, "primer": 1,
    "segundo": 2, "segunda": 2,
    "tercero": 3, "tercera": 3, "tercer": 3,
    "cuarto": 4, "cuarta": 4,
    "quinto": 5, "quinta": 5,
    "sexto": 6, "sexta": 6,
    "septimo": 7, "septima": 7, "setimo": 7,
    "octavo": 8, "octava": 8,
    "noveno": 9, "novena": 9,
    "decimo": 10, "decima": 10,
}
_ORDINAL_RE = re.compile(
    r"\b(" + "|".join(sorted(_ORDINAL_WORDS, key=len, reverse=True)) + r")\b"
)
_ROMAN = {
    "i": 1, "ii": 2, "iii": 3, "iv": 4, "v": 5, "vi": 6,
    "vii": 7, "viii": 8, "ix": 9, "x": 10, "xi": 11, "xii": 12,
}
_ROMAN_RE = re.compile(r"\b(xii|xi|x|ix|viii|vii|vi|v|iv|iii|ii|i)\s+(basico|medio)\b")
_MARKS_RE = re.compile(r"[°º˚ª]")
_DIGIT_SUFFIX_RE = re.compile(r"\b(\d{1,2})(?:ero|ro|do|to|mo|vo|no|er|a|o)\b")
_SEPARATORS_RE = re.compile(r"[-_.]")
_BASIC_RE = re.compile(r"\b(?:basic[oa]s?|primarias?|elementa(?:l|les))\b")
_SECONDARY_RE = re.compile(r"\b(?:medi[oa]s?|secundari[oa]s?)\b")
_SPACES_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"\d+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

YEAR_MIN = 2000
YEAR_MAX = 2100
GRADE_MIN = 1
GRADE_MAX = 12


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_name(text: str | None) -> str:
    """Lowercase, accents stripped, whitespace collapsed (school/course names)."""
    if not text:
        return ""
    return _SPACES_RE.sub(" ", strip_accents(str(text).lower())).strip()


def canonicalize(text: str | None) -> str:
    """Steps 1-5 of the module docstring, returned as space separated text."""
    if not text:
        return ""
    value = _SEPARATORS_RE.sub(" ", strip_accents(str(text).lower()))
    value = _ORDINAL_RE.sub(lambda m: f" {_ORDINAL_WORDS[m.group(1)]} ", value)
    value = _MARKS_RE.sub(" ", value)
    value = _DIGIT_SUFFIX_RE.sub(r"\1", value)
    value = _SPACES_RE.sub(" ", value).strip()
    value = _BASIC_RE.sub("basico", value)
    value = _SECONDARY_RE.sub("medio", value)
    value = _ROMAN_RE.sub(lambda m: f"{_ROMAN[m.group(1)]} {m.group(2)}", value)
    return value


def _detect_level(text: str) -> Level | None:
    if re.search(r"\bbasico\b", text):
        return Level.BASIC
    if re.search(r"\bmedio\b", text):
        return Level.SECONDARY
    for word in text.split():
        if not any(ch.isdigit() for ch in word):
            continue
        if "basic" in word:
            return Level.BASIC
        if "medi" in word:
            return Level.SECONDARY
    return None


def extract_components(text: str | None) -> CourseComponents:
    canonical = canonicalize(text)
    if not canonical:
        return CourseComponents()

    year: int | None = None
    remaining: list[int] = []
    for run in _DIGITS_RE.findall(canonical):
        number = int(run)
        if year is None and len(run) == 4 and YEAR_MIN <= number <= YEAR_MAX:
            year = number
        else:
            remaining.append(number)

    # Runs outside 1-12 are never a grade, so the first in-range run wins.
    candidates = [n for n in remaining if GRADE_MIN <= n <= GRADE_MAX]
    grade = candidates[0] if candidates else None

    return CourseComponents(
        grade=grade,
        level=_detect_level(canonical),
        year=year,
        normalized_text=_NON_ALNUM_RE.sub("", canonical),
        ambiguous_grade=len(candidates) > 1,
    )
