from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from ..models.row import Row

"""Column alias resolution: raw spreadsheet records -> canonical Row.

Two layouts are accepted. The *full* layout uses the long column names
(Colegio, RBD, Curso, Libro_nombre, ...). The *compact* layout uses short
names (rbd, nombre_curso, asignatura, Producto, ...) and also tolerates a
few common misspellings seen in real files (asignaura, ordden_prdo).
Unknown columns are ignored.
"""

__all__ = [
    "FULL_ALIASES",
    "COMPACT_ALIASES",
    "is_compact_layout",
    "find_list_url",
    "resolve_row",
    "resolve_rows",
]

FULL_ALIASES: dict[str, tuple[str, ...]] = {
    "school_name": ("Colegio", "colegio"),
    "school_code": ("RBD", "rbd"),
    "commune": ("Comuna", "comuna"),
    "school_order": ("Orden_colegio", "orden_colegio"),
    "course_name": ("Curso", "curso"),
    "course_year": ("Año_curso", "año_curso"),
    "course_order": ("Orden_curso", "orden_curso"),
    "level_hint": ("Nivel", "nivel"),
    "grade_hint": ("Grado", "grado"),
    "subject_name": ("Asignatura", "asignatura"),
    "subject_order": ("Orden_asignatura", "orden_asignatura"),
    "list_name": ("Lista_nombre", "lista_nombre"),
    "list_year": ("Año_lista", "año_lista"),
    "updated_at": ("Fecha_actualizacion", "fecha_actualizacion"),
    "published_at": ("Fecha_publicacion", "fecha_publicacion"),
    "list_url": ("URL_lista", "url_lista"),
    "publication_url": ("URL_publicacion", "url_publicacion"),
    "list_order": ("Orden_lista", "orden_lista"),
    "item_name": ("Libro_nombre", "libro_nombre"),
    "item_code": ("Libro_codigo", "libro_codigo"),
    "isbn": ("Libro_isbn", "libro_isbn"),
    "author": ("Libro_autor", "libro_autor"),
    "publisher": ("Libro_editorial", "libro_editorial"),
    "quantity": ("Libro_cantidad", "libro_cantidad"),
    "notes": ("Libro_observaciones", "libro_observaciones"),
    "usage_month": ("Libro_mes_uso", "libro_mes_uso"),
    "item_order": ("Libro_orden", "libro_orden"),
}

_COMPACT_EXTRA: dict[str, tuple[str, ...]] = {
    "school_name": ("colegio_nombre",),
    "course_name": ("nombre_curso",),
    "course_year": ("año", "ano"),
    "subject_name": ("asignaura",),
    "subject_order": ("orden_asigna",),
    "list_name": ("Lista", "lista"),
    "list_year": ("año", "ano"),
    "item_name": ("Producto", "producto"),
    "item_code": ("codigo_prod", "codigo"),
    "isbn": ("ISBN", "isbn"),
    "author": ("Autor", "autor"),
    "publisher": ("Editorial", "editorial"),
    "quantity": ("Cantidad", "cantidad"),
    "notes": ("Observaciones", "observaciones"),
    "usage_month": ("Mes_uso", "mes_uso"),
    "item_order": ("ordden_prdo", "orden_prod", "orden"),
}

COMPACT_ALIASES: dict[str, tuple[str, ...]] = {
    name: FULL_ALIASES[name] + _COMPACT_EXTRA.get(name, ()) for name in FULL_ALIASES
}

# Columns whose presence in the first record marks the compact layout.
_COMPACT_MARKERS = ("nombre_curso", "rbd", "Producto", "asignaura")

# Searched in order; "URL PDF" spellings first.
_URL_COLUMNS = (
    "URL PDF", "url pdf", "Url Pdf", "URL_PDF", "url_pdf",
    "URL_lista", "url_lista",
    "URL", "url", "Url",
    "link_pdf", "link PDF", "Link PDF", "LINK_PDF",
    "pdf_url", "PDF URL", "Pdf Url", "PDF_URL",
    "link", "Link", "LINK",
    "pdf", "PDF", "Pdf",
)

_INT_FIELDS = {
    "school_code", "school_order", "course_year", "course_order", "grade_hint",
    "subject_order", "list_year", "list_order", "quantity", "item_order",
}
_DATE_FIELDS = {"updated_at", "published_at"}
_LEADING_INT = re.compile(r"\s*(-?\d+)")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN
        return True
    return isinstance(value, str) and not value.strip()


def _text(value: Any) -> str | None:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _int(value: Any) -> int | None:
    """Leading integer of a cell ("12345-6" -> 12345), None when absent."""
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _date_text(value: Any) -> str | None:
    if _is_blank(value):
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    iso = getattr(value, "isoformat", None)  # pandas.Timestamp
    if callable(iso):
        return iso()
    return str(value).strip()


def _pick(record: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = record.get(name)
        if not _is_blank(value):
            return value
    return None


def _normalize_column(name: str) -> str:
    return re.sub(r"[^\w\s]", "", re.sub(r"\s+", " ", name.strip().lower()))


def _as_url(value: Any) -> str | None:
    text = _text(value)
    if text and text.startswith(("http://", "https://")):
        return text
    return None


def find_list_url(record: dict[str, Any]) -> str | None:
    """First http(s) value found under any known list-URL column spelling."""
    for name in _URL_COLUMNS:
        url = _as_url(record.get(name))
        if url:
            return url
    wanted = {_normalize_column(n) for n in _URL_COLUMNS}
    for key, value in record.items():
        normalized = _normalize_column(str(key))
        if normalized in wanted or ("url" in normalized and "pdf" in normalized):
            url = _as_url(value)
            if url:
                return url
    return None


def is_compact_layout(first_record: dict[str, Any] | None) -> bool:
    if not first_record:
        return False
    return any(not _is_blank(first_record.get(marker)) for marker in _COMPACT_MARKERS)


def resolve_row(record: dict[str, Any], row_number: int, *, compact: bool) -> Row:
    aliases = COMPACT_ALIASES if compact else FULL_ALIASES
    values: dict[str, Any] = {}
    for name, spellings in aliases.items():
        raw = _pick(record, spellings)
        if name in _INT_FIELDS:
            values[name] = _int(raw)
        elif name in _DATE_FIELDS:
            values[name] = _date_text(raw)
        else:
            values[name] = _text(raw)

    values["list_url"] = _as_url(values.get("list_url")) or find_list_url(record)
    if compact:
        if not values.get("list_name"):
            values["list_name"] = values.get("subject_name")
        if values.get("quantity") is None:
            values["quantity"] = 1
    return Row(row_number=row_number, raw=dict(record), **values)


def resolve_rows(records: list[dict[str, Any]]) -> list[Row]:
    """Resolve every record; the layout is decided once from the first record."""
    compact = is_compact_layout(records[0] if records else None)
    return [resolve_row(record, index + 1, compact=compact) for index, record in enumerate(records)]
