from __future__ import annotations

from datetime import datetime

from supplylist_import.excel.aliases import find_list_url, is_compact_layout, resolve_row, resolve_rows


def test_full_layout_resolution() -> None:
    record = {
        "Colegio": "Colegio Los Andes",
        "RBD": "12345-6",
        "Curso": "1º Básico",
        "Asignatura": "Lenguaje",
        "Libro_nombre": "Cuaderno",
        "Libro_cantidad": 3.0,
        "Fecha_actualizacion": datetime(2026, 2, 1, 10, 30),
        "Unknown": "ignored",
    }
    row = resolve_row(record, 1, compact=False)
    assert row.school_code == 12345
    assert row.course_name == "1º Básico"
    assert row.quantity == 3
    assert row.updated_at == "2026-02-01T10:30:00"
    assert row.list_name is None
    assert row.raw["Unknown"] == "ignored"


def test_compact_layout_defaults_and_misspellings() -> None:
    records = [
        {"rbd": 999, "nombre_curso": "2 medio", "asignaura": "Historia", "Producto": "Atlas", "ordden_prdo": "4"},
    ]
    assert is_compact_layout(records[0])
    (row,) = resolve_rows(records)
    assert row.row_number == 1
    assert row.subject_name == "Historia"
    assert row.list_name == "Historia"
    assert row.quantity == 1
    assert row.item_order == 4
    assert row.school_identifier == "RBD_999"


def test_full_layout_is_not_compact() -> None:
    assert not is_compact_layout({"Colegio": "x", "RBD": 1})
    assert not is_compact_layout(None)


def test_list_url_spellings() -> None:
    assert find_list_url({"URL PDF": "https://a.cl/x.pdf"}) == "https://a.cl/x.pdf"
    assert find_list_url({"Link": "http://b.cl/y.pdf"}) == "http://b.cl/y.pdf"
    assert find_list_url({"Enlace URL del PDF": "https://c.cl/z.pdf"}) == "https://c.cl/z.pdf"
    assert find_list_url({"url_pdf": "ftp://nope"}) is None
    assert find_list_url({"pdf": "lista.pdf"}) is None


def test_non_http_list_url_falls_back_to_other_columns() -> None:
    row = resolve_row({"URL_lista": "lista.pdf", "link": "https://d.cl/l.pdf"}, 5, compact=False)
    assert row.list_url == "https://d.cl/l.pdf"


def test_missing_required_fields() -> None:
    row = resolve_row({"Curso": "1 basico"}, 2, compact=False)
    assert row.missing_required() == ["school_code|school_name", "subject_name", "item_name"]
