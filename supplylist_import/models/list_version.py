from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .group import Group, LineItem

"""ListVersion: one immutable snapshot of a supply list attached to a course.

Versions are appended to a course, never replaced. N documents mapped to a
group become N versions carrying the same line items.
"""

__all__ = [
    "ListVersion",
    "material_record",
]


def material_record(item: LineItem, index: int, subject: str | None, subject_order: int | None) -> dict[str, Any]:
    """Serialize a line item in the store's material layout."""
    description = " | ".join(
        part
        for part in (
            f"Autor: {item.author}" if item.author else "",
            item.notes or "",
            f"Mes de uso: {item.usage_month}" if item.usage_month else "",
        )
        if part
    )
    return {
        "cantidad": item.quantity or 1,
        "nombre": item.name,
        "isbn": item.isbn,
        "marca": item.publisher,
        "autor": item.author,
        "observaciones": item.notes,
        "mes_uso": item.usage_month,
        "comprar": True,
        "precio": 0,
        "asignatura": subject,
        "descripcion": description or None,
        "woocommerce_sku": item.code,
        "disponibilidad": "no_encontrado",
        "encontrado_en_woocommerce": False,
        "orden_asignatura": subject_order,
        "orden_producto": item.order if item.order is not None else index + 1,
    }


@dataclass(frozen=True)
class ListVersion:
    ordinal: int
    file_name: str
    uploaded_at: str
    updated_at: str
    published_at: str | None = None
    source_url: str | None = None
    document_id: int | str | None = None
    document_url: str | None = None
    line_items: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_group(
        cls,
        group: Group,
        ordinal: int,
        now: str,
        document_id: int | str | None = None,
        document_url: str | None = None,
        source_url: str | None = None,
    ) -> ListVersion:
        materials = [
            material_record(item, index, group.subject.name, group.subject.order)
            for index, item in enumerate(group.line_items)
        ]
        stamp = group.list.updated_at or now
        return cls(
            ordinal=ordinal,
            file_name=group.list.name,
            uploaded_at=stamp,
            updated_at=stamp,
            published_at=group.list.published_at,
            source_url=source_url or group.list.url,
            document_id=document_id,
            document_url=document_url,
            line_items=materials,
            metadata={
                "nombre": group.list.name,
                "asignatura": group.subject.name,
                "orden_asignatura": group.subject.order,
                "url_lista": group.list.url,
                "url_publicacion": group.list.publication_url,
            },
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.ordinal,
            "nombre_archivo": self.file_name,
            "fecha_subida": self.uploaded_at,
            "fecha_actualizacion": self.updated_at,
            "fecha_publicacion": self.published_at,
            "url_origen": self.source_url,
            "pdf_id": self.document_id,
            "pdf_url": self.document_url,
            "materiales": list(self.line_items),
            "metadata": dict(self.metadata),
        }
