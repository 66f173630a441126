from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.row import Row
from .aliases import resolve_rows

"""Spreadsheet reader.

The first sheet of an .xlsx/.xls workbook (or a .csv file) is read with
pandas; the first line is the header. Cells are cleaned (NaN -> None,
strings stripped, blank strings -> None) and fully empty lines are dropped
before the records go through column alias resolution.
"""

__all__ = [
    "SpreadsheetError",
    "SheetData",
    "read_sheet",
    "normalize_frame",
    "read_rows",
]


class SpreadsheetError(Exception):
    """Raised when the spreadsheet cannot be read or has no header."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # cleaned (column -> value)


def _load_frame(source: Path | bytes, name: str) -> tuple[str, pd.DataFrame]:
    buffer: Any = io.BytesIO(source) if isinstance(source, bytes) else source
    if name.lower().endswith(".csv"):
        return "csv", pd.read_csv(buffer, dtype=object, keep_default_na=True)
    xls = pd.ExcelFile(buffer)
    if not xls.sheet_names:
        raise SpreadsheetError(f"{name}: workbook has no sheets")
    sheet = str(xls.sheet_names[0])
    return sheet, xls.parse(xls.sheet_names[0], header=0, dtype=object)


def normalize_frame(df: pd.DataFrame, sheet_name: str) -> SheetData:
    columns = [str(c).strip() for c in df.columns.tolist()]
    if not columns or all(c.startswith("Unnamed:") for c in columns):
        raise SpreadsheetError(f"sheet '{sheet_name}' has no header row")
    rows: list[dict[str, Any]] = []
    for _, raw in df.iterrows():
        if raw.isna().all():
            continue
        record: dict[str, Any] = {}
        for col, val in zip(columns, raw.tolist(), strict=False):
            if pd.isna(val):
                record[col] = None
            elif isinstance(val, str):
                stripped = val.strip()
                record[col] = stripped or None
            else:
                record[col] = val
        if all(v is None for v in record.values()):
            continue
        rows.append(record)
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def read_sheet(source: Path | bytes, name: str | None = None) -> SheetData:
    """Read and clean the first sheet of ``source``.

    Parameters
    ----------
    source: file path, or the file's bytes
    name: file name used to pick the format when ``source`` is bytes
    """
    if isinstance(source, Path):
        if not source.exists():
            raise SpreadsheetError(f"file not found: {source}")
        name = name or source.name
    name = name or "upload.xlsx"
    try:
        sheet_name, df = _load_frame(source, name)
    except SpreadsheetError:
        raise
    except Exception as e:
        raise SpreadsheetError(f"{name}: cannot read spreadsheet: {e}") from e
    return normalize_frame(df, sheet_name)


def read_rows(source: Path | bytes, name: str | None = None) -> list[Row]:
    """Spreadsheet -> canonical rows (alias resolution applied)."""
    return resolve_rows(read_sheet(source, name).rows)
