"""Spreadsheet reading and column alias resolution."""

from .aliases import find_list_url, is_compact_layout, resolve_row, resolve_rows
from .reader import SheetData, SpreadsheetError, normalize_frame, read_rows, read_sheet

__all__ = [
    "SheetData",
    "SpreadsheetError",
    "find_list_url",
    "is_compact_layout",
    "normalize_frame",
    "read_rows",
    "read_sheet",
    "resolve_row",
    "resolve_rows",
]
