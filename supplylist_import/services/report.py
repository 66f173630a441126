from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from ..models.import_result import ImportReport

"""Failed-rows report.

Writes the original spreadsheet rows of every failed group to a new workbook,
with the stage and error appended, so the operator can fix them and import
just those rows again.
"""

__all__ = [
    "failed_rows_frame",
    "export_failed_rows",
]

logger = logging.getLogger(__name__)

STAGE_COLUMN = "stage"
ERROR_COLUMN = "error"


def failed_rows_frame(report: ImportReport) -> pd.DataFrame:
    failures = {r.group_key: r for r in report.failures()}
    records = []
    for group in report.groups:
        result = failures.get(group.key)
        if result is None:
            continue
        for row_number, raw in zip(group.row_numbers, group.raw_rows):
            record = dict(raw)
            record["fila"] = row_number
            record[STAGE_COLUMN] = result.stage.value
            record[ERROR_COLUMN] = result.message
            records.append(record)
    return pd.DataFrame.from_records(records)


def export_failed_rows(report: ImportReport, path: Path) -> int:
    """Write the failed rows to ``path`` (.xlsx); returns the row count.

    Nothing is written when no group failed.
    """
    frame = failed_rows_frame(report)
    if frame.empty:
        logger.info("no failed rows to export")
        return 0
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_excel(path, index=False, sheet_name="fallidos")
    logger.info("failed rows written to %s (%d rows)", path, len(frame))
    return len(frame)
