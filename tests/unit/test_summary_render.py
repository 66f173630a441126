from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from supplylist_import.models.group import GroupKey
from supplylist_import.models.import_result import ImportReport, ImportResult, Stage
from supplylist_import.services.summary import format_elapsed, render_summary_line

SUMMARY_RE = re.compile(
    r"^SUMMARY groups=\d+ success=\d+ failed=\d+ skipped_rows=\d+ line_items=\d+ versions=\d+ elapsed_sec=[0-9.]+$"
)


def _report(elapsed: float, **kw) -> ImportReport:
    start = datetime(2026, 3, 1, 10, 0, 0, tzinfo=UTC)
    return ImportReport(start_time=start, end_time=start + timedelta(seconds=elapsed), **kw)


def test_render_summary_counts() -> None:
    key = GroupKey("A", "1 basico", "Lenguaje", "Lenguaje")
    results = [
        ImportResult(key, Stage.LIST, True, "ok", payload={"line_items": 4, "versions_appended": 2}),
        ImportResult(key._replace(subject="Arte"), Stage.SCHOOL, False, "no code", error_type="RESOLUTION_ERROR"),
    ]
    line = render_summary_line(_report(2.5, results=results, total_groups=2, skipped_rows=3))
    assert line == "SUMMARY groups=2 success=1 failed=1 skipped_rows=3 line_items=4 versions=2 elapsed_sec=2.5"
    assert SUMMARY_RE.match(line)


def test_cancelled_flag_is_appended() -> None:
    line = render_summary_line(_report(0, results=[], total_groups=5, cancelled=True))
    assert line.endswith("elapsed_sec=0 cancelled=true")


def test_format_elapsed() -> None:
    assert format_elapsed(0) == "0"
    assert format_elapsed(3.0) == "3"
    assert format_elapsed(0.0012) == "0.0012"
    assert format_elapsed(1.23456) == "1.235"
