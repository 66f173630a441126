from __future__ import annotations

from ..models.import_result import ImportReport

"""SUMMARY line rendering.

Format:
SUMMARY groups={total} success={success} failed={failed} skipped_rows={rows}
line_items={items} versions={versions} elapsed_sec={elapsed}
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    """Integral values without decimals, tiny values without exponent notation."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(report: ImportReport) -> str:
    """Render the single-line job summary.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> render_summary_line(ImportReport(results=[], total_groups=0, start_time=t, end_time=t))
        'SUMMARY groups=0 success=0 failed=0 skipped_rows=0 line_items=0 versions=0 elapsed_sec=0'
    """
    line = (
        f"SUMMARY groups={report.total_groups} "
        f"success={report.success_count} "
        f"failed={report.failure_count} "
        f"skipped_rows={report.skipped_rows} "
        f"line_items={report.line_items_written} "
        f"versions={report.versions_appended} "
        f"elapsed_sec={format_elapsed(report.elapsed_seconds)}"
    )
    if report.cancelled:
        line += " cancelled=true"
    return line
