from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per failed group, detailed enough to rebuild a follow-up
spreadsheet with only the failed rows.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        group: Group key label ("school | course | subject | list")
        stage: Stage where the group stopped (School/Course/List)
        rows: Spreadsheet data rows that belong to the group
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str
    group: str
    stage: str
    rows: list[int]
    error_type: str
    message: str

    @staticmethod
    def create(group: str, stage: str, rows: list[int], error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            group=group,
            stage=stage,
            rows=list(rows),
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
