from __future__ import annotations

"""Pipeline error taxonomy.

Every per-group error is caught at the group boundary by the orchestrator and
turned into an ImportResult. error_type is the UPPER_SNAKE label written to
the JSON Lines error log.
"""

__all__ = [
    "ProcessingError",
    "ValidationError",
    "ResolutionError",
    "ConsistencyTimeoutError",
    "UploadError",
    "PersistError",
]


class ProcessingError(Exception):
    """Base exception for processing errors."""
    error_type = "PROCESSING_ERROR"


class ValidationError(ProcessingError):
    """Row lacks the minimum fields; the row is skipped, not reported."""
    error_type = "ROW_VALIDATION_ERROR"

    def __init__(self, row_number: int, missing: list[str]) -> None:
        super().__init__(f"row {row_number} missing {', '.join(missing)}")
        self.row_number = row_number
        self.missing = missing


class ResolutionError(ProcessingError):
    """A school or course could not be found or created."""
    error_type = "RESOLUTION_ERROR"


class ConsistencyTimeoutError(ProcessingError):
    """A just-created entity never became readable within the retry budget."""
    error_type = "CONSISTENCY_TIMEOUT"


class UploadError(ProcessingError):
    """A document could not be downloaded or uploaded."""
    error_type = "UPLOAD_ERROR"


class PersistError(ProcessingError):
    """The version write failed after all retries."""
    error_type = "PERSIST_ERROR"
