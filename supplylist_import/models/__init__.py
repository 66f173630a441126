"""Domain models for the supply-list importer."""

from .components import CourseComponents, Level
from .config_models import ImportConfig, ImportOptions, RetryConfig, StorageConfig, UploadConfig
from .documents import DocumentCandidate, DocumentOrigin, UploadedDocument
from .group import CourseRef, Group, GroupKey, GroupStatus, LineItem, ListRef, SchoolRef, SubjectRef
from .import_result import ImportReport, ImportResult, Stage
from .list_version import ListVersion
from .records import CourseRecord, SchoolRecord
from .row import Row

__all__ = [
    # Configuration models
    "ImportConfig",
    "ImportOptions",
    "RetryConfig",
    "StorageConfig",
    "UploadConfig",
    # Course labels
    "CourseComponents",
    "Level",
    # Rows and groups
    "Row",
    "Group",
    "GroupKey",
    "GroupStatus",
    "SchoolRef",
    "CourseRef",
    "SubjectRef",
    "ListRef",
    "LineItem",
    # Documents and store records
    "DocumentCandidate",
    "DocumentOrigin",
    "UploadedDocument",
    "SchoolRecord",
    "CourseRecord",
    "ListVersion",
    # Results
    "ImportResult",
    "ImportReport",
    "Stage",
]
