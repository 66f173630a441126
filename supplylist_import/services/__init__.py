"""Import pipeline services: normalize, group, resolve, match, orchestrate."""

from .grouper import GroupingResult, group_rows
from .matcher import DocumentMatcher, ManifestEntry, MatchOutcome, match_documents, read_manifest
from .normalizer import extract_components, normalize_name
from .orchestrator import ImportOrchestrator, collect_documents, process_all
from .progress import GroupProgressTracker, NullProgressSink, ProgressSink
from .resolvers import CourseResolver, ImportSession, SchoolResolver
from .retry import RetryExhausted, RetryPolicy, retry_call
from .school_index import SchoolIndex
from .summary import render_summary_line

__all__ = [
    "CourseResolver",
    "DocumentMatcher",
    "GroupProgressTracker",
    "GroupingResult",
    "ImportOrchestrator",
    "ImportSession",
    "ManifestEntry",
    "MatchOutcome",
    "NullProgressSink",
    "ProgressSink",
    "RetryExhausted",
    "RetryPolicy",
    "SchoolIndex",
    "SchoolResolver",
    "collect_documents",
    "extract_components",
    "group_rows",
    "match_documents",
    "normalize_name",
    "process_all",
    "read_manifest",
    "render_summary_line",
    "retry_call",
]
