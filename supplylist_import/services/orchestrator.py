from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from ..documents.archive import list_entries
from ..errors import (
    ConsistencyTimeoutError,
    PersistError,
    ProcessingError,
    ResolutionError,
    UploadError,
)
from ..excel.reader import read_rows
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.documents import DocumentCandidate, DocumentOrigin, UploadedDocument
from ..models.error_record import ErrorRecord
from ..models.group import Group, GroupKey, GroupStatus
from ..models.import_result import ImportReport, ImportResult, Stage
from ..models.list_version import ListVersion
from ..models.records import CourseRecord
from ..storage.base import ContentStore
from ..storage.errors import StorageError, StorageUnavailableError
from .grouper import group_rows
from .matcher import DocumentMatcher, MatchOutcome, read_manifest
from .progress import GroupProgressTracker, NullProgressSink, ProgressSink
from .resolvers import CourseResolver, ImportSession, SchoolResolver
from .retry import RetryExhausted, RetryPolicy, retry_call
from .school_index import SchoolIndex

"""Import orchestration service.

Per group, in processing order (school, course, subject, list order):

1. resolve or create the school            -> failure: School stage
2. resolve or create the course            -> failure: Course stage
3. upload the group's documents (matched ones first, else the row URL);
   an upload failure only drops that document
4. read the course's current versions (read-before-append)
5. verify the course resolves by id; the id returned is the canonical one
6. append one version per uploaded document and persist the list
7. record the List stage result

Steps 4-6 run under the session's per-course lock. Every per-group error is
turned into an ImportResult; only cancellation or an unreachable store stops
the job early.
"""

__all__ = [
    "DocumentDownloader",
    "ImportOrchestrator",
    "collect_documents",
    "process_all",
]

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "UNEXPECTED_ERROR"
STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class DocumentDownloader(Protocol):
    def fetch(self, url: str) -> bytes:
        ...


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _document_name(group: Group) -> str:
    base = f"{group.list.name}-{group.subject.name}"
    return re.sub(r"[\\/]+", "-", base).strip() + ".pdf"


class ImportOrchestrator:
    """Runs groups against a content store.

    One orchestrator may run several jobs; each run() gets its own
    ImportSession unless the caller passes one in.
    """

    def __init__(
        self,
        store: ContentStore,
        config: ImportConfig | None = None,
        *,
        downloader: DocumentDownloader | None = None,
        sink: ProgressSink | None = None,
        error_log: ErrorLogBuffer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.config = config or ImportConfig()
        self.downloader = downloader
        self.sink: ProgressSink = sink or NullProgressSink()
        self.error_log = error_log
        self._sleep = sleep
        self._schools = SchoolResolver(store)
        self._courses = CourseResolver(store)

        retry = self.config.retry
        base = retry.base_delay_seconds
        self._read_policy = RetryPolicy.linear(retry.read_attempts, base)
        self._verify_policy = RetryPolicy.schedule(retry.verify_schedule, base)
        self._persist_policy = RetryPolicy.linear(retry.persist_attempts, base)
        self._settle_seconds = retry.course_settle_seconds * base

    # -- job ------------------------------------------------------------
    def run(
        self,
        groups: Sequence[Group],
        documents: dict[GroupKey, list[DocumentCandidate]] | None = None,
        *,
        cancel_event: threading.Event | None = None,
        session: ImportSession | None = None,
        skipped_rows: int = 0,
        unmatched_documents: Iterable[str] = (),
    ) -> ImportReport:
        """Process ``groups`` and return the job report.

        Args:
            groups: Groups from the grouper; processed in processing_order
            documents: Matched document candidates per group key
            cancel_event: Checked between groups; when set the remaining
                groups are marked SKIPPED and the partial report returned
            session: Run-scoped caches; a fresh one is created when omitted
            skipped_rows: Incomplete spreadsheet rows, for the report only
            unmatched_documents: Matcher warnings, for the report only
        """
        start_time = datetime.now(UTC)
        session = session or ImportSession()
        documents = documents or {}
        worklist = sorted(groups, key=lambda g: g.processing_order)
        total = len(worklist)
        results: list[ImportResult] = []
        cancelled = False
        aborted_reason: str | None = None

        for index, group in enumerate(worklist):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                for remaining in worklist[index:]:
                    remaining.status = GroupStatus.SKIPPED
                logger.warning("import cancelled; %d group(s) not processed", total - index)
                break

            if aborted_reason is not None:
                result = self._failure(group, Stage.SCHOOL, STORAGE_UNAVAILABLE, f"storage unavailable: {aborted_reason}")
            else:
                try:
                    result = self.process_group(session, group, documents.get(group.key, []))
                except StorageUnavailableError as e:
                    aborted_reason = str(e)
                    logger.error("storage unavailable, remaining groups will not be attempted: %s", e)
                    result = self._failure(group, Stage.SCHOOL, STORAGE_UNAVAILABLE, f"storage unavailable: {e}")

            results.append(result)
            self.sink.on_group_result(result)
            self.sink.on_progress(round(len(results) / total * 100))

        return ImportReport(
            results=results,
            total_groups=total,
            start_time=start_time,
            end_time=datetime.now(UTC),
            skipped_rows=skipped_rows,
            cancelled=cancelled,
            aborted_reason=aborted_reason,
            unmatched_documents=list(unmatched_documents),
            groups=list(worklist),
        )

    # -- one group ------------------------------------------------------
    def process_group(
        self,
        session: ImportSession,
        group: Group,
        documents: Sequence[DocumentCandidate] = (),
    ) -> ImportResult:
        """Run the seven steps for one group.

        StorageUnavailableError propagates so the caller can stop the job;
        everything else ends up in the returned ImportResult.
        """
        stage = Stage.SCHOOL
        try:
            try:
                school = self._schools.resolve_or_create(session, group.school)
            except ResolutionError as e:
                return self._failure(group, stage, e.error_type, str(e))

            stage = Stage.COURSE
            course_ref = group.course
            try:
                course = self._courses.resolve_or_create(
                    session, school.id, course_ref.name, course_ref.level, course_ref.grade, course_ref.year
                )
            except ResolutionError as e:
                return self._failure(group, stage, e.error_type, str(e))
            group.status = GroupStatus.RESOLVED
            if course.created and self._settle_seconds > 0:
                self._sleep(self._settle_seconds)

            stage = Stage.LIST
            uploaded, upload_errors = self._upload_documents(group, documents)
            try:
                with session.course_lock(course.id):
                    existing = self._read_versions(course.id)
                    canonical = self._verify_course(course.id)
                    appended = self._append_versions(canonical.id, existing, group, uploaded)
            except ProcessingError as e:
                return self._failure(group, stage, e.error_type, str(e))
        except StorageUnavailableError:
            raise
        except Exception as e:
            logger.exception("unexpected error in group %s", group.key.label)
            return self._failure(group, stage, UNEXPECTED_ERROR, f"{type(e).__name__}: {e}")

        group.status = GroupStatus.COMPLETED
        message = f"{len(group.line_items)} line item(s), {appended} version(s) appended"
        if upload_errors:
            message += f", {len(upload_errors)} document(s) failed"
        logger.info("group %s ok: %s", group.key.label, message)
        return ImportResult(
            group_key=group.key,
            stage=Stage.LIST,
            success=True,
            message=message,
            payload={
                "school_id": school.id,
                "school_created": school.created,
                "course_id": canonical.id,
                "course_created": course.created,
                "line_items": len(group.line_items),
                "versions_appended": appended,
                "documents": [doc.url for doc in uploaded],
                "upload_errors": upload_errors,
                "needs_review": course_ref.needs_review,
            },
        )

    def _failure(self, group: Group, stage: Stage, error_type: str, message: str) -> ImportResult:
        group.status = GroupStatus.FAILED
        logger.error("group %s failed at %s stage: %s", group.key.label, stage.value, message)
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(group.key.label, stage.value, group.row_numbers, error_type, message)
            )
        return ImportResult(
            group_key=group.key,
            stage=stage,
            success=False,
            message=message,
            error_type=error_type,
        )

    # -- step 3: documents ----------------------------------------------
    def _candidates_for(self, group: Group, documents: Sequence[DocumentCandidate]) -> list[DocumentCandidate]:
        if documents:
            return list(documents)
        if group.list.url:
            return [DocumentCandidate.from_url(group.list.url, _document_name(group))]
        return []

    def _upload_one(self, candidate: DocumentCandidate) -> UploadedDocument:
        data = candidate.data
        if data is None:
            if candidate.origin is not DocumentOrigin.URL or not candidate.source_url:
                raise UploadError(f"{candidate.name}: no content")
            if self.downloader is None:
                raise UploadError(f"{candidate.name}: no downloader configured for {candidate.source_url}")
            try:
                data = self.downloader.fetch(candidate.source_url)
            except UploadError:
                raise
            except Exception as e:
                raise UploadError(f"{candidate.name}: download {candidate.source_url} failed: {e}") from e
        try:
            uploaded = self.store.upload_file(data, candidate.name)
        except StorageError as e:
            raise UploadError(f"{candidate.name}: {e}") from e
        return UploadedDocument(
            id=uploaded.id,
            url=uploaded.url,
            name=uploaded.name or candidate.name,
            source_url=candidate.source_url,
        )

    def _upload_documents(
        self, group: Group, documents: Sequence[DocumentCandidate]
    ) -> tuple[list[UploadedDocument], list[str]]:
        candidates = self._candidates_for(group, documents)
        if not candidates:
            return [], []
        workers = max(1, min(self.config.uploads.max_workers, len(candidates)))
        uploaded: list[UploadedDocument] = []
        errors: list[str] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="upload") as pool:
            futures = [pool.submit(self._upload_one, c) for c in candidates]
            for candidate, future in zip(candidates, futures):
                try:
                    uploaded.append(future.result())
                except UploadError as e:
                    errors.append(str(e))
                    logger.warning("group %s: upload failed: %s", group.key.label, e)
        return uploaded, errors

    # -- steps 4-6: versions --------------------------------------------
    def _read_course(self, course_id: int | str, policy: RetryPolicy, label: str) -> CourseRecord:
        try:
            record = retry_call(
                lambda: self.store.get_course(course_id),
                policy,
                label=label,
                retry_if=lambda course: course is None,
                sleep=self._sleep,
            )
        except RetryExhausted as e:
            if isinstance(e.last_error, StorageUnavailableError):
                raise e.last_error from e
            raise ConsistencyTimeoutError(f"course {course_id} not readable: {e}") from e
        except StorageError as e:
            raise ResolutionError(f"course {course_id}: {e}") from e
        return record

    def _read_versions(self, course_id: int | str) -> list[dict[str, Any]]:
        record = self._read_course(course_id, self._read_policy, f"read versions of course {course_id}")
        return list(record.versions)

    def _verify_course(self, course_id: int | str) -> CourseRecord:
        record = self._read_course(course_id, self._verify_policy, f"verify course {course_id}")
        if str(record.id) != str(course_id):
            logger.info("course %s resolved as %s; using the latter", course_id, record.id)
        return record

    def _append_versions(
        self,
        course_id: int | str,
        existing: list[dict[str, Any]],
        group: Group,
        uploaded: list[UploadedDocument],
    ) -> int:
        now = _utc_now()
        new_versions = [
            ListVersion.for_group(
                group,
                ordinal=len(existing) + 1 + i,
                now=now,
                document_id=doc.id if doc else None,
                document_url=doc.url if doc else None,
                source_url=doc.source_url if doc else None,
            ).to_record()
            for i, doc in enumerate(uploaded or [None])
        ]
        versions = existing + new_versions
        try:
            retry_call(
                lambda: self.store.update_course_versions(course_id, versions),
                self._persist_policy,
                label=f"persist versions of course {course_id}",
                sleep=self._sleep,
            )
        except RetryExhausted as e:
            if isinstance(e.last_error, StorageUnavailableError):
                raise e.last_error from e
            raise PersistError(str(e)) from e
        except StorageError as e:
            raise PersistError(f"persist versions of course {course_id}: {e}") from e
        return len(new_versions)


def collect_documents(
    groups: Sequence[Group],
    *,
    archive: bytes | None = None,
    manifest: Path | bytes | None = None,
    pdfs: Iterable[Path] = (),
) -> MatchOutcome:
    """Match archive entries and manual PDFs to groups.

    With a manifest, archive entries are assigned through it; without one
    they go through the heuristic matcher like manual PDFs do.
    """
    matcher = DocumentMatcher(groups)
    outcome = MatchOutcome()
    if archive is not None:
        entries = list_entries(archive)
        logger.info("archive: %d pdf file(s)", len(entries))
        if manifest is not None:
            outcome.merge(matcher.match_manifest(read_manifest(manifest), entries))
        else:
            candidates = [DocumentCandidate(name=e.name, data=e.data, origin=DocumentOrigin.ARCHIVE) for e in entries]
            outcome.merge(matcher.match_documents(candidates))
    elif manifest is not None:
        logger.warning("manifest given without an archive; ignored")
    manual = [DocumentCandidate(name=p.name, data=p.read_bytes(), origin=DocumentOrigin.MANUAL) for p in pdfs]
    if manual:
        outcome.merge(matcher.match_documents(manual))
    return outcome


def process_all(
    config: ImportConfig,
    store: ContentStore,
    spreadsheet: Path | bytes,
    *,
    archive: bytes | None = None,
    manifest: Path | bytes | None = None,
    pdfs: Iterable[Path] = (),
    downloader: DocumentDownloader | None = None,
    show_progress: bool = False,
    sink: ProgressSink | None = None,
    error_log: ErrorLogBuffer | None = None,
    cancel_event: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ImportReport:
    """Read, group, match and import one spreadsheet.

    With ``show_progress`` and no ``sink`` a tqdm bar is shown (TTY only).

    Raises:
        SpreadsheetError: the spreadsheet cannot be read
        StorageUnavailableError: the store cannot be reached to load schools
    """
    rows = read_rows(spreadsheet)
    index = SchoolIndex.from_store(store)
    logger.info("rows=%d existing_schools=%d", len(rows), len(index))

    grouping = group_rows(rows, index, default_list_name=config.options.default_list_name)
    logger.info("groups=%d skipped_rows=%d", len(grouping.groups), grouping.skipped_count)

    outcome = collect_documents(grouping.groups, archive=archive, manifest=manifest, pdfs=pdfs)

    tracker = GroupProgressTracker(len(grouping.groups)) if sink is None and show_progress else None
    orchestrator = ImportOrchestrator(
        store,
        config,
        downloader=downloader,
        sink=sink or tracker,
        error_log=error_log,
        sleep=sleep,
    )
    try:
        return orchestrator.run(
            grouping.groups,
            outcome.assignments,
            cancel_event=cancel_event,
            session=ImportSession(school_index=index),
            skipped_rows=grouping.skipped_count,
            unmatched_documents=outcome.unmatched,
        )
    finally:
        if tracker is not None:
            tracker.close()
