from __future__ import annotations

import json
from pathlib import Path

from supplylist_import.logging.error_log import ErrorLogBuffer
from supplylist_import.models.import_result import Stage
from supplylist_import.services.orchestrator import process_all
from supplylist_import.storage.errors import TransientStorageError

"""Partial failures: failing groups are reported, the others still import."""


def test_school_without_code_fails_alone(temp_workdir: Path, fast_config, store, downloader, write_xlsx, make_record) -> None:
    sheet = write_xlsx([
        make_record(Asignatura="Lenguaje"),
        make_record(Colegio="Colegio Sin RBD", RBD=None, Asignatura="Lenguaje"),
        make_record(Asignatura="Matemática"),
    ])
    error_log = ErrorLogBuffer(temp_workdir / "logs")
    report = process_all(fast_config, store, sheet, downloader=downloader, error_log=error_log, sleep=lambda _: None)

    assert report.total_groups == 3
    assert report.success_count == 2
    (failure,) = report.failures()
    assert failure.stage is Stage.SCHOOL
    assert failure.error_type == "RESOLUTION_ERROR"
    assert "without a code" in failure.message
    assert store.calls["create_school"] == 1
    assert store.calls["create_course"] == 1

    path = error_log.flush()
    (line,) = path.read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["stage"] == "School"
    assert record["rows"] == [2]
    assert record["group"].startswith("Colegio Sin RBD | ")


def test_persist_failure_leaves_other_groups(fast_config, store, downloader, write_xlsx, make_record) -> None:
    sheet = write_xlsx([make_record(Asignatura="Lenguaje"), make_record(Asignatura="Matemática")])
    store.fail_next("update_course_versions", TransientStorageError("503"), times=fast_config.retry.persist_attempts)
    report = process_all(fast_config, store, sheet, downloader=downloader, sleep=lambda _: None)

    assert [r.success for r in report.results] == [False, True]
    failure = report.results[0]
    assert failure.stage is Stage.LIST
    assert failure.error_type == "PERSIST_ERROR"
    versions = store.versions(report.results[1].payload["course_id"])
    assert [v["metadata"]["asignatura"] for v in versions] == ["Matemática"]
    assert [v["id"] for v in versions] == [1]
