from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from supplylist_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from supplylist_import.documents import ArchiveError, HttpDocumentDownloader
from supplylist_import.excel.aliases import is_compact_layout, resolve_rows
from supplylist_import.excel.reader import SpreadsheetError, read_sheet
from supplylist_import.logging.error_log import ErrorLogBuffer
from supplylist_import.logging.init import log_summary, setup_logging
from supplylist_import.models.config_models import ImportConfig
from supplylist_import.services.orchestrator import process_all
from supplylist_import.services.report import export_failed_rows
from supplylist_import.services.summary import render_summary_line
from supplylist_import.storage import HttpContentStore, InMemoryContentStore, StorageError

"""CLI entrypoint.

Flow:
- load .env (overrides the process environment) and the YAML config
- read and group the spreadsheet, match archive/manual PDFs
- import every group against the content API (or an in-memory store with
  --dry-run), print the SUMMARY line, optionally export the failed rows

Exit codes: 0 every group succeeded (or there were none), 2 some groups
failed, 1 fatal (config, unreadable input, store unreachable, cancelled).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="supplylist-import",
        description="Bulk supply-list import into the content API",
    )
    p.add_argument("spreadsheet", type=Path, help="Spreadsheet with the supply lists (.xlsx, .xls or .csv)")
    p.add_argument("--archive", type=Path, help="ZIP archive with the list PDFs")
    p.add_argument("--manifest", type=Path, help="Spreadsheet mapping courses to PDF names inside --archive")
    p.add_argument("--pdf", type=Path, action="append", default=[], help="PDF to match by file name (repeatable)")
    p.add_argument("--config", type=Path, help=f"Config file (default: {DEFAULT_CONFIG_PATH} when present)")
    p.add_argument("--report", type=Path, help="Write the rows of failed groups to this .xlsx")
    p.add_argument("--dry-run", action="store_true", help="Use an in-memory store; nothing is written remotely")
    p.add_argument("--inspect-data", action="store_true", help="Print columns & first resolved rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _jsonable(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


def _inspect_data(spreadsheet: Path) -> int:
    try:
        sheet = read_sheet(spreadsheet)
    except SpreadsheetError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    compact = is_compact_layout(sheet.rows[0] if sheet.rows else None)
    print(f"FILE: {spreadsheet.name} sheet={sheet.sheet_name} rows={len(sheet.rows)}")
    print(f"  layout={'compact' if compact else 'full'} cols={sheet.columns}")
    print("  sample_rows=", [{k: _jsonable(v) for k, v in r.items()} for r in sheet.rows[:3]])
    for row in resolve_rows(sheet.rows[:3]):
        missing = row.missing_required()
        print(
            f"  row {row.row_number}: school={row.school_identifier!r} course={row.course_name!r} "
            f"subject={row.subject_name!r} item={row.item_name!r} url={row.list_url!r}"
            + (f" MISSING={missing}" if missing else "")
        )
    return EXIT_SUCCESS_ALL


def _open_store(cfg: ImportConfig, dry_run: bool) -> Any:
    if dry_run:
        return InMemoryContentStore()
    if not cfg.storage.base_url:
        raise ConfigError("storage.base_url is not set (config or CONTENT_API_URL)")
    return HttpContentStore(cfg.storage)


def _install_cancel_handler(cancel: threading.Event) -> Any:
    """First Ctrl-C stops after the current group; the second one aborts."""
    logger = setup_logging()

    def handler(signum: int, frame: Any) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        logger.warning("cancellation requested; finishing the current group")
        cancel.set()

    return signal.signal(signal.SIGINT, handler)


def main(argv: list[str] | None = None) -> int:
    # None only: an explicit [] must not pick up pytest's own arguments
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(args.spreadsheet)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config, required=args.config is not None)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not args.spreadsheet.exists():
        logger.error(f"spreadsheet not found: {args.spreadsheet}")
        return EXIT_FATAL
    for extra in [args.archive, args.manifest, *args.pdf]:
        if extra is not None and not extra.exists():
            logger.error(f"file not found: {extra}")
            return EXIT_FATAL

    try:
        store = _open_store(cfg, args.dry_run)
    except (ConfigError, ValueError) as e:
        logger.error(f"storage: {e}")
        return EXIT_FATAL

    logger.info(f"Importing {args.spreadsheet} mode={'dry-run' if args.dry_run else 'live'}")
    error_log = ErrorLogBuffer(cfg.logs_directory)
    cancel = threading.Event()
    previous_handler = _install_cancel_handler(cancel)
    downloader = HttpDocumentDownloader(timeout=cfg.storage.upload_timeout)
    try:
        report = process_all(
            cfg,
            store,
            args.spreadsheet,
            archive=args.archive.read_bytes() if args.archive else None,
            manifest=args.manifest,
            pdfs=args.pdf,
            downloader=downloader,
            show_progress=True,
            error_log=error_log,
            cancel_event=cancel,
        )
    except (SpreadsheetError, ArchiveError) as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except StorageError as e:
        logger.error(f"storage: {e}")
        return EXIT_FATAL
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        downloader.close()
        if isinstance(store, HttpContentStore):
            store.close()

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log: {log_path}")
    for name in report.unmatched_documents:
        logger.warning(f"unmatched document: {name}")
    if args.report is not None:
        export_failed_rows(report, args.report)

    summary_line = render_summary_line(report)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    if report.cancelled or report.aborted_reason:
        return EXIT_FATAL
    if report.failure_count > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
