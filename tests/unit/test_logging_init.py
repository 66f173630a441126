from __future__ import annotations

import logging

from supplylist_import.logging.init import SUMMARY_LEVEL, get_logger, log_summary, setup_logging


def test_labels(capsys) -> None:
    logger = setup_logging()
    child = logging.getLogger("supplylist_import.services.orchestrator")
    logger.info("starting")
    child.warning("careful")
    child.error("broken")
    log_summary("groups=1 success=1")
    child.debug("hidden")
    out = capsys.readouterr().out.splitlines()
    assert out == ["INFO starting", "WARN careful", "ERROR broken", "SUMMARY groups=1 success=1"]


def test_setup_is_idempotent() -> None:
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(first.handlers) == 1
    assert get_logger() is first
    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"


def test_debug_mode(capsys) -> None:
    setup_logging()
    logger = setup_logging(debug=True)
    logger.debug("details")
    assert "DEBUG details" in capsys.readouterr().out
