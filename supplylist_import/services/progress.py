from __future__ import annotations

import sys
from typing import Any, Protocol

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.import_result import ImportResult

"""Progress reporting for import jobs.

The orchestrator talks to a ProgressSink: a percentage after every group and
each group's ImportResult. GroupProgressTracker renders them with a single
tqdm bar, only when stdout is a TTY, so CI logs stay free of ANSI control
sequences.
"""

__all__ = [
    "ProgressSink",
    "NullProgressSink",
    "GroupProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ProgressSink(Protocol):
    def on_progress(self, percent: int) -> None:
        ...

    def on_group_result(self, result: ImportResult) -> None:
        ...


class NullProgressSink:
    """Discards every notification."""

    def on_progress(self, percent: int) -> None:
        pass

    def on_group_result(self, result: ImportResult) -> None:
        pass


class GroupProgressTracker:
    """tqdm-backed progress sink counting processed groups.

    In non-TTY environments the bar is disabled; the success/failure counters
    are still kept so callers can read them.
    """

    def __init__(self, total_groups: int, *, description: str = "Importing groups") -> None:
        self.total_groups = total_groups
        self.description = description
        self.percent = 0
        self.success = 0
        self.failed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_groups,
                desc=description,
                unit="group",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def on_progress(self, percent: int) -> None:
        self.percent = percent

    def on_group_result(self, result: ImportResult) -> None:
        if result.success:
            self.success += 1
        else:
            self.failed += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(success=self.success, failed=self.failed)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> GroupProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
