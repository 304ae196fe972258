from __future__ import annotations

import logging
import os
import stat
import threading
from pathlib import Path
from typing import Callable, List

from .errors import ArrivalCancelled, ArrivalNotFound
from .utils import format_log

LOGGER = logging.getLogger(__name__)

INITIAL_SIZE = -1


def measure_size(path: Path) -> int:
    """Return the byte size of a file, or the summed size of every file below a directory."""
    try:
        root_stat = path.stat()
    except FileNotFoundError as exc:
        raise ArrivalNotFound(path) from exc

    if not stat.S_ISDIR(root_stat.st_mode):
        return root_stat.st_size

    total = 0
    pending: List[str] = [os.fspath(path)]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(entry.path)
                        elif entry.is_file():
                            total += entry.stat().st_size
                    except FileNotFoundError:
                        # Removed between listing and stat; the next reading will differ anyway.
                        continue
        except FileNotFoundError:
            if current == os.fspath(path):
                raise ArrivalNotFound(path)
    return total


def _wait(cancel_event: threading.Event, seconds: float) -> None:
    if cancel_event.wait(seconds):
        raise ArrivalCancelled("Shutdown requested while waiting")


def settle(path: Path, delay: float, cancel_event: threading.Event) -> None:
    """Sleep for a fixed delay after an arrival appears; ``0`` disables the delay."""
    if cancel_event.is_set():
        raise ArrivalCancelled("Shutdown requested before settling")
    if delay <= 0:
        return
    LOGGER.info(
        format_log(
            "Waiting For Arrival To Settle",
            {"Path": path, "Delay": f"{delay:g}s"},
        )
    )
    _wait(cancel_event, delay)


def await_stable(
    path: Path,
    poll_interval: float,
    cancel_event: threading.Event,
    *,
    measure: Callable[[Path], int] = measure_size,
) -> int:
    """Block until two consecutive size readings of ``path`` are equal.

    The first reading is always followed by one wait, because the previous
    reading starts at ``-1``. Returns the stable size.
    """
    previous = INITIAL_SIZE
    while True:
        if cancel_event.is_set():
            raise ArrivalCancelled("Shutdown requested while awaiting a stable size")

        current = measure(path)
        if current == previous:
            LOGGER.debug(format_log("Arrival Stable", {"Path": path, "Size": current}))
            return current

        if previous != INITIAL_SIZE:
            LOGGER.info(
                format_log(
                    "Arrival Still Being Written",
                    {
                        "Path": path,
                        "Size": current,
                        "Previous": previous,
                        "Next Check": f"{poll_interval:g}s",
                    },
                )
            )
        else:
            LOGGER.debug(
                format_log(
                    "Measuring Arrival",
                    {"Path": path, "Size": current, "Next Check": f"{poll_interval:g}s"},
                )
            )
        _wait(cancel_event, poll_interval)
        previous = current


__all__ = ["INITIAL_SIZE", "await_stable", "measure_size", "settle"]
