from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Set

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config import AppConfig
from .errors import ArrivalCancelled, ArrivalNotFound, ExtractionFailure, FatalWatchError
from .models import ArrivalOutcome, ArrivalStage
from .processor import ArrivalProcessor
from .utils import canonical_path, format_log

LOGGER = logging.getLogger(__name__)


class InFlightPaths:
    """Paths whose arrival is currently being processed."""

    def __init__(self) -> None:
        self._paths: Set[str] = set()
        self._lock = threading.Lock()

    def try_add(self, key: str) -> bool:
        """Add ``key`` unless it is already present; returns whether it was added."""
        with self._lock:
            if key in self._paths:
                return False
            self._paths.add(key)
            return True

    def discard(self, key: str) -> None:
        with self._lock:
            self._paths.discard(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)


class ArrivalDispatcher:
    """Schedules one unit of work per arrival and never runs the same path twice at once."""

    def __init__(
        self,
        processor: ArrivalProcessor,
        *,
        max_workers: int = 4,
        on_complete: Optional[Callable[[ArrivalOutcome], None]] = None,
    ) -> None:
        self._processor = processor
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="arrival")
        self._in_flight = InFlightPaths()
        self._on_complete = on_complete

    @property
    def shutdown_event(self) -> threading.Event:
        return self._processor.shutdown_event

    def submit(self, path: Path) -> Optional[Future]:
        if self.shutdown_event.is_set():
            LOGGER.debug(format_log("Ignoring Arrival During Shutdown", {"Path": path}))
            return None

        key = canonical_path(path)
        if not self._in_flight.try_add(key):
            LOGGER.debug(format_log("Arrival Already In Progress", {"Path": path}))
            return None

        LOGGER.info(format_log("Arrival Detected", {"Path": path}))
        try:
            return self._executor.submit(self._run, Path(path), key)
        except RuntimeError:
            # Executor already shut down.
            self._in_flight.discard(key)
            return None

    def _run(self, path: Path, key: str) -> ArrivalOutcome:
        try:
            outcome = self._processor.process(path)
        except ArrivalNotFound as exc:
            LOGGER.info(
                format_log(
                    "Arrival Disappeared, Skipping",
                    {"Path": path, "Detail": "entry was removed rather than added"},
                )
            )
            outcome = ArrivalOutcome(path=path, stage=ArrivalStage.SKIPPED, reason=str(exc))
        except ArrivalCancelled as exc:
            LOGGER.info(format_log("Arrival Abandoned", {"Path": path, "Reason": exc}))
            outcome = ArrivalOutcome(path=path, stage=ArrivalStage.CANCELLED, reason=str(exc))
        except ExtractionFailure as exc:
            LOGGER.error(format_log("Failed To Process Arrival", {"Path": path, "Error": exc}))
            outcome = ArrivalOutcome(path=path, stage=ArrivalStage.FAILED, report=exc.report, reason=str(exc))
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception(format_log("An Error Occurred When Processing Arrival", {"Path": path}))
            outcome = ArrivalOutcome(path=path, stage=ArrivalStage.FAILED, reason=str(exc))
        finally:
            self._in_flight.discard(key)

        if self._on_complete is not None:
            try:
                self._on_complete(outcome)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Arrival completion callback failed for %s", path)
        return outcome

    def is_in_flight(self, path: Path) -> bool:
        return canonical_path(path) in self._in_flight

    def close(self, wait: bool = True) -> None:
        """Stop accepting arrivals; running extractions are allowed to finish when ``wait`` is set."""
        self.shutdown_event.set()
        self._executor.shutdown(wait=wait)


class _ArrivalHandler(FileSystemEventHandler):
    def __init__(self, dispatcher: ArrivalDispatcher, root: Path) -> None:
        self._dispatcher = dispatcher
        self._root = canonical_path(root)

    def on_created(self, event) -> None:  # type: ignore[override]
        self._dispatch(os.fsdecode(event.src_path))

    def on_moved(self, event) -> None:  # type: ignore[override]
        destination = os.fsdecode(event.dest_path)
        if canonical_path(os.path.dirname(destination)) != self._root:
            return
        self._dispatch(destination)

    def _dispatch(self, raw_path: str) -> None:
        self._dispatcher.submit(Path(raw_path))


class ArrivalWatcher:
    """Watches the source root for new entries and hands them to the dispatcher."""

    def __init__(
        self,
        config: AppConfig,
        dispatcher: ArrivalDispatcher,
        *,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self._source = config.paths.source
        self._dispatcher = dispatcher
        self._observer_factory = observer_factory

    def run_forever(self, stop_event: threading.Event, check_interval: float = 1.0) -> None:
        """Watch until ``stop_event`` is set.

        Raises :class:`FatalWatchError` when the watch cannot start or the
        source directory becomes unavailable.
        """
        if not self._source.is_dir():
            raise FatalWatchError(f"Source directory {self._source} does not exist or is not a directory")

        observer = self._observer_factory()
        handler = _ArrivalHandler(self._dispatcher, self._source)
        try:
            observer.schedule(handler, str(self._source), recursive=False)
            observer.start()
        except OSError as exc:
            raise FatalWatchError(f"Unable to watch {self._source}: {exc}") from exc
        LOGGER.info(format_log("Watching For Arrivals", {"Source": self._source}))

        try:
            while not stop_event.wait(check_interval):
                if not observer.is_alive():
                    raise FatalWatchError(f"Filesystem observer for {self._source} stopped unexpectedly")
                if not self._source.is_dir():
                    raise FatalWatchError(f"Source directory {self._source} is no longer accessible")
        finally:
            LOGGER.info(format_log("Stopping Watcher", {"Source": self._source}))
            stop_event.set()
            observer.stop()
            observer.join(timeout=5)
            self._dispatcher.close(wait=True)


__all__ = ["ArrivalDispatcher", "ArrivalWatcher", "InFlightPaths"]
