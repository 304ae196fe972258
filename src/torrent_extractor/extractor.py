from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Type

from .archives import ARCHIVE_READERS, ArchiveReadError, ArchiveReader, is_secondary_volume, open_archive
from .errors import ArrivalNotFound, ExtractionFailure
from .models import ExtractionReport
from .utils import ensure_directory, format_log

LOGGER = logging.getLogger(__name__)

MEDIA_EXTENSIONS = frozenset({".mkv", ".avi", ".mp4"})


def _children(directory: Path) -> List[Path]:
    entries = sorted(directory.iterdir(), key=lambda path: path.name)
    directories = [entry for entry in entries if entry.is_dir()]
    files = [entry for entry in entries if not entry.is_dir()]
    return directories + files


def copy_media_file(source: Path, destination_dir: Path, report: ExtractionReport) -> None:
    destination = destination_dir / source.name
    LOGGER.info(format_log("Copying File", {"Source": source, "Destination": destination}))
    try:
        shutil.copy2(source, destination)
    except OSError as exc:
        LOGGER.error(format_log("Failed To Copy File", {"Source": source, "Error": exc}))
        report.register_failure(f"{source}: {exc}")
        return
    report.register_copied(destination)
    LOGGER.info(format_log("Done Copying File", {"Source": source}))


def extract_archive(
    archive_path: Path,
    destination_dir: Path,
    report: ExtractionReport,
    readers: Optional[Dict[str, Type[ArchiveReader]]] = None,
) -> None:
    """Write every file entry of an archive below ``destination_dir``.

    Directory entries are not extracted on their own. A failing entry is
    recorded and the remaining entries are still extracted.
    """
    try:
        reader = open_archive(archive_path, readers)
    except ArchiveReadError as exc:
        LOGGER.error(format_log("Failed To Open Archive", {"Archive": archive_path, "Error": exc}))
        report.register_failure(f"{archive_path}: {exc}")
        return

    with reader:
        try:
            entries = list(reader.entries())
        except ArchiveReadError as exc:
            LOGGER.error(format_log("Failed To Read Archive", {"Archive": archive_path, "Error": exc}))
            report.register_failure(f"{archive_path}: {exc}")
            return

        for entry in entries:
            if entry.is_directory:
                LOGGER.warning(
                    format_log(
                        "Extracting Sub-Directory Is Not Supported",
                        {"Archive": archive_path, "Entry": entry.path},
                    )
                )
                report.skipped_directories.append(entry.path)
                continue

            LOGGER.info(
                format_log(
                    "Extracting File",
                    {"Archive": archive_path.name, "Entry": entry.path, "Destination": destination_dir},
                )
            )
            try:
                written = reader.extract(entry, destination_dir)
            except ArchiveReadError as exc:
                LOGGER.error(
                    format_log(
                        "Failed To Extract File",
                        {"Archive": archive_path, "Entry": entry.path, "Error": exc},
                    )
                )
                report.register_failure(f"{archive_path}!{entry.path}: {exc}")
                continue
            report.register_extracted(written)
            LOGGER.info(format_log("Done Extracting File", {"Entry": entry.path}))


def extract_and_move(
    source_path: Path,
    destination_dir: Path,
    *,
    readers: Optional[Dict[str, Type[ArchiveReader]]] = None,
) -> ExtractionReport:
    """Copy media files and extract archives found at ``source_path`` into ``destination_dir``.

    Directories are walked completely and everything they contain lands
    directly in ``destination_dir``. Raises :class:`ArrivalNotFound` when the
    source vanished, and :class:`ExtractionFailure` once the walk is over if
    any item failed.
    """
    registry = ARCHIVE_READERS if readers is None else readers
    report = ExtractionReport()

    LOGGER.info(format_log("Ensuring Directory Exists", {"Path": destination_dir}))
    try:
        ensure_directory(destination_dir)
    except OSError as exc:
        raise ExtractionFailure(f"Unable to create {destination_dir}: {exc}", report) from exc

    # A removal by the downloader can show up as a creation right before the entry disappears.
    if not source_path.exists():
        raise ArrivalNotFound(source_path)

    pending: List[Path] = [source_path]
    while pending:
        current = pending.pop()

        if current.is_dir():
            try:
                children = _children(current)
            except OSError as exc:
                LOGGER.error(format_log("Failed To List Directory", {"Path": current, "Error": exc}))
                report.register_failure(f"{current}: {exc}")
                continue
            pending.extend(reversed(children))
            continue

        suffix = current.suffix.lower()
        if suffix in MEDIA_EXTENSIONS:
            copy_media_file(current, destination_dir, report)
        elif suffix in registry:
            if is_secondary_volume(current):
                LOGGER.debug(format_log("Skipping Secondary Volume", {"Path": current}))
                report.skipped_volumes.append(current)
                continue
            extract_archive(current, destination_dir, report, registry)
        else:
            LOGGER.debug(format_log("File Not Supported", {"Path": current}))
            report.unsupported.append(current)

    if report.has_failures:
        raise ExtractionFailure(
            f"{len(report.failures)} item(s) failed while processing {source_path}",
            report,
        )
    return report


__all__ = ["MEDIA_EXTENSIONS", "copy_media_file", "extract_and_move", "extract_archive"]
