from __future__ import annotations

import logging
import lzma
import re
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Type

import rarfile

from .errors import TorrentExtractorError
from .utils import is_within_directory

LOGGER = logging.getLogger(__name__)

MULTIPART_RAR_PATTERN = re.compile(r"\.part(\d+)\.rar$", re.IGNORECASE)


class ArchiveReadError(TorrentExtractorError):
    """Raised when an archive cannot be opened or one of its entries cannot be written."""


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    path: str
    is_directory: bool
    info: Any = field(default=None, compare=False, repr=False)


class ArchiveReader:
    """Reads a zipfile-style archive and writes its entries below a directory.

    Subclasses provide the library specific ``_open`` and the exception types
    that library raises.
    """

    errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            self._archive = self._open(path)
        except self.errors as exc:
            raise ArchiveReadError(f"Unable to open archive {path}: {exc}") from exc

    def _open(self, path: Path) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError

    def entries(self) -> Iterator[ArchiveEntry]:
        try:
            infos = self._archive.infolist()
        except self.errors as exc:
            raise ArchiveReadError(f"Unable to list archive {self.path}: {exc}") from exc
        for info in infos:
            yield ArchiveEntry(path=info.filename, is_directory=info.is_dir(), info=info)

    def extract(self, entry: ArchiveEntry, destination: Path) -> Path:
        """Write ``entry`` below ``destination`` keeping its relative path, replacing existing files."""
        target = destination / entry.path
        if not is_within_directory(target, destination):
            raise ArchiveReadError(f"Entry {entry.path} escapes {destination}")
        try:
            written = self._archive.extract(entry.info, path=str(destination))
        except (OSError, *self.errors) as exc:
            raise ArchiveReadError(f"Unable to extract {entry.path} from {self.path}: {exc}") from exc
        return Path(written) if written else target

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ZipArchiveReader(ArchiveReader):
    # Damaged members surface as decompressor errors rather than BadZipFile.
    errors = (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        zlib.error,
        lzma.LZMAError,
        EOFError,
        RuntimeError,
        ValueError,
    )

    def _open(self, path: Path) -> zipfile.ZipFile:
        return zipfile.ZipFile(path)


class RarArchiveReader(ArchiveReader):
    errors = (rarfile.Error,)

    def _open(self, path: Path) -> rarfile.RarFile:
        return rarfile.RarFile(str(path))


ARCHIVE_READERS: Dict[str, Type[ArchiveReader]] = {
    ".rar": RarArchiveReader,
    ".zip": ZipArchiveReader,
}


def is_secondary_volume(path: Path) -> bool:
    """True for ``name.part02.rar`` and later parts, which the first part extracts."""
    match = MULTIPART_RAR_PATTERN.search(path.name)
    return bool(match) and int(match.group(1)) > 1


def open_archive(
    path: Path,
    readers: Optional[Dict[str, Type[ArchiveReader]]] = None,
) -> ArchiveReader:
    registry = ARCHIVE_READERS if readers is None else readers
    reader_type = registry.get(path.suffix.lower())
    if reader_type is None:
        raise ArchiveReadError(f"Unsupported archive type '{path.suffix}' for {path}")
    LOGGER.debug("Opening %s with %s", path, reader_type.__name__)
    try:
        return reader_type(path)
    except OSError as exc:
        raise ArchiveReadError(f"Unable to open archive {path}: {exc}") from exc


__all__ = [
    "ARCHIVE_READERS",
    "ArchiveEntry",
    "ArchiveReadError",
    "ArchiveReader",
    "RarArchiveReader",
    "ZipArchiveReader",
    "is_secondary_volume",
    "open_archive",
]
