from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .models import ExtractionReport
    from .validation import ValidationIssue


class TorrentExtractorError(Exception):
    """Base class for all errors raised by the extractor."""


class ConfigInvalid(TorrentExtractorError, ValueError):
    """Raised when the configuration is missing required values or is malformed."""

    def __init__(self, message: str, issues: Optional[Sequence["ValidationIssue"]] = None) -> None:
        super().__init__(message)
        self.issues = list(issues or [])


class ArrivalNotFound(TorrentExtractorError):
    """Raised when an arrival disappears while it is being processed.

    Usually the downloader removed a stale entry with the same name right after
    the watcher saw it being created, so callers treat this as a skip.
    """

    def __init__(self, path) -> None:
        super().__init__(f"{path} no longer exists")
        self.path = path


class ArrivalCancelled(TorrentExtractorError):
    """Raised when shutdown is requested while an arrival is still waiting."""


class ExtractionFailure(TorrentExtractorError):
    """Raised when copying or extracting an arrival failed."""

    def __init__(self, message: str, report: Optional["ExtractionReport"] = None) -> None:
        super().__init__(message)
        self.report = report


class FatalWatchError(TorrentExtractorError):
    """Raised when the directory watch itself can no longer run."""


__all__ = [
    "ArrivalCancelled",
    "ArrivalNotFound",
    "ConfigInvalid",
    "ExtractionFailure",
    "FatalWatchError",
    "TorrentExtractorError",
]
