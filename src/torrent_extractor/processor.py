from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Type

from .archives import ArchiveReader
from .classifier import classify_release
from .config import AppConfig
from .extractor import extract_and_move
from .filters import evaluate_filters
from .models import ArrivalOutcome, ArrivalStage
from .stability import await_stable, settle
from .utils import format_inline_log, format_log

LOGGER = logging.getLogger(__name__)


class ArrivalProcessor:
    """Runs a single arrival through filter, stability wait, classification and extraction.

    Errors are not handled here: ``ArrivalNotFound``, ``ArrivalCancelled`` and
    ``ExtractionFailure`` propagate to the dispatcher that scheduled the work.
    """

    def __init__(
        self,
        config: AppConfig,
        shutdown_event: Optional[threading.Event] = None,
        *,
        readers: Optional[Dict[str, Type[ArchiveReader]]] = None,
    ) -> None:
        self.config = config
        self.shutdown_event = shutdown_event or threading.Event()
        self.readers = readers

    def process(self, source_path: Path) -> ArrivalOutcome:
        paths = self.config.paths
        core = self.config.core
        outcome = ArrivalOutcome(path=source_path)

        decision = evaluate_filters(str(source_path), paths.whitelisted_words, paths.blacklisted_words)
        if not decision.accepted:
            outcome.advance(ArrivalStage.REJECTED)
            outcome.reason = decision.reason
            if decision.reason == "blacklisted":
                event = "Blacklisted Word Found, Skipping"
            else:
                event = "No Whitelisted Word Found, Skipping"
            LOGGER.info(format_log(event, {"Path": source_path, "Word": decision.word}))
            return outcome

        outcome.advance(ArrivalStage.FILTERED)
        outcome.advance(ArrivalStage.AWAITING_STABILITY)
        settle(source_path, core.file_copy_delay_seconds, self.shutdown_event)
        size = await_stable(source_path, core.file_compare_interval, self.shutdown_event)

        outcome.advance(ArrivalStage.CLASSIFYING)
        classification = classify_release(source_path, paths)
        outcome.classification = classification
        LOGGER.info(
            format_log(
                "Classified Arrival",
                {
                    "Path": source_path,
                    "Type": "tv" if classification.is_tv_show else "movie",
                    "Show": classification.show_name or None,
                    "Season": classification.season or None,
                    "Resolution": classification.resolution or "default",
                    "Destination": classification.destination_dir,
                    "Size": size,
                },
            )
        )

        outcome.advance(ArrivalStage.EXTRACTING)
        report = extract_and_move(
            source_path,
            Path(classification.destination_dir),
            readers=self.readers,
        )
        outcome.report = report
        outcome.advance(ArrivalStage.DONE)
        LOGGER.info(
            format_inline_log(
                "Arrival Processed",
                {
                    "Source": source_path.name,
                    "Copied": len(report.copied),
                    "Extracted": len(report.extracted),
                    "Written": report.written,
                    "Unsupported": len(report.unsupported),
                },
            )
        )
        return outcome


__all__ = ["ArrivalProcessor"]
