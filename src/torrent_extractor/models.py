from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    is_tv_show: bool
    show_name: str
    season: str
    resolution: Optional[str]
    destination_dir: str


class ArrivalStage(str, enum.Enum):
    DETECTED = "detected"
    REJECTED = "rejected"
    FILTERED = "filtered"
    AWAITING_STABILITY = "awaiting-stability"
    CLASSIFYING = "classifying"
    EXTRACTING = "extracting"
    DONE = "done"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(slots=True)
class ExtractionReport:
    copied: List[Path] = field(default_factory=list)
    extracted: List[Path] = field(default_factory=list)
    skipped_directories: List[str] = field(default_factory=list)
    skipped_volumes: List[Path] = field(default_factory=list)
    unsupported: List[Path] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    def register_copied(self, destination: Path) -> None:
        self.copied.append(destination)

    def register_extracted(self, destination: Path) -> None:
        self.extracted.append(destination)

    def register_failure(self, detail: str) -> None:
        self.failures.append(detail)

    @property
    def written(self) -> int:
        return len(self.copied) + len(self.extracted)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


@dataclass(slots=True)
class ArrivalOutcome:
    path: Path
    stage: ArrivalStage = ArrivalStage.DETECTED
    classification: Optional[ClassificationResult] = None
    report: Optional[ExtractionReport] = None
    reason: Optional[str] = None
    history: List[ArrivalStage] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.stage)

    def advance(self, stage: ArrivalStage) -> None:
        self.stage = stage
        self.history.append(stage)
