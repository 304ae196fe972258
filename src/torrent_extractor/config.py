from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigInvalid
from .utils import load_yaml_file
from .validation import validate_config_data

RESOLUTION_TIERS = ("2160p", "1080p", "720p")


@dataclass(frozen=True, slots=True)
class ResolutionPaths:
    """Destination prefixes for one media type, keyed by resolution tier."""

    default: str
    res2160p: str = ""
    res1080p: str = ""
    res720p: str = ""

    def _by_tier(self) -> Dict[str, str]:
        return dict(zip(RESOLUTION_TIERS, (self.res2160p, self.res1080p, self.res720p)))

    def for_tier(self, tier: Optional[str]) -> str:
        """Return the path configured for ``tier``, falling back to the default path."""
        candidate = self._by_tier().get(tier or "", "")
        if candidate and candidate.strip():
            return candidate
        return self.default

    def configured_tiers(self) -> Dict[str, str]:
        return {tier: value for tier, value in self._by_tier().items() if value and value.strip()}


@dataclass(frozen=True, slots=True)
class PathSettings:
    source: Path
    movies: ResolutionPaths
    tv_shows: ResolutionPaths
    whitelisted_words: Tuple[str, ...] = ()
    blacklisted_words: Tuple[str, ...] = ()

    def describe(self) -> Dict[str, str]:
        """Flatten the configured paths for startup logging, omitting unset tiers."""
        info: Dict[str, str] = {"Source": str(self.source)}
        for label, paths in (("Movies", self.movies), ("TvShows", self.tv_shows)):
            for tier, value in paths.configured_tiers().items():
                info[f"{label} {tier}"] = value
            info[f"{label} default"] = paths.default
        if self.whitelisted_words:
            info["Whitelist"] = ", ".join(self.whitelisted_words)
        if self.blacklisted_words:
            info["Blacklist"] = ", ".join(self.blacklisted_words)
        return info


@dataclass(frozen=True, slots=True)
class CoreSettings:
    file_compare_interval: int = 15
    file_copy_delay_seconds: float = 0.0
    max_workers: int = 4


@dataclass(frozen=True, slots=True)
class AppConfig:
    paths: PathSettings
    core: CoreSettings = field(default_factory=CoreSettings)


def _ensure_word_list(value: Any, *, field_name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ConfigInvalid(f"'{field_name}' must be provided as a list of strings")
    result: List[str] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise ConfigInvalid(f"'{field_name}[{index}]' must be a string")
        cleaned = entry.strip()
        if cleaned:
            result.append(cleaned)
    return tuple(result)


def _optional_path(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _build_resolution_paths(data: Dict[str, Any], *, section: str) -> ResolutionPaths:
    default = _optional_path(data.get("default"))
    if not default:
        raise ConfigInvalid(f"A valid paths.{section}.default is required!")
    return ResolutionPaths(
        default=default,
        res2160p=_optional_path(data.get("res2160p")),
        res1080p=_optional_path(data.get("res1080p")),
        res720p=_optional_path(data.get("res720p")),
    )


def _build_core_settings(data: Optional[Dict[str, Any]]) -> CoreSettings:
    if not data:
        return CoreSettings()

    interval = int(data.get("file_compare_interval", 15))
    if interval < 1:
        raise ConfigInvalid("A valid core.file_compare_interval is required!")

    delay = float(data.get("file_copy_delay_seconds", 0))
    if delay < 0:
        raise ConfigInvalid("'core.file_copy_delay_seconds' must be greater than or equal to 0")

    max_workers = int(data.get("max_workers", 4))
    if max_workers < 1:
        raise ConfigInvalid("'core.max_workers' must be at least 1")

    return CoreSettings(
        file_compare_interval=interval,
        file_copy_delay_seconds=delay,
        max_workers=max_workers,
    )


def _build_path_settings(data: Dict[str, Any]) -> PathSettings:
    source = _optional_path(data.get("source"))
    if len(source) < 3:
        raise ConfigInvalid("A valid paths.source is required!")

    return PathSettings(
        source=Path(source).expanduser(),
        movies=_build_resolution_paths(data.get("movies") or {}, section="movies"),
        tv_shows=_build_resolution_paths(data.get("tv_shows") or {}, section="tv_shows"),
        whitelisted_words=_ensure_word_list(
            data.get("whitelisted_words"), field_name="paths.whitelisted_words"
        ),
        blacklisted_words=_ensure_word_list(
            data.get("blacklisted_words"), field_name="paths.blacklisted_words"
        ),
    )


def build_config(data: Dict[str, Any]) -> AppConfig:
    report = validate_config_data(data)
    if not report.is_valid:
        details = "; ".join(f"{issue.path}: {issue.message}" for issue in report.errors)
        raise ConfigInvalid(f"Invalid configuration: {details}", report.errors)

    return AppConfig(
        paths=_build_path_settings(data["paths"]),
        core=_build_core_settings(data.get("core")),
    )


def load_config(path: Path) -> AppConfig:
    try:
        data = load_yaml_file(path)
    except OSError as exc:
        raise ConfigInvalid(f"Unable to read configuration {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigInvalid(f"Configuration {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigInvalid(f"Configuration {path} must contain a mapping at the top level")
    return build_config(data)


__all__ = [
    "AppConfig",
    "CoreSettings",
    "PathSettings",
    "RESOLUTION_TIERS",
    "ResolutionPaths",
    "build_config",
    "load_config",
]
