from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from functools import reduce
from typing import List, Optional, Tuple

from .config import PathSettings
from .models import ClassificationResult

LOGGER = logging.getLogger(__name__)

SEASON_PREFIXES = ("season", "s0", "s1", "s2", "s3", "s4", "s5")

# Applied in order; each keeps the first non-empty segment of the previous result.
SEASON_DELIMITERS = ("Seasons", "Season", "E", "e", "EP", "ep")

RESOLUTION_TOKENS = {
    "UHD": "2160p",
    "2160P": "2160p",
    "4K": "2160p",
    "1080P": "1080p",
    "720P": "720p",
}


def tokenize_release_name(name: str) -> List[str]:
    """Split a release name on dots (spaces count as dots), dropping empty parts."""
    return [part for part in name.replace(" ", ".").split(".") if part]


def is_season_token(token: str) -> bool:
    return token.lower().startswith(SEASON_PREFIXES)


def parse_season(token: str) -> str:
    """Reduce a season marker token to its season part.

    ``S01E10`` becomes ``S01``; a bare ``Seasons`` token (as in
    ``Seasons.1-8``) becomes an empty string.
    """
    season = token
    for delimiter in SEASON_DELIMITERS:
        season = next((segment for segment in season.split(delimiter) if segment), "")
    return season


def resolution_tier(token: str) -> Optional[str]:
    return RESOLUTION_TOKENS.get(token.upper())


def _join_destination(base: str, *components: str) -> str:
    parts = [base.rstrip("/")]
    parts.extend(component for component in components if component)
    return "/".join(parts)


@dataclass(frozen=True, slots=True)
class ClassificationState:
    """Carry-state of the single left-to-right pass over release tokens."""

    destination_dir: str
    is_tv_show: bool = False
    show_name: str = ""
    season: str = ""
    resolution: Optional[str] = None
    seen_tokens: Tuple[str, ...] = ()

    @property
    def resolution_seen(self) -> bool:
        return self.resolution is not None

    @classmethod
    def initial(cls, paths: PathSettings) -> "ClassificationState":
        return cls(destination_dir=paths.movies.default)


def _destination_for(state: ClassificationState, paths: PathSettings, tier: Optional[str]) -> str:
    if state.is_tv_show:
        return _join_destination(paths.tv_shows.for_tier(tier), state.show_name, state.season)
    return paths.movies.for_tier(tier)


def advance(state: ClassificationState, token: str, paths: PathSettings) -> ClassificationState:
    """Fold one token into the classification state."""
    if is_season_token(token):
        state = replace(
            state,
            is_tv_show=True,
            show_name=" ".join(state.seen_tokens),
            season=parse_season(token),
        )

    tier = resolution_tier(token)
    if tier is not None:
        state = replace(state, destination_dir=_destination_for(state, paths, tier), resolution=tier)
    elif not state.resolution_seen:
        state = replace(state, destination_dir=_destination_for(state, paths, None))

    return replace(state, seen_tokens=state.seen_tokens + (token,))


def classify_release(source_path: os.PathLike[str] | str, paths: PathSettings) -> ClassificationResult:
    name = os.path.basename(os.fspath(source_path).rstrip("/"))
    tokens = tokenize_release_name(name)
    state = reduce(lambda current, token: advance(current, token, paths), tokens, ClassificationState.initial(paths))

    destination = state.destination_dir.rstrip("/") or state.destination_dir
    result = ClassificationResult(
        is_tv_show=state.is_tv_show,
        show_name=state.show_name if state.is_tv_show else "",
        season=state.season if state.is_tv_show else "",
        resolution=state.resolution,
        destination_dir=destination,
    )
    LOGGER.debug(
        "Classified %s as %s (show=%r, season=%r, resolution=%s) -> %s",
        name,
        "tv" if result.is_tv_show else "movie",
        result.show_name,
        result.season,
        result.resolution or "default",
        result.destination_dir,
    )
    return result


def generate_destination_path(source_path: os.PathLike[str] | str, paths: PathSettings) -> str:
    """Return the directory an arrival should be copied or extracted into."""
    return classify_release(source_path, paths).destination_dir


__all__ = [
    "ClassificationState",
    "advance",
    "classify_release",
    "generate_destination_path",
    "is_season_token",
    "parse_season",
    "resolution_tier",
    "tokenize_release_name",
]
