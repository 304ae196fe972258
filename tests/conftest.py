from __future__ import annotations

from pathlib import Path

import pytest

from torrent_extractor.config import PathSettings, ResolutionPaths


def make_paths(
    *,
    source: str = "/src",
    movies: ResolutionPaths | None = None,
    tv_shows: ResolutionPaths | None = None,
    whitelist: tuple[str, ...] = (),
    blacklist: tuple[str, ...] = (),
) -> PathSettings:
    return PathSettings(
        source=Path(source),
        movies=movies or ResolutionPaths(default="/movies"),
        tv_shows=tv_shows or ResolutionPaths(default="/tv"),
        whitelisted_words=whitelist,
        blacklisted_words=blacklist,
    )


@pytest.fixture
def path_settings() -> PathSettings:
    return make_paths()
