from __future__ import annotations

import pytest

from conftest import make_paths
from torrent_extractor.classifier import (
    RESOLUTION_TOKENS,
    ClassificationState,
    advance,
    classify_release,
    generate_destination_path,
    parse_season,
    resolution_tier,
    tokenize_release_name,
)
from torrent_extractor.config import RESOLUTION_TIERS, ResolutionPaths


def test_tokenize_release_name_treats_spaces_as_dots() -> None:
    assert tokenize_release_name("The Test..S01E02 720p") == ["The", "Test", "S01E02", "720p"]


def test_tokenize_release_name_handles_empty_input() -> None:
    assert tokenize_release_name("") == []
    assert tokenize_release_name("...") == []


def test_generate_movies_path(path_settings) -> None:
    actual = generate_destination_path("/src/Testing.2025.1080p.WEB.h264-Testers", path_settings)

    assert actual == "/movies"


def test_generate_single_episode_tv_path_from_nested_file(path_settings) -> None:
    source = (
        "/src/The.Test.S01E10.1080p.WEBRip.DD5.1.X.264-Testers/"
        "The.Test.S01E10.1080p.WEBRip.DD5.1.X.264-Testers.mkv"
    )

    assert generate_destination_path(source, path_settings) == "/tv/The Test/S01"


def test_generate_single_episode_tv_path_from_directory(path_settings) -> None:
    source = "/src/The.Test.S01E10.1080p.WEBRip.DD5.1.X.264-Testers"

    assert generate_destination_path(source, path_settings) == "/tv/The Test/S01"


def test_generate_season_pack_tv_path(path_settings) -> None:
    result = classify_release("/src/The.Test.Seasons.1-8.1080p.WEBRip.DD5.1.X.264-Testers", path_settings)

    assert result.is_tv_show is True
    assert result.show_name == "The Test"
    assert result.season == ""
    assert result.destination_dir == "/tv/The Test"


@pytest.mark.parametrize("marker", ["2160p", "2160P", "UHD", "uhd", "4K", "4k"])
def test_uhd_movies_use_tier_path_when_configured(marker) -> None:
    paths = make_paths(movies=ResolutionPaths(default="/movies", res2160p="/movies-uhd"))

    assert generate_destination_path(f"/src/Testing.2025.{marker}.WEB.h265-Testers", paths) == "/movies-uhd"


def test_uhd_movies_fall_back_to_default_when_tier_unset(path_settings) -> None:
    assert generate_destination_path("/src/Testing.2025.2160p.WEB.h265-Testers", path_settings) == "/movies"


def test_blank_tier_path_falls_back_to_default() -> None:
    paths = make_paths(movies=ResolutionPaths(default="/movies", res1080p="   "))

    assert generate_destination_path("Testing.2025.1080p.WEB", paths) == "/movies"


def test_tv_tier_path_is_combined_with_show_and_season() -> None:
    paths = make_paths(tv_shows=ResolutionPaths(default="/tv", res720p="/tv-720/"))

    assert generate_destination_path("Some.Show.S03E01.720p.HDTV", paths) == "/tv-720/Some Show/S03"


def test_tv_without_resolution_uses_tv_default(path_settings) -> None:
    result = classify_release("Some.Show.s02e05.HDTV.x264", path_settings)

    assert result.resolution is None
    assert result.season == "s02"
    assert result.destination_dir == "/tv/Some Show/s02"


def test_movie_without_resolution_uses_movie_default(path_settings) -> None:
    result = classify_release("Home.Video.mkv", path_settings)

    assert result.is_tv_show is False
    assert result.show_name == ""
    assert result.destination_dir == "/movies"


def test_trailing_slash_is_trimmed() -> None:
    paths = make_paths(movies=ResolutionPaths(default="/movies/"))

    assert generate_destination_path("Testing.2025.1080p", paths) == "/movies"


@pytest.mark.parametrize(
    "name",
    ["", ".", "x", "S01", "Season", "The.Test.S01E10", "1080p", "a b c 4K", "Movie.(2020).[rartv]"],
)
def test_destination_is_never_empty(name, path_settings) -> None:
    destination = generate_destination_path(name, path_settings)

    assert destination
    assert not destination.endswith("/")


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("S01E10", "S01"),
        ("s01e10", "s01"),
        ("S02EP03", "S02"),
        ("S05", "S05"),
        ("Seasons", ""),
        ("Season", ""),
        ("Season1", "1"),
    ],
)
def test_parse_season(token, expected) -> None:
    assert parse_season(token) == expected


def test_resolution_tier_ignores_unknown_tokens() -> None:
    assert resolution_tier("1080p") == "1080p"
    assert resolution_tier("720P") == "720p"
    assert resolution_tier("480p") is None
    assert resolution_tier("WEBRip") is None


def test_resolution_is_sticky_once_seen() -> None:
    paths = make_paths(movies=ResolutionPaths(default="/movies", res1080p="/movies-hd"))
    state = ClassificationState.initial(paths)

    state = advance(state, "1080p", paths)
    assert state.destination_dir == "/movies-hd"

    state = advance(state, "WEB", paths)
    assert state.destination_dir == "/movies-hd"
    assert state.resolution == "1080p"


def test_provisional_destination_follows_season_marker() -> None:
    paths = make_paths()
    state = ClassificationState.initial(paths)

    for token in ("My", "Show"):
        state = advance(state, token, paths)
    assert state.destination_dir == "/movies"

    state = advance(state, "S04E01", paths)
    assert state.is_tv_show is True
    assert state.show_name == "My Show"
    assert state.destination_dir == "/tv/My Show/S04"


def test_resolution_before_season_marker_keeps_movie_destination() -> None:
    paths = make_paths(movies=ResolutionPaths(default="/movies", res1080p="/movies-hd"))

    result = classify_release("Odd.1080p.S01E01.Release", paths)

    assert result.is_tv_show is True
    assert result.destination_dir == "/movies-hd"


def test_later_resolution_token_overrides_earlier_one() -> None:
    paths = make_paths(movies=ResolutionPaths(default="/movies", res2160p="/uhd", res720p="/sd"))

    assert generate_destination_path("Movie.720p.Remux.2160p", paths) == "/uhd"


def test_season_marker_as_first_token_has_no_show_folder(path_settings) -> None:
    result = classify_release("S01E01.1080p.WEB", path_settings)

    assert result.is_tv_show is True
    assert result.show_name == ""
    assert result.destination_dir == "/tv/S01"


def test_resolution_tokens_map_onto_configured_tiers() -> None:
    assert set(RESOLUTION_TOKENS.values()) == set(RESOLUTION_TIERS)
