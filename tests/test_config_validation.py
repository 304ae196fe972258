from __future__ import annotations

from pathlib import Path

from torrent_extractor.utils import load_yaml_file
from torrent_extractor.validation import validate_config_data

SAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "torrent-extractor.sample.yaml"


def _base() -> dict:
    return {
        "paths": {
            "source": "/downloads",
            "movies": {"default": "/media/movies"},
            "tv_shows": {"default": "/media/tv"},
        }
    }


def test_sample_config_is_valid() -> None:
    report = validate_config_data(load_yaml_file(SAMPLE_CONFIG))

    assert report.is_valid
    assert report.warnings == []


def test_schema_errors_carry_paths() -> None:
    data = _base()
    data["core"] = {"max_workers": 0}
    del data["paths"]["tv_shows"]

    report = validate_config_data(data)

    assert not report.is_valid
    assert {issue.path for issue in report.errors} == {"core.max_workers", "paths"}
    assert all(issue.code == "schema" for issue in report.errors)


def test_blank_source_and_default_are_reported() -> None:
    data = _base()
    data["paths"]["source"] = "   "
    data["paths"]["movies"]["default"] = "   "

    codes = {issue.code for issue in validate_config_data(data).errors}

    assert {"source-missing", "default-missing"} <= codes


def test_destination_equal_to_source_is_an_error() -> None:
    data = _base()
    data["paths"]["tv_shows"]["res2160p"] = "/downloads/"

    report = validate_config_data(data)

    assert [(issue.path, issue.code) for issue in report.errors] == [
        ("paths.tv_shows.res2160p", "destination-is-source")
    ]


def test_relative_paths_and_word_conflicts_are_warnings() -> None:
    data = _base()
    data["paths"]["movies"]["res1080p"] = "media/hd"
    data["paths"]["whitelisted_words"] = ["1080p", "Sample"]
    data["paths"]["blacklisted_words"] = "sample"

    report = validate_config_data(data)

    assert report.is_valid
    assert sorted(issue.code for issue in report.warnings) == ["relative-path", "word-conflict"]
