from __future__ import annotations

import io
import logging
import textwrap
from pathlib import Path

import pytest
from rich.console import Console

from torrent_extractor import cli
from torrent_extractor.config import AppConfig, CoreSettings
from torrent_extractor.errors import ConfigInvalid

CONFIG = """
core:
  file_compare_interval: 15
paths:
  source: /downloads
  movies:
    default: /media/movies
    res2160p: /media/movies-uhd
  tv_shows:
    default: /media/tv
"""


@pytest.fixture
def console(monkeypatch) -> io.StringIO:
    buffer = io.StringIO()
    monkeypatch.setattr(cli, "CONSOLE", Console(file=buffer, width=200, color_system=None))
    return buffer


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(CONFIG), encoding="utf-8")
    return path


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in ("CONFIG_PATH", "FILE_COMPARE_INTERVAL", "FILE_COPY_DELAY_SECONDS", "SOURCE_DIR"):
        monkeypatch.delenv(name, raising=False)


def test_parse_args_defaults_to_run(monkeypatch) -> None:
    monkeypatch.setenv("CONFIG_PATH", "/etc/extractor.yaml")

    args = cli.parse_args(())

    assert args.command == "run"
    assert args.config == Path("/etc/extractor.yaml")
    assert args.interval is None


def test_parse_args_subcommands() -> None:
    assert cli.parse_args(("validate-config", "--config", "x.yaml")).command == "validate-config"
    classify = cli.parse_args(("classify", "A.Movie.2020", "--config", "x.yaml"))
    assert classify.command == "classify"
    assert classify.names == ["A.Movie.2020"]


def test_validate_config_reports_success(config_file, console) -> None:
    assert cli.main(("validate-config", "--config", str(config_file))) == 0
    assert "Configuration passed validation." in console.getvalue()


def test_validate_config_reports_errors(tmp_path, console) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("paths:\n  source: /downloads\n", encoding="utf-8")

    assert cli.main(("validate-config", "--config", str(path))) == 1
    assert "validation error(s) detected" in console.getvalue()


def test_validate_config_missing_file(tmp_path, console) -> None:
    assert cli.main(("validate-config", "--config", str(tmp_path / "nope.yaml"))) == 1
    assert "Configuration file not found" in console.getvalue()


def test_classify_prints_destinations(config_file, console) -> None:
    code = cli.main(
        (
            "classify",
            "--config",
            str(config_file),
            "Testing.2025.2160p.WEB.h265-Testers",
            "The.Test.S01E10.1080p.WEBRip",
        )
    )

    output = console.getvalue()
    assert code == 0
    assert "-> /media/movies-uhd" in output
    assert "-> /media/tv/The Test/S01" in output


def test_apply_runtime_overrides_from_args_and_env(config_file, monkeypatch) -> None:
    config = cli.load_config(config_file)
    args = cli.parse_args(("--interval", "5"))
    monkeypatch.setenv("FILE_COPY_DELAY_SECONDS", "1.5")
    monkeypatch.setenv("SOURCE_DIR", "/data/incoming")

    updated = cli.apply_runtime_overrides(config, args)

    assert updated.core == CoreSettings(file_compare_interval=5, file_copy_delay_seconds=1.5, max_workers=4)
    assert updated.paths.source == Path("/data/incoming")
    assert updated.paths.movies == config.paths.movies


def test_environment_interval_wins_over_flag(config_file, monkeypatch) -> None:
    config: AppConfig = cli.load_config(config_file)
    monkeypatch.setenv("FILE_COMPARE_INTERVAL", "45")

    updated = cli.apply_runtime_overrides(config, cli.parse_args(("--interval", "5")))

    assert updated.core.file_compare_interval == 45


def test_invalid_interval_override_is_rejected(config_file) -> None:
    config = cli.load_config(config_file)

    with pytest.raises(ConfigInvalid):
        cli.apply_runtime_overrides(config, cli.parse_args(("--interval", "0")))


def test_run_exits_with_error_on_invalid_config(tmp_path, monkeypatch, restore_logging) -> None:
    monkeypatch.setenv("PLAIN_CONSOLE_LOGS", "1")
    path = tmp_path / "bad.yaml"
    path.write_text("paths: {}\n", encoding="utf-8")

    assert cli.main(("--config", str(path))) == 1


def test_run_exits_with_error_when_source_is_missing(tmp_path, monkeypatch, restore_logging) -> None:
    monkeypatch.setenv("PLAIN_CONSOLE_LOGS", "1")
    monkeypatch.setenv("SOURCE_DIR", str(tmp_path / "missing"))
    monkeypatch.setattr(cli, "_install_signal_handlers", lambda _event: None)
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(CONFIG), encoding="utf-8")

    assert cli.main(("--config", str(path))) == 1
