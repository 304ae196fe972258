from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import signal
import sys
import threading
import traceback
from pathlib import Path
from typing import Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .classifier import classify_release
from .config import AppConfig, load_config
from .errors import ConfigInvalid, FatalWatchError
from .processor import ArrivalProcessor
from .utils import format_log, load_yaml_file
from .validation import validate_config_data
from .watcher import ArrivalDispatcher, ArrivalWatcher

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()
LOG_LEVEL_CHOICES = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]
LOG_RECORD_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_CONFIG_PATH = "/config/torrent-extractor.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_env_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def _env_bool(name: str) -> Optional[bool]:
    return _parse_env_bool(os.getenv(name))


def _env_number(name: str, cast=int) -> Tuple[Optional[float], bool]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None, False
    try:
        return cast(raw), False
    except ValueError:
        return None, True


def _default_config_path() -> Path:
    return Path(os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH))


def parse_args(argv: Optional[Tuple[str, ...]] = None) -> argparse.Namespace:
    arguments = list(sys.argv[1:] if argv is None else argv)
    if arguments and arguments[0] == "validate-config":
        return _parse_validate_args(arguments[1:])
    if arguments and arguments[0] == "classify":
        return _parse_classify_args(arguments[1:])
    return _parse_run_args(arguments)


def _parse_run_args(arguments: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Torrent Extractor")
    parser.add_argument(
        "--config",
        type=Path,
        default=_default_config_path(),
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between size checks while an arrival is still being written",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging on the console")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVEL_CHOICES,
        help="Log level for the persistent log file (default INFO, or DEBUG when --verbose)",
    )
    parser.add_argument(
        "--console-level",
        choices=LOG_LEVEL_CHOICES,
        help="Log level for console output (defaults to --log-level)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Path to a persistent log file (default: console only, or $LOG_FILE / $LOG_DIR)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    namespace = parser.parse_args(arguments)
    namespace.command = "run"
    return namespace


def _parse_validate_args(arguments: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate Torrent Extractor configuration")
    parser.add_argument(
        "--config",
        type=Path,
        default=_default_config_path(),
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--show-trace",
        action="store_true",
        help="Print exception tracebacks when validation fails",
    )
    namespace = parser.parse_args(arguments)
    namespace.command = "validate-config"
    return namespace


def _parse_classify_args(arguments: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Show where release names would be placed")
    parser.add_argument("names", nargs="+", help="Release names or paths to classify")
    parser.add_argument(
        "--config",
        type=Path,
        default=_default_config_path(),
        help="Path to the YAML configuration file",
    )
    namespace = parser.parse_args(arguments)
    namespace.command = "classify"
    return namespace


def _resolve_previous_log_path(log_file: Path) -> Path:
    if log_file.suffix:
        return log_file.with_suffix(f"{log_file.suffix}.previous")
    return log_file.with_name(f"{log_file.name}.previous")


def _resolve_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(
    log_level_name: str,
    log_file: Optional[Path] = None,
    console_level_name: Optional[str] = None,
) -> None:
    log_level = _resolve_level(log_level_name)
    console_level = _resolve_level(console_level_name or log_level_name)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_RECORD_FORMAT, LOG_DATE_FORMAT)

    rotated_to: Optional[Path] = None
    if log_file is not None:
        log_file = log_file.resolve()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        previous_log = _resolve_previous_log_path(log_file)
        if previous_log.exists():
            previous_log.unlink()
        if log_file.exists():
            log_file.replace(previous_log)
            rotated_to = previous_log

        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    plain_console_env = _env_bool("PLAIN_CONSOLE_LOGS")
    rich_console_env = _env_bool("RICH_CONSOLE_LOGS")
    if plain_console_env is True:
        use_rich_console = False
    elif rich_console_env is True:
        use_rich_console = True
    else:
        use_rich_console = CONSOLE.is_terminal

    if use_rich_console:
        console_handler = RichHandler(console=CONSOLE, rich_tracebacks=True, markup=False)
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
    console_handler.setLevel(console_level)
    root_logger.addHandler(console_handler)

    effective = min(log_level, console_level) if log_file is not None else console_level
    root_logger.setLevel(effective)
    logging.captureWarnings(True)

    if rotated_to is not None:
        LOGGER.debug("Rotated previous log to %s", rotated_to)
    LOGGER.info(
        "Logging to %s (file level %s, console level %s, console style %s)",
        log_file or "console",
        logging.getLevelName(log_level),
        logging.getLevelName(console_level),
        "rich" if use_rich_console else "plain",
    )


def apply_runtime_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    core = config.core
    paths = config.paths

    interval = getattr(args, "interval", None)
    env_interval, invalid_interval = _env_number("FILE_COMPARE_INTERVAL")
    if invalid_interval:
        LOGGER.warning("Invalid integer for FILE_COMPARE_INTERVAL: %s", os.getenv("FILE_COMPARE_INTERVAL"))
    if env_interval is not None:
        interval = env_interval
    if interval is not None:
        if interval < 1:
            raise ConfigInvalid("A valid file compare interval is required!")
        core = dataclasses.replace(core, file_compare_interval=int(interval))

    env_delay, invalid_delay = _env_number("FILE_COPY_DELAY_SECONDS", float)
    if invalid_delay:
        LOGGER.warning("Invalid number for FILE_COPY_DELAY_SECONDS: %s", os.getenv("FILE_COPY_DELAY_SECONDS"))
    if env_delay is not None:
        if env_delay < 0:
            raise ConfigInvalid("FILE_COPY_DELAY_SECONDS must be greater than or equal to 0")
        core = dataclasses.replace(core, file_copy_delay_seconds=env_delay)

    source_override = os.getenv("SOURCE_DIR")
    if source_override:
        if len(source_override.strip()) < 3:
            raise ConfigInvalid("A valid SOURCE_DIR is required!")
        paths = dataclasses.replace(paths, source=Path(source_override.strip()).expanduser())

    return dataclasses.replace(config, core=core, paths=paths)


def _resolve_log_file(args: argparse.Namespace) -> Optional[Path]:
    if args.log_file:
        return args.log_file
    log_dir_env = os.getenv("LOG_DIR")
    if log_dir_env:
        return Path(log_dir_env) / "torrent-extractor.log"
    log_file_env = os.getenv("LOG_FILE")
    if log_file_env:
        return Path(log_file_env)
    return None


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _request_stop(signum, _frame) -> None:
        LOGGER.info("Received %s; shutting down", signal.Signals(signum).name)
        stop_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, _request_stop)


def _execute_run(args: argparse.Namespace) -> int:
    verbose = args.verbose
    if not verbose:
        verbose = bool(_env_bool("VERBOSE") or _env_bool("DEBUG"))

    log_level_env = os.getenv("LOG_LEVEL")
    console_level_env = os.getenv("CONSOLE_LEVEL")
    resolved_log_level = args.log_level or log_level_env or ("DEBUG" if verbose else "INFO")
    resolved_console_level: Optional[str]
    if args.console_level:
        resolved_console_level = args.console_level
    elif console_level_env:
        resolved_console_level = console_level_env
    elif verbose:
        resolved_console_level = "DEBUG"
    else:
        resolved_console_level = None

    configure_logging(
        resolved_log_level.upper(),
        _resolve_log_file(args),
        resolved_console_level.upper() if resolved_console_level else None,
    )

    LOGGER.info("Application starting...")
    try:
        config = apply_runtime_overrides(load_config(args.config), args)
    except ConfigInvalid as exc:
        LOGGER.critical("Invalid configuration in %s: %s", args.config, exc)
        return 1

    LOGGER.debug(
        format_log(
            "Effective Settings",
            {
                "File Compare Interval": f"{config.core.file_compare_interval}s",
                "File Copy Delay": f"{config.core.file_copy_delay_seconds:g}s",
                "Max Workers": config.core.max_workers,
                **config.paths.describe(),
            },
        )
    )

    stop_event = threading.Event()
    processor = ArrivalProcessor(config, stop_event)
    dispatcher = ArrivalDispatcher(processor, max_workers=config.core.max_workers)
    watcher = ArrivalWatcher(config, dispatcher)
    _install_signal_handlers(stop_event)

    try:
        watcher.run_forever(stop_event)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user")
    except FatalWatchError as exc:
        LOGGER.critical("A critical error occurred: %s", exc)
        return 1
    except Exception:  # noqa: BLE001
        LOGGER.critical("A critical error occurred", exc_info=True)
        return 1
    LOGGER.info("Application stopped")
    return 0


def run_validate_config(args: argparse.Namespace) -> int:
    config_path: Path = args.config
    if not config_path.exists():
        CONSOLE.print(f"[bold red]Configuration file not found: {config_path}[/bold red]")
        return 1

    try:
        data = load_yaml_file(config_path)
    except Exception as exc:  # noqa: BLE001
        CONSOLE.print(f"[bold red]Failed to load configuration: {exc}[/bold red]")
        if getattr(args, "show_trace", False):
            CONSOLE.print(traceback.format_exc(), style="dim")
        return 1

    report = validate_config_data(data)

    if report.errors:
        CONSOLE.print(f"[bold red]{len(report.errors)} validation error(s) detected:[/bold red]")
        for issue in report.errors:
            CONSOLE.print(f"  • [bold]{issue.path}[/bold]: {issue.message} ({issue.code})")
    else:
        CONSOLE.print("[bold green]Configuration passed validation.[/bold green]")

    if report.warnings:
        CONSOLE.print(f"[yellow]{len(report.warnings)} warning(s):[/yellow]")
        for issue in report.warnings:
            CONSOLE.print(f"  • [bold]{issue.path}[/bold]: {issue.message} ({issue.code})")

    return 0 if report.is_valid else 1


def run_classify(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
    except ConfigInvalid as exc:
        CONSOLE.print(f"[bold red]{exc}[/bold red]")
        return 1

    for name in args.names:
        result = classify_release(name, config.paths)
        kind = "tv" if result.is_tv_show else "movie"
        CONSOLE.print(
            f"[bold]{escape(name)}[/bold] ({kind}, {result.resolution or 'default'}) -> {escape(result.destination_dir)}"
        )
    return 0


def main(argv: Optional[Tuple[str, ...]] = None) -> int:
    args = parse_args(argv)
    command = getattr(args, "command", "run")
    if command == "validate-config":
        return run_validate_config(args)
    if command == "classify":
        return run_classify(args)
    return _execute_run(args)


if __name__ == "__main__":
    sys.exit(main())
