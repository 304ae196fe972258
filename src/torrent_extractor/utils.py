from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return expand_env(data)


def canonical_path(path: os.PathLike[str] | str) -> str:
    """Return the key used to recognise the same arrival across events."""
    return os.path.normcase(os.path.abspath(os.fspath(path)))


def is_within_directory(candidate: Path, directory: Path) -> bool:
    base = directory.resolve()
    resolved = candidate.resolve(strict=False)
    return resolved == base or resolved.is_relative_to(base)


def format_log(event: str, fields: Optional[Mapping[str, object]] = None) -> str:
    lines = [event]
    if fields:
        items = list(fields.items())
        width = max((len(str(key)) for key, _ in items), default=0)
        for key, value in items:
            text = "" if value is None else str(value)
            lines.append(f"  {str(key):<{width}}: {text}")
    return "\n".join(lines)


def format_inline_log(event: str, fields: Optional[Mapping[str, object]] = None) -> str:
    if not fields:
        return event

    items = list(fields.items())
    width = max((len(str(key)) for key, _ in items), default=0)
    formatted = []
    for key, value in items:
        text = "" if value is None else str(value)
        formatted.append(f"{str(key):<{width}}: {text}")
    return f"{event} | " + " | ".join(formatted)
