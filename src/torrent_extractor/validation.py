from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from jsonschema import Draft7Validator


@dataclass(slots=True)
class ValidationIssue:
    """Represents a single validation problem."""

    severity: str
    path: str
    message: str
    code: str


@dataclass(slots=True)
class ValidationReport:
    """Aggregates validation warnings and errors."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


_RESOLUTION_KEYS = ("res2160p", "res1080p", "res720p")
_WORD_LIST = {
    "oneOf": [
        {"type": "array", "items": {"type": "string"}},
        {"type": "string"},
        {"type": "null"},
    ]
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "core": {
            "type": ["object", "null"],
            "properties": {
                "file_compare_interval": {"type": "integer", "minimum": 1},
                "file_copy_delay_seconds": {"type": ["number", "integer"], "minimum": 0},
                "max_workers": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": True,
        },
        "paths": {
            "type": "object",
            "properties": {
                "source": {"type": "string", "minLength": 3},
                "whitelisted_words": _WORD_LIST,
                "blacklisted_words": _WORD_LIST,
                "movies": {"$ref": "#/definitions/resolution_paths"},
                "tv_shows": {"$ref": "#/definitions/resolution_paths"},
            },
            "required": ["source", "movies", "tv_shows"],
            "additionalProperties": True,
        },
    },
    "required": ["paths"],
    "additionalProperties": True,
    "definitions": {
        "resolution_paths": {
            "type": "object",
            "properties": {
                "default": {"type": "string", "minLength": 3},
                "res2160p": {"type": ["string", "null"]},
                "res1080p": {"type": ["string", "null"]},
                "res720p": {"type": ["string", "null"]},
            },
            "required": ["default"],
            "additionalProperties": True,
        },
    },
}


def _format_jsonschema_path(path: Sequence[Any]) -> str:
    if not path:
        return "<root>"
    tokens: List[str] = []
    for part in path:
        if isinstance(part, int):
            if tokens:
                tokens[-1] = f"{tokens[-1]}[{part}]"
            else:
                tokens.append(f"[{part}]")
        else:
            tokens.append(str(part))
    return ".".join(tokens) if tokens else "<root>"


def _words(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [entry.strip().lower() for entry in value if isinstance(entry, str) and entry.strip()]


def validate_config_data(data: Dict[str, Any]) -> ValidationReport:
    report = ValidationReport()
    validator = Draft7Validator(CONFIG_SCHEMA)

    for error in sorted(validator.iter_errors(data), key=lambda exc: _format_jsonschema_path(exc.absolute_path)):
        report.errors.append(
            ValidationIssue(
                severity="error",
                path=_format_jsonschema_path(error.absolute_path),
                message=error.message,
                code="schema",
            )
        )

    _validate_semantics(data, report)
    return report


def _validate_semantics(data: Dict[str, Any], report: ValidationReport) -> None:
    paths = data.get("paths") if isinstance(data, dict) else None
    if not isinstance(paths, dict):
        return

    source = paths.get("source")
    if isinstance(source, str) and not source.strip():
        report.errors.append(
            ValidationIssue(
                severity="error",
                path="paths.source",
                message="A valid source directory is required",
                code="source-missing",
            )
        )

    source_key = os.path.normpath(source) if isinstance(source, str) and source.strip() else None

    for section in ("movies", "tv_shows"):
        block = paths.get(section)
        if not isinstance(block, dict):
            continue
        default = block.get("default")
        if isinstance(default, str) and not default.strip():
            report.errors.append(
                ValidationIssue(
                    severity="error",
                    path=f"paths.{section}.default",
                    message=f"A valid default path for {section} is required",
                    code="default-missing",
                )
            )
        for key in ("default",) + _RESOLUTION_KEYS:
            value = block.get(key)
            if not isinstance(value, str) or not value.strip():
                continue
            if source_key and os.path.normpath(value) == source_key:
                report.errors.append(
                    ValidationIssue(
                        severity="error",
                        path=f"paths.{section}.{key}",
                        message="Destination must not be the watched source directory",
                        code="destination-is-source",
                    )
                )
            elif not os.path.isabs(value):
                report.warnings.append(
                    ValidationIssue(
                        severity="warning",
                        path=f"paths.{section}.{key}",
                        message=f"'{value}' is relative and will resolve against the working directory",
                        code="relative-path",
                    )
                )

    whitelist = set(_words(paths.get("whitelisted_words")))
    blacklist = set(_words(paths.get("blacklisted_words")))
    for word in sorted(whitelist & blacklist):
        report.warnings.append(
            ValidationIssue(
                severity="warning",
                path="paths.whitelisted_words",
                message=f"'{word}' is also blacklisted, so it can never match",
                code="word-conflict",
            )
        )


__all__ = ["ValidationIssue", "ValidationReport", "validate_config_data", "CONFIG_SCHEMA"]
