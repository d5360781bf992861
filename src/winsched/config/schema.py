"""
winsched — configuration schema and validation.

File: src/winsched/config/schema.py
Last updated: 2026-10-19

Purpose
- Describe every ``winsched.toml`` field once, in ``FIELDS``, and validate payloads
  against that table.

What should be included in this file
- Typed shapes of each section and the built-in defaults.
- Field kinds (text, env-var name, flag, log level, path) driving both validation and
  the loader's ``WINSCHED_*`` environment mapping.
- Structured validation issues (dotted field path + message).

Functional requirements
- Reject unknown sections and fields; report missing ones.
- Reject embedded passwords; a password is only ever named through
  ``connection.password_env``, which in turn requires ``connection.user``.

Non-functional requirements
- Validation never raises for bad input; ``assert_valid_config`` is the raising form.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final, TypedDict

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

_ENV_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Z_][A-Z0-9_]*$")
_SECRET_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)passw(or)?d|pwd|secret|token|credential"
)


class FieldKind(StrEnum):
    TEXT = "text"
    ENV_NAME = "env_name"
    FLAG = "flag"
    LEVEL = "level"
    PATH = "path"


class ConnectionConfig(TypedDict):
    server: str
    domain: str
    user: str
    password_env: str


class EnumerationConfig(TypedDict):
    include_hidden: bool


class RegistrationConfig(TypedDict):
    overwrite: bool


class ObservabilityConfig(TypedDict):
    log_level: str
    log_dir: str
    log_to_stdout: bool
    redact_secrets: bool


class WinschedConfig(TypedDict):
    connection: ConnectionConfig
    enumeration: EnumerationConfig
    registration: RegistrationConfig
    observability: ObservabilityConfig


FIELDS: Final[dict[str, dict[str, FieldKind]]] = {
    "connection": {
        "server": FieldKind.TEXT,
        "domain": FieldKind.TEXT,
        "user": FieldKind.TEXT,
        "password_env": FieldKind.ENV_NAME,
    },
    "enumeration": {"include_hidden": FieldKind.FLAG},
    "registration": {"overwrite": FieldKind.FLAG},
    "observability": {
        "log_level": FieldKind.LEVEL,
        "log_dir": FieldKind.PATH,
        "log_to_stdout": FieldKind.FLAG,
        "redact_secrets": FieldKind.FLAG,
    },
}

DEFAULT_CONFIG: Final[WinschedConfig] = {
    "connection": {"server": "", "domain": "", "user": "", "password_env": ""},
    "enumeration": {"include_hidden": True},
    "registration": {"overwrite": False},
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs",
        "log_to_stdout": False,
        "redact_secrets": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> WinschedConfig:
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; neither input is modified."""

    merged = {key: copy.deepcopy(value) for key, value in base.items()}
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    """Check ``config`` against ``FIELDS`` and return normalized values or issues."""

    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected table, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=issues.items())

    for section in sorted(str(key) for key in config if key not in FIELDS):
        issues.add(section, "unknown section")

    normalized: dict[str, Any] = {}
    for section, kinds in FIELDS.items():
        raw = config.get(section)
        if raw is None:
            issues.add(section, "missing required section")
        elif not isinstance(raw, Mapping):
            issues.add(section, f"expected table, got {type(raw).__name__}")
        else:
            normalized[section] = _validate_section(section, raw, kinds, issues)

    connection = normalized.get("connection", {})
    if connection.get("password_env") and not connection.get("user"):
        issues.add("connection.password_env", "a password requires connection.user")

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_section(
    section: str,
    raw: Mapping[str, object],
    kinds: Mapping[str, FieldKind],
    issues: _IssueCollector,
) -> dict[str, object]:
    for key in sorted(str(name) for name in raw if name not in kinds):
        if _SECRET_KEY_PATTERN.search(key) and not key.endswith("_env"):
            issues.add(
                f"{section}.{key}",
                "embedded secret values are forbidden; "
                "name an environment variable in connection.password_env",
            )
        else:
            issues.add(f"{section}.{key}", "unknown field")

    values: dict[str, object] = {}
    for key, kind in kinds.items():
        path = f"{section}.{key}"
        if key not in raw:
            issues.add(path, "missing required field")
            continue
        value = _check_value(raw[key], kind, path, issues)
        if value is not None:
            values[key] = value
    return values


def _check_value(
    value: object, kind: FieldKind, path: str, issues: _IssueCollector
) -> object | None:
    if kind is FieldKind.FLAG:
        if isinstance(value, bool):
            return value
        issues.add(path, f"expected boolean, got {type(value).__name__}")
        return None

    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    text = value.strip()

    if kind is FieldKind.ENV_NAME and text and not _ENV_NAME_PATTERN.fullmatch(text):
        issues.add(path, "must be an environment variable name (example: WINSCHED_PASSWORD)")
        return None
    if kind is FieldKind.LEVEL:
        level = text.upper()
        if level not in LOG_LEVELS:
            issues.add(path, f"invalid value {value!r}; expected one of: {', '.join(LOG_LEVELS)}")
            return None
        return level
    if kind is FieldKind.PATH and (not text or "\x00" in text):
        issues.add(path, "must be a non-empty path")
        return None
    return text


__all__ = [
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ConnectionConfig",
    "DEFAULT_CONFIG",
    "EnumerationConfig",
    "FIELDS",
    "FieldKind",
    "LOG_LEVELS",
    "ObservabilityConfig",
    "RegistrationConfig",
    "WinschedConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
