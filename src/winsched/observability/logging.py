"""JSON-lines logging with credential redaction.

``configure_logging`` installs a file sink (and optionally stdout) on the ``winsched``
logger and routes ``structlog`` into stdlib logging, so the session and walker events
land in the same file. Context bound with ``structlog.contextvars.bound_contextvars``
under ``server``, ``task_path`` or ``correlation_id`` is written as top-level keys.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Final

import structlog

JSONValue = str | int | float | bool | None | list["JSONValue"] | dict[str, "JSONValue"]
Redactor = Callable[[JSONValue], JSONValue]

REDACTED: Final[str] = "***REDACTED***"
LOG_FILENAME: Final[str] = "winsched.jsonl"
ROOT_LOGGER: Final[str] = "winsched"

_CONTEXT_KEYS: Final[frozenset[str]] = frozenset({"server", "task_path", "correlation_id"})
_SECRET_KEY: Final[re.Pattern[str]] = re.compile(
    r"(?i)passw(or)?d|secret|token|credential|authorization"
)
_SECRET_ASSIGNMENT: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(password|passwd|pwd|token|secret|credential)\b\s*([:=])\s*([^\s,;]+)"
)
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: int | str = "INFO"
    log_file: Path | str | None = Path("logs") / LOG_FILENAME
    log_to_stdout: bool = False
    redact_secrets: bool = True
    logger_name: str = ROOT_LOGGER


def redact(value: JSONValue) -> JSONValue:
    """Mask credential-looking keys and ``password=...`` assignments, recursively.

    Keys ending in ``_env`` name a variable rather than hold a secret and are kept.
    """

    if isinstance(value, str):
        return _SECRET_ASSIGNMENT.sub(lambda match: f"{match[1]}{match[2]}{REDACTED}", value)
    if isinstance(value, list):
        return [redact(item) for item in value]
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_secret_key(key) else redact(item)
            for key, item in value.items()
        }
    return value


class JsonLinesFormatter(logging.Formatter):
    """One JSON object per record, keys sorted."""

    def __init__(self, redactor: Redactor | None = redact) -> None:
        super().__init__()
        self._redactor = redactor

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": _as_text(self._redact(record.getMessage())),
        }

        fields: dict[str, JSONValue] = {}
        for key, value in vars(record).items():
            if key in _RECORD_ATTRIBUTES or key.startswith("_"):
                continue
            if key in _CONTEXT_KEYS and isinstance(value, str) and value.strip():
                event[key] = value.strip()
            else:
                fields[key] = _to_json(value)
        if fields:
            event["fields"] = self._redact(fields)

        if record.exc_info:
            event["exception"] = _as_text(self._redact(self.formatException(record.exc_info)))

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def _redact(self, value: JSONValue) -> JSONValue:
        return value if self._redactor is None else self._redactor(value)


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Install the JSON-lines sinks on ``config.logger_name``, replacing earlier ones."""

    level = _parse_level(config.level)
    formatter = JsonLinesFormatter(redact if config.redact_secrets else None)

    handlers: list[logging.Handler] = []
    if config.log_file is not None:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if config.log_to_stdout:
        handlers.append(logging.StreamHandler(sys.stdout))
    if not handlers:
        raise ValueError("logging needs a log_file or log_to_stdout")

    logger = logging.getLogger(config.logger_name)
    _remove_sinks(logger)
    logger.setLevel(level)
    logger.propagate = False
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    return logger


def setup_logging(
    observability: Mapping[str, object] | None = None,
    *,
    log_dir: Path | str | None = None,
    logger_name: str = ROOT_LOGGER,
) -> logging.Logger:
    """Configure logging from the ``[observability]`` section of a loaded config.

    The sink is ``<log_dir>/winsched.jsonl``; ``log_dir`` overrides the section's value.
    """

    section = dict(observability or {})
    directory = log_dir if log_dir is not None else section.get("log_dir", "logs")
    return configure_logging(
        LoggingConfig(
            level=str(section.get("log_level", "INFO")),
            log_file=Path(str(directory)) / LOG_FILENAME,
            log_to_stdout=bool(section.get("log_to_stdout", False)),
            redact_secrets=bool(section.get("redact_secrets", True)),
            logger_name=logger_name,
        )
    )


def shutdown_logging(logger_name: str = ROOT_LOGGER) -> None:
    """Flush and close the sinks ``configure_logging`` installed; restore structlog defaults."""

    _remove_sinks(logging.getLogger(logger_name))
    structlog.reset_defaults()


def _remove_sinks(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if isinstance(handler.formatter, JsonLinesFormatter):
            logger.removeHandler(handler)
            handler.flush()
            handler.close()


def _parse_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    parsed = logging.getLevelName(value.strip().upper())
    if isinstance(parsed, int):
        return parsed
    raise ValueError(f"unsupported logging level {value!r}")


def _is_secret_key(key: str) -> bool:
    return not key.lower().endswith("_env") and _SECRET_KEY.search(key) is not None


def _utc_timestamp(epoch_seconds: float) -> str:
    moment = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_text(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


def _to_json(value: object) -> JSONValue:
    if isinstance(value, Enum):
        return _to_json(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


__all__ = [
    "JSONValue",
    "JsonLinesFormatter",
    "LOG_FILENAME",
    "LoggingConfig",
    "REDACTED",
    "Redactor",
    "configure_logging",
    "redact",
    "setup_logging",
    "shutdown_logging",
]
