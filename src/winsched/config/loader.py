"""
winsched — runtime config loader.

File: src/winsched/config/loader.py
Last updated: 2026-10-19

Purpose
- Produce the effective configuration ``TaskService.from_config`` and ``setup_logging``
  consume.

What should be included in this file
- Layering: defaults, then ``winsched.toml`` (``tomllib``), then ``WINSCHED_*``
  environment variables, then explicit ``section.field`` overrides.
- Environment names and coercion derived from ``schema.FIELDS``.
- ``observability.log_dir`` resolved relative to the config file.
- Resolution of the connection password from the variable ``password_env`` names.

Functional requirements
- A missing default file is not an error; a missing explicit file is.
- Bad TOML and uncoercible environment values raise ``ConfigLoadError``.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from winsched.config.schema import (
    FIELDS,
    FieldKind,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "winsched.toml"
ENV_PREFIX: Final[str] = "WINSCHED_"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an override cannot be applied."""


def env_var_name(section: str, key: str) -> str:
    return f"{ENV_PREFIX}{section}_{key}".upper()


def load_config(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
    require_password: bool = False,
) -> dict[str, Any]:
    """Load the effective config.

    ``config_path`` defaults to ``winsched.toml`` in the working directory.
    ``overrides`` keys are dotted (``"connection.server"``). With
    ``require_password`` a configured but unset password variable fails here
    rather than at connect time.
    """

    explicit = config_path is not None
    path = Path(config_path).expanduser() if explicit else Path.cwd() / DEFAULT_CONFIG_FILE
    path = path.resolve()
    env = os.environ if environ is None else environ

    merged: dict[str, Any] = dict(default_config())
    for layer in (
        _read_toml(path, required=explicit),
        _env_layer(env),
        _override_layer(overrides or {}),
    ):
        merged = merge_config(merged, layer)
    config = assert_valid_config(merged)

    observability = config["observability"]
    observability["log_dir"] = _resolve_dir(observability["log_dir"], path.parent)

    if require_password:
        resolve_password(config, env)
    return config


def resolve_password(
    config: Mapping[str, Any], environ: Mapping[str, str] | None = None
) -> str | None:
    """Return the password named by ``connection.password_env``, or ``None`` if unset.

    A configured variable that is missing or blank is an error.
    """

    env = os.environ if environ is None else environ
    env_name = config["connection"]["password_env"]
    if not env_name:
        return None
    value = env.get(env_name)
    if value is None or not value.strip():
        raise ConfigLoadError(
            f"missing required secret environment variable value: "
            f"connection.password_env -> {env_name}"
        )
    return value


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for section, kinds in FIELDS.items():
        for key, kind in kinds.items():
            name = env_var_name(section, key)
            raw = environ.get(name)
            if raw is not None:
                layer.setdefault(section, {})[key] = _coerce(raw, kind, name)
    return layer


def _coerce(raw: str, kind: FieldKind, name: str) -> object:
    value = raw.strip()
    if kind is not FieldKind.FLAG:
        return value
    lowered = value.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ConfigLoadError(f"{name} must be a boolean (true/false/1/0/yes/no/on/off)")


def _override_layer(overrides: Mapping[str, object]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for dotted, value in overrides.items():
        section, _, key = dotted.partition(".")
        if not section or not key or "." in key:
            raise ConfigLoadError(f"override key must look like 'section.field', got {dotted!r}")
        layer.setdefault(section, {})[key] = value
    return layer


def _resolve_dir(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "env_var_name",
    "load_config",
    "resolve_password",
]
