"""
winsched — unit tests for config schema validation

File: tests/unit/config/test_schema.py
Last updated: 2026-10-19

Purpose
- Validate the field table, structured issues and the password rules.

What this test file should cover
- The repository's winsched.toml equals the built-in defaults.
- Unknown and missing sections/fields, type errors, log level normalization.
- Embedded passwords rejected; ``password_env`` must name a variable and needs a user.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from winsched.config.schema import (
    FIELDS,
    ConfigValidationError,
    FieldKind,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

REPO_ROOT = Path(__file__).resolve().parents[3]


def _issues(config: object) -> dict[str, str]:
    result = validate_config(config)
    assert not result.is_valid
    return {issue.path: issue.message for issue in result.issues}


def test_repo_winsched_toml_matches_defaults() -> None:
    with (REPO_ROOT / "winsched.toml").open("rb") as handle:
        config = tomllib.load(handle)

    result = validate_config(config)

    assert result.is_valid
    assert result.config == default_config()


def test_every_default_field_is_described_by_the_field_table() -> None:
    defaults = default_config()

    assert set(defaults) == set(FIELDS)
    for section, kinds in FIELDS.items():
        assert set(defaults[section]) == set(kinds)  # type: ignore[literal-required]
    assert FIELDS["observability"]["log_dir"] is FieldKind.PATH


def test_unknown_and_missing_entries_are_reported_by_path() -> None:
    config = merge_config(default_config(), {"enumeration": {"recurse": True}, "meta": {}})
    del config["registration"]
    del config["connection"]["server"]

    assert _issues(config) == {
        "meta": "unknown section",
        "enumeration.recurse": "unknown field",
        "registration": "missing required section",
        "connection.server": "missing required field",
    }


def test_types_are_checked_per_field_kind() -> None:
    config = merge_config(
        default_config(),
        {
            "registration": {"overwrite": "yes"},
            "connection": {"server": 7},
            "observability": {"log_dir": "  "},
        },
    )

    assert _issues(config) == {
        "registration.overwrite": "expected boolean, got str",
        "connection.server": "expected string, got int",
        "observability.log_dir": "must be a non-empty path",
    }


def test_log_level_is_normalized_and_restricted() -> None:
    lowered = merge_config(default_config(), {"observability": {"log_level": " debug "}})
    unknown = merge_config(default_config(), {"observability": {"log_level": "TRACE"}})

    assert assert_valid_config(lowered)["observability"]["log_level"] == "DEBUG"
    assert _issues(unknown) == {
        "observability.log_level": (
            "invalid value 'TRACE'; expected one of: DEBUG, INFO, WARNING, ERROR"
        )
    }


@pytest.mark.parametrize("key", ["password", "Passwd", "api_token"])
def test_embedded_secrets_are_rejected(key: str) -> None:
    config = merge_config(default_config(), {"connection": {key: "hunter2"}})

    message = _issues(config)[f"connection.{key}"]

    assert message.startswith("embedded secret values are forbidden")


def test_password_env_is_accepted_with_a_user() -> None:
    config = merge_config(
        default_config(),
        {"connection": {"user": "svc-backup", "password_env": "WINSCHED_PASSWORD"}},
    )

    assert validate_config(config).is_valid


@pytest.mark.parametrize("env_name", ["winsched_password", "1PASSWORD", "MY-PASSWORD"])
def test_password_env_must_be_an_env_var_name(env_name: str) -> None:
    config = merge_config(
        default_config(), {"connection": {"user": "bob", "password_env": env_name}}
    )

    assert _issues(config) == {
        "connection.password_env": (
            "must be an environment variable name (example: WINSCHED_PASSWORD)"
        )
    }


def test_password_env_requires_a_user() -> None:
    config = merge_config(default_config(), {"connection": {"password_env": "WINSCHED_PASSWORD"}})

    assert _issues(config) == {"connection.password_env": "a password requires connection.user"}


def test_validation_error_renders_every_issue() -> None:
    config = merge_config(
        default_config(),
        {"enumeration": {"include_hidden": 1}, "registration": {"overwrite": None}},
    )

    with pytest.raises(ConfigValidationError) as excinfo:
        assert_valid_config(config)

    rendered = str(excinfo.value)
    assert rendered.startswith("invalid config:\n")
    assert "- enumeration.include_hidden: expected boolean, got int" in rendered
    assert "- registration.overwrite: expected boolean, got NoneType" in rendered
    assert len(excinfo.value.issues) == 2


def test_non_table_input_is_an_issue_not_an_exception() -> None:
    assert _issues(["not", "a", "table"]) == {"<root>": "expected table, got list"}
    assert _issues({**default_config(), "connection": "HOST01"}) == {
        "connection": "expected table, got str"
    }


def test_merge_config_is_deep_and_non_destructive() -> None:
    base = default_config()

    merged = merge_config(base, {"connection": {"server": "HOST01"}})

    assert merged["connection"]["server"] == "HOST01"
    assert merged["connection"]["domain"] == ""
    assert base["connection"]["server"] == ""
