"""Configuration: ``winsched.toml`` schema, validation and layered loading."""

from winsched.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    env_var_name,
    load_config,
    resolve_password,
)
from winsched.config.schema import (
    DEFAULT_CONFIG,
    FIELDS,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    FieldKind,
    WinschedConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "FIELDS",
    "FieldKind",
    "WinschedConfig",
    "assert_valid_config",
    "default_config",
    "env_var_name",
    "load_config",
    "merge_config",
    "resolve_password",
    "validate_config",
]
