"""CLI configuration persistence helpers."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ecs_deploy.cli.configuration.models import CliConfig
from ecs_deploy.config.paths import cli_config_path


class ConfigError(RuntimeError):
    """Configuration related errors."""


def load_config() -> CliConfig:
    """Load CLI configuration from disk.

    Returns:
        The loaded configuration object.
    """
    path = cli_config_path()
    if not path.exists():
        return CliConfig()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid configuration file: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a JSON object.")

    try:
        return CliConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def save_config(config: CliConfig) -> Path:
    """Save CLI configuration to disk.

    Args:
        config: Configuration object to save.

    Returns:
        The saved configuration file path.
    """
    path = cli_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(mode="json"), indent=2), encoding="utf-8")
    return path


def get_value(config: CliConfig, key: str) -> Any:
    """Read a dotted key such as ``aws.region``.

    Args:
        config: Configuration to read from.
        key: Dotted key path.

    Returns:
        The stored value.
    """
    current: Any = config.model_dump(mode="json")
    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            raise ConfigError(f"Unknown configuration key: {key}")
        current = current[part]
    return current


def set_value(config: CliConfig, key: str, value: str) -> CliConfig:
    """Return a copy of the configuration with a dotted key updated.

    Args:
        config: Configuration to update.
        key: Dotted key path.
        value: Raw string value; validated against the model.

    Returns:
        The updated configuration.
    """
    data = config.model_dump(mode="json")
    parts = key.split(".")
    current = data
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            raise ConfigError(f"Unknown configuration key: {key}")
        current = current[part]
    if parts[-1] not in current or isinstance(current[parts[-1]], dict):
        raise ConfigError(f"Unknown configuration key: {key}")

    current[parts[-1]] = value or None
    try:
        return CliConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for {key}: {exc}") from exc
