"""CLI configuration package."""

from ecs_deploy.cli.configuration.models import CliConfig
from ecs_deploy.cli.configuration.store import (
    ConfigError,
    get_value,
    load_config,
    save_config,
    set_value,
)

__all__ = [
    "CliConfig",
    "ConfigError",
    "get_value",
    "load_config",
    "save_config",
    "set_value",
]
