"""Where ecs-deploy keeps its saved defaults and env file.

Both live in one directory: the platform's user config location, unless
``ECS_DEPLOY_CONFIG_DIR`` points somewhere else (handy for CI runners and for
keeping one set of defaults per workspace).
"""

import os
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "ecs-deploy"
CONFIG_DIR_ENV_VAR = "ECS_DEPLOY_CONFIG_DIR"
CLI_CONFIG_FILENAME = "config.json"
ENV_FILENAME = ".env"


def config_dir() -> Path:
    """Return the directory holding the saved defaults and env file."""
    override = os.environ.get(CONFIG_DIR_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path(user_config_dir(APP_NAME, appauthor=False))


def cli_config_path() -> Path:
    """Return the JSON file written by ``ecs-deploy config set``."""
    return config_dir() / CLI_CONFIG_FILENAME


def env_path() -> Path:
    """Return the env file loaded before settings are read."""
    return config_dir() / ENV_FILENAME
