"""Runtime settings for ecs-deploy."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ecs_deploy.config.paths import env_path

ENV_FILE_PATH = str(env_path())


class AWSSettings(BaseSettings):
    """AWS connection settings."""

    model_config = SettingsConfigDict(env_prefix="AWS_", env_file=ENV_FILE_PATH, extra="ignore")

    region: str | None = Field(default=None, description="AWS region")
    profile: str | None = Field(default=None, description="AWS named profile")


class RolloutSettings(BaseSettings):
    """Rollout monitor tuning."""

    model_config = SettingsConfigDict(
        env_prefix="ECS_DEPLOY_",
        env_file=ENV_FILE_PATH,
        extra="ignore",
    )

    poll_interval_seconds: float = Field(
        default=15.0, gt=0, description="Seconds between service status polls"
    )
    timeout_seconds: float = Field(
        default=600.0, gt=0, description="Seconds to wait for the service to stabilise"
    )


class DeploySettings(BaseSettings):
    """Main runtime configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    aws: AWSSettings
    rollout: RolloutSettings


def get_settings() -> DeploySettings:
    """Load and return the runtime configuration.

    The sub-configs are populated from the environment and the user env file.
    """
    return DeploySettings(aws=AWSSettings(), rollout=RolloutSettings())
