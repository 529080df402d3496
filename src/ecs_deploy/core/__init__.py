"""ecs-deploy core modules."""

from ecs_deploy.core.settings import AWSSettings, DeploySettings, RolloutSettings, get_settings

__all__ = [
    "AWSSettings",
    "DeploySettings",
    "RolloutSettings",
    "get_settings",
]
