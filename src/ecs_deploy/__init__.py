"""ecs-deploy - build, push and roll out containers to AWS ECS."""

from ecs_deploy.core.deployments.aws_ecs import (
    DeploymentRequest,
    DeploymentSummary,
    ExecutionContext,
    build_request,
    run_deployment,
)
from ecs_deploy.core.settings import DeploySettings, get_settings

__all__ = [
    "DeploymentRequest",
    "DeploymentSummary",
    "DeploySettings",
    "ExecutionContext",
    "build_request",
    "get_settings",
    "run_deployment",
]
