"""AWS ECS deployment helpers."""

from ecs_deploy.core.deployments.aws_ecs.deploy import run_deployment
from ecs_deploy.core.deployments.aws_ecs.ecr import ensure_repository
from ecs_deploy.core.deployments.aws_ecs.ecs_tasks import (
    ensure_cluster,
    ensure_log_group,
    register_task_definition,
)
from ecs_deploy.core.deployments.aws_ecs.errors import (
    DeploymentError,
    ImagePublishFailed,
    NoDefaultNetwork,
    PreconditionFailed,
    RemoteCallFailed,
    ResourceNotFound,
    RolloutFailed,
    RolloutTimedOut,
)
from ecs_deploy.core.deployments.aws_ecs.iam import ensure_role, ensure_roles
from ecs_deploy.core.deployments.aws_ecs.images import DockerImagePublisher, ImagePublisher
from ecs_deploy.core.deployments.aws_ecs.models import (
    DeploymentRequest,
    DeploymentSummary,
    ExecutionContext,
    NetworkPlacement,
    RoleSpec,
    SecurityGroupInfo,
    ServiceSnapshot,
    TaskDefinitionRef,
    TaskShape,
)
from ecs_deploy.core.deployments.aws_ecs.naming import build_request
from ecs_deploy.core.deployments.aws_ecs.network import resolve_network
from ecs_deploy.core.deployments.aws_ecs.rollout import (
    RolloutMonitor,
    RolloutResult,
    RolloutState,
    SystemClock,
    classify_event,
)
from ecs_deploy.core.deployments.aws_ecs.security_groups import ensure_security_group
from ecs_deploy.core.deployments.aws_ecs.services import reconcile_service
from ecs_deploy.core.deployments.aws_ecs.session import create_session, get_identity
from ecs_deploy.core.deployments.aws_ecs.status import check_deployment

__all__ = [
    "DeploymentError",
    "DeploymentRequest",
    "DeploymentSummary",
    "DockerImagePublisher",
    "ExecutionContext",
    "ImagePublishFailed",
    "ImagePublisher",
    "NetworkPlacement",
    "NoDefaultNetwork",
    "PreconditionFailed",
    "RemoteCallFailed",
    "ResourceNotFound",
    "RoleSpec",
    "RolloutFailed",
    "RolloutMonitor",
    "RolloutResult",
    "RolloutState",
    "RolloutTimedOut",
    "SecurityGroupInfo",
    "ServiceSnapshot",
    "SystemClock",
    "TaskDefinitionRef",
    "TaskShape",
    "build_request",
    "check_deployment",
    "classify_event",
    "create_session",
    "ensure_cluster",
    "ensure_log_group",
    "ensure_repository",
    "ensure_role",
    "ensure_roles",
    "ensure_security_group",
    "get_identity",
    "reconcile_service",
    "register_task_definition",
    "resolve_network",
    "run_deployment",
]
