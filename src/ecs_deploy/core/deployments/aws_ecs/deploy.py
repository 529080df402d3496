"""Deployment entrypoint for ECS."""

import logging
from datetime import UTC, datetime
from typing import Any

from ecs_deploy.core.deployments.aws_ecs.ecr import ensure_repository
from ecs_deploy.core.deployments.aws_ecs.ecs_tasks import ensure_cluster, register_task_definition
from ecs_deploy.core.deployments.aws_ecs.errors import PreconditionFailed
from ecs_deploy.core.deployments.aws_ecs.iam import ensure_roles
from ecs_deploy.core.deployments.aws_ecs.images import DockerImagePublisher, ImagePublisher
from ecs_deploy.core.deployments.aws_ecs.models import (
    DeploymentRequest,
    DeploymentSummary,
    ExecutionContext,
    TaskShape,
)
from ecs_deploy.core.deployments.aws_ecs.naming import (
    execution_role_name,
    security_group_name,
    task_role_name,
)
from ecs_deploy.core.deployments.aws_ecs.network import resolve_network
from ecs_deploy.core.deployments.aws_ecs.rollout import (
    POLL_INTERVAL_SECONDS,
    ROLLOUT_TIMEOUT_SECONDS,
    Clock,
    RolloutMonitor,
)
from ecs_deploy.core.deployments.aws_ecs.services import reconcile_service
from ecs_deploy.core.deployments.aws_ecs.session import get_identity

logger = logging.getLogger(__name__)


def run_deployment(
    session: Any,
    request: DeploymentRequest,
    ctx: ExecutionContext,
    *,
    publisher: ImagePublisher | None = None,
    clock: Clock | None = None,
    poll_interval: float = POLL_INTERVAL_SECONDS,
    timeout: float = ROLLOUT_TIMEOUT_SECONDS,
) -> DeploymentSummary:
    """Build, push and roll out the project to ECS.

    Steps run strictly in order and any failure aborts the remaining ones.
    Resources created before a failure are left in place; re-running is safe
    because every provisioning step reuses what already exists.

    Args:
        session: boto3 session for the target account and region.
        request: Resolved deployment inputs.
        ctx: Execution context (reporter, verbose and dry-run flags).
        publisher: Image build/push collaborator; docker by default.
        clock: Time source for the rollout monitor.
        poll_interval: Seconds between rollout polls.
        timeout: Seconds to wait for the rollout to stabilise.

    Returns:
        Summary of the deployed service.
    """
    dockerfile = request.project_dir / "Dockerfile"
    if not dockerfile.is_file():
        raise PreconditionFailed(f"Dockerfile not found in {request.project_dir}.")

    if ctx.dry_run:
        _report_plan(request, ctx)
        return DeploymentSummary(
            cluster_name=request.cluster_name,
            service_name=request.service_name,
            repository_uri=request.repository_name,
            region=request.region,
            environment=request.environment,
            dry_run=True,
        )

    publisher = publisher or DockerImagePublisher()

    ctx.report("Checking AWS credentials")
    identity = get_identity(session)
    ctx.report(f"Using AWS account {identity['Account']} ({identity['Arn']})")

    publisher.build(request.project_dir, request.local_image, ctx)

    repository_uri = ensure_repository(session, request.repository_name, ctx)
    ensure_cluster(session, request.cluster_name, ctx)
    exec_role_arn, task_role_arn = ensure_roles(session, request.project_name, ctx)
    network = resolve_network(session, request.project_name, request.container_port, ctx)

    image_uri = publisher.push(
        session, request.local_image, repository_uri, request.image_tag, ctx
    )

    shape = TaskShape(
        family=request.task_family,
        container_name=request.repository_name,
        container_port=request.container_port,
        cpu=request.task_cpu,
        memory=request.task_memory,
        region=request.region,
        execution_role_arn=exec_role_arn,
        task_role_arn=task_role_arn,
    )
    task_definition = register_task_definition(session, shape, image_uri, ctx)

    started_at = datetime.now(UTC)
    result = reconcile_service(
        session,
        request.cluster_name,
        request.service_name,
        task_definition.arn,
        network,
        ctx,
    )
    logger.debug(f"Service {request.service_name} {result.action.value}")

    monitor = RolloutMonitor(
        session,
        request.cluster_name,
        request.service_name,
        ctx,
        clock=clock,
        poll_interval=poll_interval,
        timeout=timeout,
        since=started_at,
        task_definition_arn=task_definition.arn,
    )
    rollout = monitor.wait()
    logger.debug(f"Rollout finished after {rollout.polls} polls in {rollout.elapsed_seconds:.0f}s")

    return DeploymentSummary(
        cluster_name=request.cluster_name,
        service_name=request.service_name,
        repository_uri=repository_uri,
        region=request.region,
        environment=request.environment,
        task_definition_arn=task_definition.arn,
        image_uri=image_uri,
        account_id=identity["Account"],
    )


def _report_plan(request: DeploymentRequest, ctx: ExecutionContext) -> None:
    """Report the steps a deployment would take."""
    ctx.report(f"Would build Docker image {request.local_image}")
    ctx.report(f"Would ensure ECR repository {request.repository_name}")
    ctx.report(f"Would ensure ECS cluster {request.cluster_name}")
    ctx.report(
        "Would ensure IAM roles "
        f"{execution_role_name(request.project_name)} and {task_role_name(request.project_name)}"
    )
    ctx.report(
        f"Would use the default VPC with security group {security_group_name(request.project_name)}"
    )
    ctx.report(f"Would push {request.repository_name}:{request.image_tag}")
    ctx.report(f"Would register task definition {request.task_family}")
    ctx.report(f"Would create or update ECS service {request.service_name}")
    ctx.report("Would wait for the service to reach steady state")
