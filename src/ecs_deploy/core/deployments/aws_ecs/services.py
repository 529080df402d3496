"""ECS service reconciliation."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import (
    PreconditionFailed,
    RemoteCallFailed,
    error_code,
    error_message,
)
from ecs_deploy.core.deployments.aws_ecs.models import (
    ExecutionContext,
    NetworkPlacement,
    ServiceSnapshot,
)

logger = logging.getLogger(__name__)


class ServiceState(Enum):
    """Observed state of a service before reconciliation."""

    ABSENT = "absent"
    ACTIVE_STABLE = "active-stable"
    ACTIVE_ROLLING = "active-rolling"
    NOT_ACTIVE = "not-active"


class ReconcileAction(Enum):
    """What reconciliation did to the service."""

    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of reconciling a service."""

    action: ReconcileAction
    previous_state: ServiceState
    service_arn: str


def describe_service(ecs: Any, cluster_name: str, service_name: str) -> ServiceSnapshot | None:
    """Return the service snapshot, or None when the service does not exist."""
    try:
        response = ecs.describe_services(cluster=cluster_name, services=[service_name])
    except ClientError as exc:
        raise RemoteCallFailed("describe_services", exc) from exc

    services = response.get("services", [])
    if not services:
        logger.debug(f"Service {service_name} missing: {response.get('failures', [])}")
        return None
    return ServiceSnapshot.from_api(services[0])


def service_state(snapshot: ServiceSnapshot | None) -> ServiceState:
    """Classify a service snapshot."""
    if snapshot is None:
        return ServiceState.ABSENT
    if snapshot.status != "ACTIVE":
        return ServiceState.NOT_ACTIVE
    if snapshot.is_stable():
        return ServiceState.ACTIVE_STABLE
    return ServiceState.ACTIVE_ROLLING


def reconcile_service(
    session: Any,
    cluster_name: str,
    service_name: str,
    task_definition_arn: str,
    network: NetworkPlacement,
    ctx: ExecutionContext,
    desired_count: int = 1,
) -> ReconcileResult:
    """Create the service or roll it onto a new task definition.

    Existing services are always forced onto a new deployment so that tasks
    restart with the freshly pushed image, even when the task definition
    content did not change.
    """
    ecs = session.client("ecs")
    snapshot = describe_service(ecs, cluster_name, service_name)
    state = service_state(snapshot)

    if state is ServiceState.NOT_ACTIVE and snapshot is not None:
        raise PreconditionFailed(
            f"ECS service {service_name} has status {snapshot.status} and cannot be updated."
        )

    if state is ServiceState.ABSENT:
        created_arn = _create_service(
            ecs, cluster_name, service_name, task_definition_arn, network, desired_count, ctx
        )
        if created_arn is not None:
            return ReconcileResult(ReconcileAction.CREATED, state, created_arn)
        snapshot = describe_service(ecs, cluster_name, service_name)
        state = service_state(snapshot)
        if snapshot is None or state is ServiceState.NOT_ACTIVE:
            raise PreconditionFailed(
                f"ECS service {service_name} could not be created or found in {cluster_name}."
            )

    service_arn = _update_service(ecs, cluster_name, service_name, task_definition_arn, ctx)
    return ReconcileResult(ReconcileAction.UPDATED, state, service_arn)


def _create_service(
    ecs: Any,
    cluster_name: str,
    service_name: str,
    task_definition_arn: str,
    network: NetworkPlacement,
    desired_count: int,
    ctx: ExecutionContext,
) -> str | None:
    """Create the service; return None when it already exists."""
    ctx.report(f"Creating ECS service {service_name}")
    try:
        response = ecs.create_service(
            cluster=cluster_name,
            serviceName=service_name,
            taskDefinition=task_definition_arn,
            desiredCount=desired_count,
            launchType="FARGATE",
            enableExecuteCommand=True,
            networkConfiguration={"awsvpcConfiguration": network.awsvpc_configuration()},
        )
    except ClientError as exc:
        if (
            error_code(exc) == "InvalidParameterException"
            and "not idempotent" in error_message(exc).lower()
        ):
            logger.debug(f"ECS service {service_name} was created concurrently")
            return None
        raise RemoteCallFailed("create_service", exc) from exc
    return str(response["service"]["serviceArn"])


def _update_service(
    ecs: Any,
    cluster_name: str,
    service_name: str,
    task_definition_arn: str,
    ctx: ExecutionContext,
) -> str:
    """Point the service at a task definition and force a new deployment."""
    ctx.report(f"Updating ECS service {service_name} (forcing new deployment)")
    try:
        response = ecs.update_service(
            cluster=cluster_name,
            service=service_name,
            taskDefinition=task_definition_arn,
            forceNewDeployment=True,
        )
    except ClientError as exc:
        raise RemoteCallFailed("update_service", exc) from exc
    return str(response["service"]["serviceArn"])
