"""ECS task definition and cluster helpers."""

import copy
import logging
from typing import Any, cast

from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import (
    RemoteCallFailed,
    error_code,
    error_message,
)
from ecs_deploy.core.deployments.aws_ecs.models import (
    ExecutionContext,
    TaskDefinitionRef,
    TaskShape,
)

logger = logging.getLogger(__name__)

# Fields of a described task definition that register_task_definition accepts.
REGISTRABLE_FIELDS = (
    "family",
    "taskRoleArn",
    "executionRoleArn",
    "networkMode",
    "containerDefinitions",
    "volumes",
    "placementConstraints",
    "requiresCompatibilities",
    "cpu",
    "memory",
    "pidMode",
    "ipcMode",
    "proxyConfiguration",
    "inferenceAccelerators",
    "ephemeralStorage",
    "runtimePlatform",
)


def ensure_cluster(session: Any, cluster_name: str, ctx: ExecutionContext) -> str:
    """Ensure an ACTIVE ECS cluster exists and return its ARN."""
    ecs = session.client("ecs")
    try:
        response = ecs.describe_clusters(clusters=[cluster_name])
    except ClientError as exc:
        if error_code(exc) != "ClusterNotFoundException":
            raise RemoteCallFailed("describe_clusters", exc) from exc
        response = {}

    clusters = response.get("clusters", [])
    if clusters:
        cluster = clusters[0]
        status = str(cluster.get("status", ""))
        if status == "ACTIVE":
            ctx.report(f"ECS cluster exists: {cluster_name}")
            return cast(str, cluster["clusterArn"])
        logger.debug(f"ECS cluster {cluster_name} has status {status}; recreating")

    # Missing and non-ACTIVE clusters are both created; create_cluster is idempotent.
    ctx.report(f"Creating ECS cluster {cluster_name}")
    try:
        response = ecs.create_cluster(
            clusterName=cluster_name,
            capacityProviders=["FARGATE"],
            defaultCapacityProviderStrategy=[{"capacityProvider": "FARGATE", "weight": 1}],
        )
    except ClientError as exc:
        raise RemoteCallFailed("create_cluster", exc) from exc
    return cast(str, response["cluster"]["clusterArn"])


def ensure_log_group(session: Any, log_group_name: str) -> None:
    """Ensure a CloudWatch log group exists."""
    logs = session.client("logs")
    try:
        logs.create_log_group(logGroupName=log_group_name)
    except ClientError as exc:
        if error_code(exc) != "ResourceAlreadyExistsException":
            raise RemoteCallFailed("create_log_group", exc) from exc


def describe_latest_task_definition(ecs: Any, family: str) -> dict[str, Any] | None:
    """Return the latest ACTIVE revision of a family, or None if it has none."""
    try:
        response = ecs.describe_task_definition(taskDefinition=family)
    except ClientError as exc:
        if (
            error_code(exc) == "ClientException"
            and "unable to describe task definition" in error_message(exc).lower()
        ):
            return None
        raise RemoteCallFailed("describe_task_definition", exc) from exc
    return cast(dict[str, Any], response["taskDefinition"])


def register_task_definition(
    session: Any,
    shape: TaskShape,
    image_uri: str,
    ctx: ExecutionContext,
) -> TaskDefinitionRef:
    """Register a new revision of the family running ``image_uri``.

    The previous revision, when there is one, is copied with only the container
    images replaced. Otherwise the revision is built from ``shape``.
    """
    ecs = session.client("ecs")
    previous = describe_latest_task_definition(ecs, shape.family)
    if previous is None:
        ctx.report(f"No previous task definition for {shape.family}; using defaults")
        ctx.report("Ensuring CloudWatch log group for task logs")
        ensure_log_group(session, shape.log_group_name)
        request = default_task_definition(shape, image_uri)
    else:
        ctx.report(f"Deriving task definition from {shape.family}:{previous.get('revision')}")
        request = derive_task_definition(previous, image_uri, shape)

    logger.debug(f"Registering task definition {request}")
    try:
        response = ecs.register_task_definition(**request)
    except ClientError as exc:
        raise RemoteCallFailed("register_task_definition", exc) from exc

    task_definition = response["taskDefinition"]
    ref = TaskDefinitionRef(
        family=str(task_definition["family"]),
        revision=int(task_definition["revision"]),
        arn=str(task_definition["taskDefinitionArn"]),
    )
    ctx.report(f"Registered task definition {ref}")
    return ref


def derive_task_definition(
    previous: dict[str, Any],
    image_uri: str,
    shape: TaskShape | None = None,
) -> dict[str, Any]:
    """Copy a described task definition, replacing only container images."""
    request = {
        key: copy.deepcopy(previous[key])
        for key in REGISTRABLE_FIELDS
        if previous.get(key) is not None
    }
    for container in request.get("containerDefinitions", []):
        container["image"] = image_uri

    if shape is not None:
        request.setdefault("executionRoleArn", shape.execution_role_arn)
        request.setdefault("taskRoleArn", shape.task_role_arn)
    return request


def default_task_definition(shape: TaskShape, image_uri: str) -> dict[str, Any]:
    """Build a single-container Fargate task definition."""
    return {
        "family": shape.family,
        "networkMode": "awsvpc",
        "requiresCompatibilities": ["FARGATE"],
        "cpu": shape.cpu,
        "memory": shape.memory,
        "executionRoleArn": shape.execution_role_arn,
        "taskRoleArn": shape.task_role_arn,
        "containerDefinitions": [
            {
                "name": shape.container_name,
                "image": image_uri,
                "essential": True,
                "portMappings": [{"containerPort": shape.container_port, "protocol": "tcp"}],
                "logConfiguration": {
                    "logDriver": "awslogs",
                    "options": {
                        "awslogs-group": shape.log_group_name,
                        "awslogs-region": shape.region,
                        "awslogs-stream-prefix": "ecs",
                    },
                },
            }
        ],
    }
