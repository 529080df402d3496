"""IAM role helpers for ECS deployment."""

import json
import logging
from typing import Any, cast

from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import (
    PreconditionFailed,
    RemoteCallFailed,
    ResourceNotFound,
    error_code,
)
from ecs_deploy.core.deployments.aws_ecs.models import ExecutionContext, RoleSpec
from ecs_deploy.core.deployments.aws_ecs.naming import execution_role_name, task_role_name

logger = logging.getLogger(__name__)

EXECUTION_ROLE_POLICY_ARN = "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
TASK_ROLE_POLICY_ARN = "arn:aws:iam::aws:policy/CloudWatchLogsFullAccess"


def ensure_roles(session: Any, project_name: str, ctx: ExecutionContext) -> tuple[str, str]:
    """Ensure execution and task roles exist.

    Returns:
        The execution role ARN and the task role ARN.
    """
    ctx.report("Ensuring task execution role")
    exec_role_arn = ensure_role(session, execution_role_spec(project_name), ctx)

    ctx.report("Ensuring task role for CloudWatch access")
    task_role_arn = ensure_role(session, task_role_spec(project_name), ctx)

    return exec_role_arn, task_role_arn


def ensure_role(session: Any, spec: RoleSpec, ctx: ExecutionContext) -> str:
    """Create a role if needed, attach its managed policies and return its ARN."""
    if not spec.trust_policy:
        raise PreconditionFailed(f"Role {spec.name} has no assume-role trust policy.")

    iam = session.client("iam")
    try:
        role_arn = _get_role_arn(iam, spec.name)
    except ResourceNotFound:
        ctx.report(f"Creating IAM role {spec.name}")
        role_arn = _create_role(iam, spec)
    else:
        ctx.report(f"IAM role exists: {spec.name}")

    for policy_arn in spec.managed_policy_arns:
        _attach_managed_policy(iam, spec.name, policy_arn)

    return role_arn


def execution_role_spec(project_name: str) -> RoleSpec:
    """Return the task execution role shape."""
    return RoleSpec(
        name=execution_role_name(project_name),
        trust_policy=_ecs_trust_policy(),
        managed_policy_arns=(EXECUTION_ROLE_POLICY_ARN,),
    )


def task_role_spec(project_name: str) -> RoleSpec:
    """Return the task role shape."""
    return RoleSpec(
        name=task_role_name(project_name),
        trust_policy=_ecs_trust_policy(),
        managed_policy_arns=(TASK_ROLE_POLICY_ARN,),
    )


def _get_role_arn(iam: Any, role_name: str) -> str:
    """Return the ARN of an existing role."""
    try:
        response = iam.get_role(RoleName=role_name)
    except ClientError as exc:
        if error_code(exc) == "NoSuchEntity":
            raise ResourceNotFound(f"IAM role {role_name} does not exist.") from exc
        raise RemoteCallFailed("get_role", exc) from exc
    return cast(str, response["Role"]["Arn"])


def _create_role(iam: Any, spec: RoleSpec) -> str:
    """Create a role and return its ARN."""
    try:
        response = iam.create_role(
            RoleName=spec.name,
            AssumeRolePolicyDocument=json.dumps(spec.trust_policy),
        )
    except ClientError as exc:
        if error_code(exc) != "EntityAlreadyExists":
            raise RemoteCallFailed("create_role", exc) from exc
        logger.debug(f"IAM role {spec.name} was created concurrently")
        return _get_role_arn(iam, spec.name)
    return cast(str, response["Role"]["Arn"])


def _attach_managed_policy(iam: Any, role_name: str, policy_arn: str) -> None:
    """Attach a managed policy if it is missing."""
    try:
        response = iam.list_attached_role_policies(RoleName=role_name)
    except ClientError as exc:
        raise RemoteCallFailed("list_attached_role_policies", exc) from exc

    attached = {policy["PolicyArn"] for policy in response.get("AttachedPolicies", [])}
    if policy_arn in attached:
        logger.debug(f"Policy {policy_arn} already attached to {role_name}")
        return

    try:
        iam.attach_role_policy(RoleName=role_name, PolicyArn=policy_arn)
    except ClientError as exc:
        raise RemoteCallFailed("attach_role_policy", exc) from exc


def _ecs_trust_policy() -> dict[str, Any]:
    """Return the ECS task trust policy."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "ecs-tasks.amazonaws.com"},
                "Action": "sts:AssumeRole",
            }
        ],
    }
