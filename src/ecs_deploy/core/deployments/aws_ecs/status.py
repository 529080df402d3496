"""Deployment status checks for ECS."""

from boto3.session import Session
from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import error_code, error_message
from ecs_deploy.core.deployments.aws_ecs.models import DeploymentRequest
from ecs_deploy.core.deployments.aws_ecs.naming import (
    execution_role_name,
    security_group_name,
    task_role_name,
)

STATUS_KEY_ECR_REPOSITORY = "ECR repository"
STATUS_KEY_ECS_CLUSTER = "ECS cluster"
STATUS_KEY_IAM_ROLES = "IAM roles"
STATUS_KEY_SECURITY_GROUP = "Security group"
STATUS_KEY_LOG_GROUP = "Log group"
STATUS_KEY_TASK_DEFINITION = "Task definition"
STATUS_KEY_ECS_SERVICE = "ECS service"


def check_deployment(session: Session, request: DeploymentRequest) -> dict[str, str]:
    """Check whether deployment resources exist."""
    results: dict[str, str] = {}

    results[STATUS_KEY_ECR_REPOSITORY] = _check_ecr_repo(session, request.repository_name)
    results[STATUS_KEY_ECS_CLUSTER] = _check_cluster(session, request.cluster_name)
    results[STATUS_KEY_IAM_ROLES] = _check_roles(
        session,
        [execution_role_name(request.project_name), task_role_name(request.project_name)],
    )
    results[STATUS_KEY_SECURITY_GROUP] = _check_security_group(
        session, security_group_name(request.project_name)
    )
    results[STATUS_KEY_LOG_GROUP] = _check_log_group(session, f"/ecs/{request.task_family}")
    results[STATUS_KEY_TASK_DEFINITION] = _check_task_definition(session, request.task_family)
    results[STATUS_KEY_ECS_SERVICE] = _check_service(
        session, request.cluster_name, request.service_name
    )

    return results


def _check_ecr_repo(session: Session, name: str) -> str:
    ecr = session.client("ecr")
    try:
        ecr.describe_repositories(repositoryNames=[name])
    except ClientError as exc:
        code = error_code(exc)
        if code == "RepositoryNotFoundException":
            return "missing"
        return f"error: {code}"
    return "present"


def _check_cluster(session: Session, cluster_name: str) -> str:
    ecs = session.client("ecs")
    try:
        response = ecs.describe_clusters(clusters=[cluster_name])
    except ClientError as exc:
        return f"error: {error_code(exc)}"
    clusters = response.get("clusters", [])
    if not clusters:
        return "missing"
    if clusters[0].get("status") != "ACTIVE":
        return f"status {clusters[0].get('status')}"
    return "present"


def _check_roles(session: Session, role_names: list[str]) -> str:
    iam = session.client("iam")
    missing = 0
    for role_name in role_names:
        try:
            iam.get_role(RoleName=role_name)
        except ClientError as exc:
            code = error_code(exc)
            if code == "NoSuchEntity":
                missing += 1
            else:
                return f"error: {code}"
    if missing == 0:
        return "present"
    return f"missing {missing}/{len(role_names)}"


def _check_security_group(session: Session, name: str) -> str:
    ec2 = session.client("ec2")
    try:
        vpcs = ec2.describe_vpcs(Filters=[{"Name": "is-default", "Values": ["true"]}])
    except ClientError as exc:
        return f"error: {error_code(exc)}"
    if not vpcs.get("Vpcs"):
        return "no default VPC"

    vpc_id = vpcs["Vpcs"][0]["VpcId"]
    try:
        response = ec2.describe_security_groups(
            Filters=[
                {"Name": "group-name", "Values": [name]},
                {"Name": "vpc-id", "Values": [vpc_id]},
            ]
        )
    except ClientError as exc:
        return f"error: {error_code(exc)}"
    return "present" if response.get("SecurityGroups") else "missing"


def _check_log_group(session: Session, log_group_name: str) -> str:
    logs = session.client("logs")
    try:
        response = logs.describe_log_groups(logGroupNamePrefix=log_group_name)
    except ClientError as exc:
        return f"error: {error_code(exc)}"
    groups = [group["logGroupName"] for group in response.get("logGroups", [])]
    return "present" if log_group_name in groups else "missing"


def _check_task_definition(session: Session, family: str) -> str:
    ecs = session.client("ecs")
    try:
        response = ecs.describe_task_definition(taskDefinition=family)
    except ClientError as exc:
        if (
            error_code(exc) == "ClientException"
            and "unable to describe task definition" in error_message(exc).lower()
        ):
            return "missing"
        return f"error: {error_code(exc)}"

    task_definition = response.get("taskDefinition", {})
    status = str(task_definition.get("status", "")).upper()
    if status and status != "ACTIVE":
        return f"status {status}"
    return f"present (revision {task_definition.get('revision')})"


def _check_service(session: Session, cluster_name: str, service_name: str) -> str:
    ecs = session.client("ecs")
    try:
        response = ecs.describe_services(cluster=cluster_name, services=[service_name])
    except ClientError as exc:
        code = error_code(exc)
        if code == "ClusterNotFoundException":
            return "missing"
        return f"error: {code}"

    services = response.get("services", [])
    if not services:
        return "missing"
    service = services[0]
    if service.get("status") != "ACTIVE":
        return f"status {service.get('status')}"

    deployments = service.get("deployments", [])
    running = int(service.get("runningCount", 0))
    desired = int(service.get("desiredCount", 0))
    if len(deployments) > 1 or running != desired:
        return f"rolling {running}/{desired} ({len(deployments)} deployments)"
    return f"present {running}/{desired}"
