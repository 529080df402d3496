"""Security group management for ECS."""

import logging
from collections.abc import Iterable
from typing import Any

from boto3.session import Session
from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import RemoteCallFailed, error_code
from ecs_deploy.core.deployments.aws_ecs.models import ExecutionContext, SecurityGroupInfo

logger = logging.getLogger(__name__)

PUBLIC_INGRESS_PORTS = (80, 443)
ANY_IPV4 = "0.0.0.0/0"


def ensure_security_group(
    session: Session,
    vpc_id: str,
    name: str,
    description: str,
    ingress_ports: Iterable[int],
    ctx: ExecutionContext,
) -> SecurityGroupInfo:
    """Reuse the named security group in the VPC or create it with open ingress ports.

    Ingress is authorized on every call so a group left without rules by an
    interrupted run is repaired on the next one.
    """
    ec2 = session.client("ec2")
    ports = list(ingress_ports)
    existing = find_security_group(ec2, vpc_id, name)
    if existing is not None:
        ctx.report(f"Security group exists: {existing.group_id} ({name})")
        _authorize_ingress(ec2, existing.group_id, ports)
        return existing

    ctx.report(f"Creating security group {name}")
    try:
        response = ec2.create_security_group(
            VpcId=vpc_id,
            GroupName=name,
            Description=description,
            TagSpecifications=[
                {
                    "ResourceType": "security-group",
                    "Tags": [{"Key": "Name", "Value": name}],
                }
            ],
        )
    except ClientError as exc:
        if error_code(exc) != "InvalidGroup.Duplicate":
            raise RemoteCallFailed("create_security_group", exc) from exc
        logger.debug(f"Security group {name} was created concurrently")
        existing = find_security_group(ec2, vpc_id, name)
        if existing is None:
            raise RemoteCallFailed("create_security_group", exc) from exc
        _authorize_ingress(ec2, existing.group_id, ports)
        return existing

    group_id = response["GroupId"]
    _authorize_ingress(ec2, group_id, ports)

    return SecurityGroupInfo(
        group_id=group_id,
        name=name,
        description=description,
        created=True,
    )


def find_security_group(ec2: Any, vpc_id: str, name: str) -> SecurityGroupInfo | None:
    """Return the security group with this name in the VPC, if any."""
    try:
        response = ec2.describe_security_groups(
            Filters=[
                {"Name": "group-name", "Values": [name]},
                {"Name": "vpc-id", "Values": [vpc_id]},
            ]
        )
    except ClientError as exc:
        raise RemoteCallFailed("describe_security_groups", exc) from exc

    groups = response.get("SecurityGroups", [])
    if not groups:
        return None
    group = groups[0]
    return SecurityGroupInfo(
        group_id=str(group["GroupId"]),
        name=str(group.get("GroupName", name)),
        description=str(group.get("Description", "")),
    )


def ingress_ports_for(container_port: int) -> list[int]:
    """Return the ports opened to the internet for a service."""
    return sorted({*PUBLIC_INGRESS_PORTS, container_port})


def _authorize_ingress(ec2: Any, group_id: str, ports: Iterable[int]) -> None:
    """Open TCP ports from any IPv4 source."""
    permissions = [
        {
            "IpProtocol": "tcp",
            "FromPort": port,
            "ToPort": port,
            "IpRanges": [{"CidrIp": ANY_IPV4}],
        }
        for port in ports
    ]
    try:
        ec2.authorize_security_group_ingress(GroupId=group_id, IpPermissions=permissions)
    except ClientError as exc:
        if error_code(exc) != "InvalidPermission.Duplicate":
            raise RemoteCallFailed("authorize_security_group_ingress", exc) from exc
