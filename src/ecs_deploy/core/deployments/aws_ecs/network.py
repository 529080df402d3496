"""Default VPC and subnet resolution for ECS."""

from typing import Any

from boto3.session import Session
from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import (
    NoDefaultNetwork,
    PreconditionFailed,
    RemoteCallFailed,
)
from ecs_deploy.core.deployments.aws_ecs.models import ExecutionContext, NetworkPlacement
from ecs_deploy.core.deployments.aws_ecs.naming import security_group_name
from ecs_deploy.core.deployments.aws_ecs.security_groups import (
    ensure_security_group,
    ingress_ports_for,
)


def resolve_network(
    session: Session,
    project_name: str,
    container_port: int,
    ctx: ExecutionContext,
) -> NetworkPlacement:
    """Place the service in the default VPC behind the project's security group."""
    ec2 = session.client("ec2")

    ctx.report("Resolving default VPC")
    vpc_id = default_vpc_id(ec2)
    subnet_ids = subnet_ids_in(ec2, vpc_id)
    if not subnet_ids:
        raise PreconditionFailed(f"Default VPC {vpc_id} has no subnets.")
    ctx.report(f"Using VPC {vpc_id} with {len(subnet_ids)} subnets")

    group = ensure_security_group(
        session,
        vpc_id,
        security_group_name(project_name),
        f"SG for {project_name}",
        ingress_ports_for(container_port),
        ctx,
    )
    return NetworkPlacement(
        vpc_id=vpc_id,
        subnet_ids=subnet_ids,
        security_group_id=group.group_id,
        assign_public_ip=True,
    )


def default_vpc_id(ec2: Any) -> str:
    """Return the default VPC id for the region."""
    try:
        response = ec2.describe_vpcs(Filters=[{"Name": "is-default", "Values": ["true"]}])
    except ClientError as exc:
        raise RemoteCallFailed("describe_vpcs", exc) from exc

    vpcs = response.get("Vpcs", [])
    if not vpcs:
        raise NoDefaultNetwork(
            "No default VPC found in this region. Create one with "
            "`aws ec2 create-default-vpc` and retry."
        )
    return str(vpcs[0]["VpcId"])


def subnet_ids_in(ec2: Any, vpc_id: str) -> list[str]:
    """Return every subnet id in the VPC."""
    try:
        response = ec2.describe_subnets(Filters=[{"Name": "vpc-id", "Values": [vpc_id]}])
    except ClientError as exc:
        raise RemoteCallFailed("describe_subnets", exc) from exc
    return [str(subnet["SubnetId"]) for subnet in response.get("Subnets", [])]
