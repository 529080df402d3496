"""Data models for ECS deployment."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _log_report(message: str) -> None:
    logger.info(message)


@dataclass(frozen=True)
class ExecutionContext:
    """Run-wide flags and the progress reporter passed to every step."""

    reporter: Callable[[str], None] = _log_report
    verbose: bool = False
    dry_run: bool = False

    def report(self, message: str) -> None:
        """Report progress to the user."""
        self.reporter(message)


@dataclass(frozen=True)
class DeploymentRequest:
    """Resolved inputs for one deployment attempt."""

    project_dir: Path
    project_name: str
    environment: str
    region: str
    cluster_name: str
    service_name: str
    repository_name: str
    aws_profile: str | None = None
    container_port: int = 3000
    task_cpu: str = "256"
    task_memory: str = "512"
    image_tag: str = "latest"

    @property
    def task_family(self) -> str:
        """Task definition family for the deployment."""
        return f"{self.repository_name}-task"

    @property
    def local_image(self) -> str:
        """Local image reference built before pushing."""
        return f"{self.repository_name}:{self.image_tag}"


@dataclass(frozen=True)
class RoleSpec:
    """Desired shape of an IAM role."""

    name: str
    trust_policy: dict[str, Any]
    managed_policy_arns: tuple[str, ...] = ()


@dataclass
class SecurityGroupInfo:
    """Representation of a security group."""

    group_id: str
    name: str
    description: str
    created: bool = False


@dataclass
class NetworkPlacement:
    """Where the service's tasks run."""

    vpc_id: str
    subnet_ids: list[str] = field(default_factory=list)
    security_group_id: str = ""
    assign_public_ip: bool = True

    def awsvpc_configuration(self) -> dict[str, Any]:
        """Return the ECS awsvpc network configuration."""
        return {
            "subnets": list(self.subnet_ids),
            "securityGroups": [self.security_group_id],
            "assignPublicIp": "ENABLED" if self.assign_public_ip else "DISABLED",
        }


@dataclass(frozen=True)
class TaskShape:
    """Defaults used when a task family has no previous revision."""

    family: str
    container_name: str
    container_port: int
    cpu: str
    memory: str
    region: str
    execution_role_arn: str
    task_role_arn: str

    @property
    def log_group_name(self) -> str:
        """CloudWatch log group for the family's containers."""
        return f"/ecs/{self.family}"


@dataclass(frozen=True)
class TaskDefinitionRef:
    """Identifier of a registered task definition revision."""

    family: str
    revision: int
    arn: str

    def __str__(self) -> str:
        return f"{self.family}:{self.revision}"


@dataclass(frozen=True)
class ServiceEvent:
    """A status message reported by the ECS service scheduler."""

    event_id: str
    message: str
    created_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ServiceEvent":
        """Build an event from a describe_services payload."""
        return cls(
            event_id=str(data.get("id", "")),
            message=str(data.get("message", "")),
            created_at=data.get("createdAt"),
        )


@dataclass(frozen=True)
class DeploymentInfo:
    """One deployment of a service."""

    deployment_id: str
    status: str
    task_definition: str
    desired_count: int
    running_count: int
    pending_count: int = 0
    rollout_state: str | None = None
    rollout_state_reason: str | None = None

    @property
    def is_primary(self) -> bool:
        """Return true when this is the currently targeted deployment."""
        return self.status == "PRIMARY"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DeploymentInfo":
        """Build a deployment from a describe_services payload."""
        return cls(
            deployment_id=str(data.get("id", "")),
            status=str(data.get("status", "")),
            task_definition=str(data.get("taskDefinition", "")),
            desired_count=int(data.get("desiredCount", 0)),
            running_count=int(data.get("runningCount", 0)),
            pending_count=int(data.get("pendingCount", 0)),
            rollout_state=data.get("rolloutState"),
            rollout_state_reason=data.get("rolloutStateReason"),
        )


@dataclass(frozen=True)
class ServiceSnapshot:
    """Point-in-time view of an ECS service."""

    name: str
    arn: str
    status: str
    task_definition: str
    deployments: list[DeploymentInfo] = field(default_factory=list)
    events: list[ServiceEvent] = field(default_factory=list)

    @property
    def primary(self) -> DeploymentInfo | None:
        """Return the PRIMARY deployment, if any."""
        for deployment in self.deployments:
            if deployment.is_primary:
                return deployment
        return None

    def is_stable(self, task_definition_arn: str | None = None) -> bool:
        """Return true when the PRIMARY deployment is alone and fully running.

        A running count that matches while an older deployment is still
        draining is not stable. When ``task_definition_arn`` is given the
        PRIMARY deployment must also be running that revision.
        """
        primary = self.primary
        if primary is None or len(self.deployments) != 1:
            return False
        if task_definition_arn is not None and primary.task_definition != task_definition_arn:
            return False
        return primary.running_count == primary.desired_count

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ServiceSnapshot":
        """Build a snapshot from a describe_services payload."""
        return cls(
            name=str(data.get("serviceName", "")),
            arn=str(data.get("serviceArn", "")),
            status=str(data.get("status", "")),
            task_definition=str(data.get("taskDefinition", "")),
            deployments=[DeploymentInfo.from_api(item) for item in data.get("deployments", [])],
            events=[ServiceEvent.from_api(item) for item in data.get("events", [])],
        )


@dataclass(frozen=True)
class DeploymentSummary:
    """Outcome of a deployment attempt."""

    cluster_name: str
    service_name: str
    repository_uri: str
    region: str
    environment: str
    task_definition_arn: str | None = None
    image_uri: str | None = None
    account_id: str | None = None
    dry_run: bool = False

    def rows(self) -> list[tuple[str, str]]:
        """Return label/value pairs for display."""
        rows = [
            ("Cluster", self.cluster_name),
            ("Service", self.service_name),
            ("Repository", self.repository_uri),
            ("Region", self.region),
            ("Environment", self.environment),
        ]
        if self.task_definition_arn:
            rows.append(("Task definition", self.task_definition_arn))
        if self.image_uri:
            rows.append(("Image", self.image_uri))
        return rows
