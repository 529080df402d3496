"""Deterministic resource names derived from the project."""

import json
import re
import tomllib
from pathlib import Path

from ecs_deploy.core.deployments.aws_ecs.models import DeploymentRequest

DEFAULT_PROJECT_NAME = "my-app"


def sanitize_name(value: str) -> str:
    """Return a name safe for ECR, ECS and IAM resources.

    Runs of unsupported characters become a single hyphen, and hyphens never
    lead or trail the result.
    """
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")


def derive_project_name(project_dir: Path) -> str:
    """Read the project name from its manifest, falling back to the directory name."""
    package_json = project_dir / "package.json"
    if package_json.is_file():
        try:
            name = json.loads(package_json.read_text(encoding="utf-8")).get("name")
        except (json.JSONDecodeError, AttributeError):
            name = None
        if name:
            return str(name)

    pyproject = project_dir / "pyproject.toml"
    if pyproject.is_file():
        try:
            manifest = tomllib.loads(pyproject.read_text(encoding="utf-8"))
            name = manifest.get("project", {}).get("name")
        except tomllib.TOMLDecodeError:
            name = None
        if name:
            return str(name)

    return project_dir.resolve().name or DEFAULT_PROJECT_NAME


def build_request(
    project_dir: Path,
    environment: str,
    region: str,
    *,
    cluster_name: str | None = None,
    service_name: str | None = None,
    aws_profile: str | None = None,
    container_port: int = 3000,
    task_cpu: str = "256",
    task_memory: str = "512",
    image_tag: str = "latest",
) -> DeploymentRequest:
    """Resolve every resource name for a deployment.

    Args:
        project_dir: Directory containing the Dockerfile.
        environment: Deployment environment, e.g. production.
        region: AWS region.
        cluster_name: Optional cluster name override.
        service_name: Optional service name override.
        aws_profile: Optional AWS profile.
        container_port: Port the container listens on.
        task_cpu: Fargate CPU units.
        task_memory: Fargate memory in MiB.
        image_tag: Tag pushed to the repository.

    Returns:
        The resolved deployment request.
    """
    project_dir = project_dir.resolve()
    project_name = sanitize_name(derive_project_name(project_dir)) or DEFAULT_PROJECT_NAME
    return DeploymentRequest(
        project_dir=project_dir,
        project_name=project_name,
        environment=environment,
        region=region,
        cluster_name=cluster_name or f"{project_name}-cluster",
        service_name=service_name or f"{project_name}-service",
        repository_name=f"{project_name}-{sanitize_name(environment)}",
        aws_profile=aws_profile,
        container_port=container_port,
        task_cpu=task_cpu,
        task_memory=task_memory,
        image_tag=image_tag,
    )


def execution_role_name(project_name: str) -> str:
    """Return the task execution role name."""
    return f"{project_name}-task-execution"


def task_role_name(project_name: str) -> str:
    """Return the task role name."""
    return f"{project_name}-task"


def security_group_name(project_name: str) -> str:
    """Return the security group name."""
    return f"{project_name}-sg"
