"""ECR helpers for ECS deployment."""

import logging
from typing import Any, cast

from boto3.session import Session
from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import (
    RemoteCallFailed,
    ResourceNotFound,
    error_code,
)
from ecs_deploy.core.deployments.aws_ecs.models import ExecutionContext

logger = logging.getLogger(__name__)


def ensure_repository(session: Session, name: str, ctx: ExecutionContext) -> str:
    """Ensure an ECR repository exists and return its URI."""
    ecr = session.client("ecr")
    try:
        uri = describe_repository_uri(ecr, name)
    except ResourceNotFound:
        logger.debug(f"ECR repository {name} not found")
    else:
        ctx.report(f"ECR repository exists: {uri}")
        return uri

    ctx.report(f"Creating ECR repository {name}")
    try:
        response = ecr.create_repository(
            repositoryName=name,
            imageScanningConfiguration={"scanOnPush": True},
        )
    except ClientError as exc:
        if error_code(exc) != "RepositoryAlreadyExistsException":
            raise RemoteCallFailed("create_repository", exc) from exc
        logger.debug(f"ECR repository {name} was created concurrently")
        return describe_repository_uri(ecr, name)

    return cast(str, response["repository"]["repositoryUri"])


def describe_repository_uri(ecr: Any, name: str) -> str:
    """Return the URI of an existing repository.

    Raises:
        ResourceNotFound: The repository does not exist.
        RemoteCallFailed: Any other ECR error.
    """
    try:
        response = ecr.describe_repositories(repositoryNames=[name])
    except ClientError as exc:
        if error_code(exc) == "RepositoryNotFoundException":
            raise ResourceNotFound(f"ECR repository {name} does not exist.") from exc
        raise RemoteCallFailed("describe_repositories", exc) from exc

    repositories = response.get("repositories", [])
    if not repositories:
        raise ResourceNotFound(f"ECR repository {name} does not exist.")
    return cast(str, repositories[0]["repositoryUri"])
