"""Docker build and push helpers."""

import base64
import shutil
import subprocess  # nosec B404
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from botocore.exceptions import ClientError

from ecs_deploy.core.deployments.aws_ecs.errors import ImagePublishFailed, RemoteCallFailed
from ecs_deploy.core.deployments.aws_ecs.models import ExecutionContext


class ImagePublisher(Protocol):
    """Builds the local image and pushes it to a repository."""

    def build(self, project_dir: Path, local_image: str, ctx: ExecutionContext) -> None:
        """Build ``local_image`` from the project directory."""
        ...

    def push(
        self,
        session: Any,
        local_image: str,
        repository_uri: str,
        tag: str,
        ctx: ExecutionContext,
    ) -> str:
        """Push ``local_image`` and return the remote image reference."""
        ...


class DockerImagePublisher:
    """Image publisher backed by the docker CLI."""

    def build(self, project_dir: Path, local_image: str, ctx: ExecutionContext) -> None:
        build_image(project_dir, local_image, ctx)

    def push(
        self,
        session: Any,
        local_image: str,
        repository_uri: str,
        tag: str,
        ctx: ExecutionContext,
    ) -> str:
        return push_image(session, local_image, repository_uri, tag, ctx)


def build_image(project_dir: Path, local_image: str, ctx: ExecutionContext) -> None:
    """Build a docker image from the project's Dockerfile."""
    _require_docker()
    ctx.report(f"Building Docker image {local_image}")
    _docker(ctx, "build", "-t", local_image, str(project_dir))


def push_image(
    session: Any,
    local_image: str,
    repository_uri: str,
    tag: str,
    ctx: ExecutionContext,
) -> str:
    """Tag and push a local image to ECR."""
    _require_docker()

    ctx.report("Authenticating Docker with ECR")
    login = registry_login(session)
    _docker(
        ctx,
        "login",
        "--username",
        login.username,
        "--password-stdin",
        login.registry,
        stdin=login.password.encode("utf-8"),
    )

    remote_image = f"{repository_uri}:{tag}"
    ctx.report(f"Pushing image {remote_image}")
    _docker(ctx, "tag", local_image, remote_image)
    _docker(ctx, "push", remote_image)
    return remote_image


@dataclass(frozen=True)
class RegistryLogin:
    """Short-lived docker credentials for the account's ECR registry."""

    username: str
    password: str = field(repr=False)
    registry: str


def registry_login(session: Any) -> RegistryLogin:
    """Exchange the session's credentials for an ECR docker login."""
    ecr = session.client("ecr")
    try:
        # spellchecker:ignore-next-line
        response = ecr.get_authorization_token()
    except ClientError as exc:
        raise RemoteCallFailed("get_authorization_token", exc) from exc

    # spellchecker:ignore-next-line
    grant = response["authorizationData"][0]
    # Token is base64("<user>:<password>").
    decoded = base64.b64decode(grant["authorizationToken"]).decode("utf-8")
    username, password = decoded.split(":", 1)
    return RegistryLogin(username=username, password=password, registry=grant["proxyEndpoint"])


def _require_docker() -> None:
    if not shutil.which("docker"):
        raise ImagePublishFailed("Docker is required to build and push images.")


def _docker(ctx: ExecutionContext, *args: str, stdin: bytes | None = None) -> None:
    """Run a docker subcommand; output is only shown in verbose mode."""
    executable = shutil.which("docker")
    if not executable:
        raise ImagePublishFailed("Docker is required to build and push images.")
    if ctx.verbose:
        ctx.report(f"Running: docker {' '.join(args)}")

    try:
        subprocess.run(  # nosec B603
            [executable, *args],
            check=True,
            input=stdin,
            capture_output=not ctx.verbose,
        )
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.decode("utf-8", errors="replace").strip() if exc.stderr else ""
        raise ImagePublishFailed(
            f"`docker {args[0]}` exited with status {exc.returncode}"
            + (f": {stderr}" if stderr else "")
        ) from exc
