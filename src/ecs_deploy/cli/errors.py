"""Turn deployment failures into user-facing messages."""

from collections.abc import Iterator

from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
)

from ecs_deploy.cli.ui import console
from ecs_deploy.core.deployments.aws_ecs import (
    ImagePublishFailed,
    NoDefaultNetwork,
    RemoteCallFailed,
    RolloutFailed,
    RolloutTimedOut,
)
from ecs_deploy.core.deployments.aws_ecs.errors import error_code

CREDENTIAL_ERROR_CODES = frozenset(
    {
        "ExpiredToken",
        "ExpiredTokenException",
        # spellchecker:ignore-next-line
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "InvalidSignatureException",
    }
)


def report_deploy_error(exc: BaseException) -> None:
    """Print a deployment failure and a hint on how to recover.

    Args:
        exc: Exception raised by a deploy or status command.
    """
    headline, hint = describe_failure(exc)
    console.print(f"[red]{headline}[/red]")
    if hint:
        console.print(f"[dim]{hint}[/dim]")


def describe_failure(exc: BaseException) -> tuple[str, str | None]:
    """Return a headline and an optional recovery hint for a failure.

    Args:
        exc: Exception raised by a deploy or status command.

    Returns:
        The message to show and the hint, if there is one.
    """
    causes = list(iter_causes(exc))
    if any(is_credential_error(item) for item in causes):
        return (
            "AWS rejected the credentials for this deployment.",
            "Refresh them (aws sso login --profile <profile>, or a new AWS_SESSION_TOKEN) "
            "and run the deployment again.",
        )
    if any(isinstance(item, EndpointConnectionError) for item in causes):
        return (
            "Could not reach the AWS API.",
            "Check network access and that the region name is correct.",
        )

    headline = f"Deployment failed: {exc}"
    if isinstance(exc, NoDefaultNetwork):
        return headline, "Run: aws ec2 create-default-vpc --region <region>"
    if isinstance(exc, RolloutTimedOut):
        return headline, (
            "Resources were left in place. Check the task logs in CloudWatch and raise "
            "ECS_DEPLOY_TIMEOUT_SECONDS if startup is slow."
        )
    if isinstance(exc, RolloutFailed):
        return headline, "Resources were left in place. Fix the task and re-run the deployment."
    if isinstance(exc, ImagePublishFailed):
        return headline, "Check that the Docker daemon is running and the image builds locally."
    if isinstance(exc, RemoteCallFailed):
        return headline, (
            f"AWS returned {exc.code or 'an error'} for {exc.operation}; check the IAM "
            "permissions of the deploying identity."
        )
    return headline, None


def is_credential_error(exc: BaseException) -> bool:
    """Return true when an exception means the AWS credentials are unusable.

    Args:
        exc: One exception from a cause chain.

    Returns:
        True for missing, unknown or expired credentials.
    """
    if isinstance(exc, (NoCredentialsError, ProfileNotFound)):
        return True
    if isinstance(exc, RemoteCallFailed):
        return exc.code in CREDENTIAL_ERROR_CODES
    if isinstance(exc, ClientError):
        return error_code(exc) in CREDENTIAL_ERROR_CODES
    return False


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield an exception followed by its causes, each once."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__
