"""Error kinds raised by the ECS deployment engine."""

from botocore.exceptions import ClientError


class DeploymentError(RuntimeError):
    """Base class for deployment failures."""


class ResourceNotFound(DeploymentError):
    """A looked-up resource does not exist.

    Raised by lookups and caught by the ensure helpers to drive creation.
    """


class PreconditionFailed(DeploymentError):
    """A resource exists but is in a state that cannot be used."""


class NoDefaultNetwork(PreconditionFailed):
    """The account has no default VPC in the selected region."""


class RemoteCallFailed(DeploymentError):
    """An AWS call failed for a reason other than the resource being absent."""

    def __init__(self, operation: str, exc: ClientError) -> None:
        """Wrap a botocore client error.

        Args:
            operation: Name of the AWS operation that failed.
            exc: The original client error.
        """
        self.operation = operation
        self.code = error_code(exc)
        super().__init__(f"{operation} failed: {exc}")


class RolloutFailed(DeploymentError):
    """The service reported a failure while rolling out."""

    def __init__(self, service_name: str, message: str) -> None:
        self.service_name = service_name
        self.event_message = message
        super().__init__(f"Deployment of {service_name} failed: {message}")


class RolloutTimedOut(DeploymentError):
    """The service did not reach steady state within the time budget."""

    def __init__(self, service_name: str, elapsed_seconds: float) -> None:
        self.service_name = service_name
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f"Deployment of {service_name} timed out after {elapsed_seconds:.0f} seconds; "
            "tasks never reached steady state."
        )


class ImagePublishFailed(DeploymentError):
    """Building, tagging or pushing the container image failed."""


def error_code(exc: ClientError) -> str:
    """Return the AWS error code of a client error."""
    return str(exc.response.get("Error", {}).get("Code", ""))


def error_message(exc: ClientError) -> str:
    """Return the AWS error message of a client error."""
    return str(exc.response.get("Error", {}).get("Message", ""))
