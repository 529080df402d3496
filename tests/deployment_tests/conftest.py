"""Shared fixtures for deployment tests."""

from pathlib import Path

import pytest

from ecs_deploy.core.deployments.aws_ecs import DeploymentRequest, ExecutionContext
from tests.deployment_tests.fakes import REGION, FakeClock, FakeSession


@pytest.fixture
def session() -> FakeSession:
    """Fresh fake AWS session."""
    return FakeSession()


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at zero."""
    return FakeClock()


@pytest.fixture
def reports() -> list[str]:
    """Progress messages reported during a test."""
    return []


@pytest.fixture
def ctx(reports: list[str]) -> ExecutionContext:
    """Execution context collecting progress messages."""
    return ExecutionContext(reporter=reports.append)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project directory named ``proj`` with a Dockerfile."""
    path = tmp_path / "proj"
    path.mkdir()
    (path / "Dockerfile").write_text("FROM scratch\n", encoding="utf-8")
    return path


@pytest.fixture
def deploy_request(project_dir: Path) -> DeploymentRequest:
    """Deployment request for the ``proj`` project in the prod environment."""
    return DeploymentRequest(
        project_dir=project_dir,
        project_name="proj",
        environment="prod",
        region=REGION,
        cluster_name="proj-cluster",
        service_name="proj-service",
        repository_name="proj-prod",
    )
