"""Tests for the idempotent ECR, IAM, cluster and log group provisioners."""

import json

import pytest

from ecs_deploy.core.deployments.aws_ecs import (
    ExecutionContext,
    PreconditionFailed,
    RemoteCallFailed,
    RoleSpec,
    ensure_cluster,
    ensure_log_group,
    ensure_repository,
    ensure_role,
    ensure_roles,
)
from ecs_deploy.core.deployments.aws_ecs.ecr import describe_repository_uri
from ecs_deploy.core.deployments.aws_ecs.errors import ResourceNotFound
from ecs_deploy.core.deployments.aws_ecs.iam import (
    EXECUTION_ROLE_POLICY_ARN,
    TASK_ROLE_POLICY_ARN,
)
from tests.deployment_tests.fakes import FakeSession, client_error


def test_ensure_repository_creates_missing_repository(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """A missing repository is created with scan-on-push and its URI returned."""
    uri = ensure_repository(session, "proj-prod", ctx)

    assert uri == "123456789012.dkr.ecr.eu-west-2.amazonaws.com/proj-prod"
    created = session.ecr.called("create_repository")
    assert created == [
        {"repositoryName": "proj-prod", "imageScanningConfiguration": {"scanOnPush": True}}
    ]


def test_ensure_repository_is_idempotent(session: FakeSession, ctx: ExecutionContext) -> None:
    """A second call reuses the repository without creating it again."""
    first = ensure_repository(session, "proj-prod", ctx)
    second = ensure_repository(session, "proj-prod", ctx)

    assert first == second
    assert len(session.ecr.called("create_repository")) == 1


def test_ensure_repository_treats_concurrent_create_as_success(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """An already-exists error on create falls back to describing the repository."""
    session.ecr.errors["create_repository"] = client_error("RepositoryAlreadyExistsException")
    original = session.ecr.describe_repositories

    def describe_after_race(repositoryNames: list[str]) -> dict:
        if session.ecr.called("create_repository"):
            session.ecr.repositories["proj-prod"] = session.ecr.uri_for("proj-prod")
        return original(repositoryNames=repositoryNames)

    session.ecr.describe_repositories = describe_after_race  # type: ignore[method-assign]

    uri = ensure_repository(session, "proj-prod", ctx)

    assert uri == session.ecr.uri_for("proj-prod")


def test_ensure_repository_propagates_access_denied(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """Errors other than not-found surface as RemoteCallFailed."""
    session.ecr.errors["describe_repositories"] = client_error("AccessDeniedException")

    with pytest.raises(RemoteCallFailed) as excinfo:
        ensure_repository(session, "proj-prod", ctx)

    assert excinfo.value.code == "AccessDeniedException"
    assert excinfo.value.operation == "describe_repositories"
    assert session.ecr.called("create_repository") == []


def test_describe_repository_uri_raises_not_found(session: FakeSession) -> None:
    """Looking up a missing repository raises ResourceNotFound."""
    with pytest.raises(ResourceNotFound):
        describe_repository_uri(session.ecr, "absent")


def test_ensure_roles_creates_roles_and_attaches_policies(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """Both roles are created with the ECS trust policy and their managed policies."""
    exec_arn, task_arn = ensure_roles(session, "proj", ctx)

    assert exec_arn == "arn:aws:iam::123456789012:role/proj-task-execution"
    assert task_arn == "arn:aws:iam::123456789012:role/proj-task"
    assert session.iam.attached == {
        "proj-task-execution": [EXECUTION_ROLE_POLICY_ARN],
        "proj-task": [TASK_ROLE_POLICY_ARN],
    }
    trust = json.loads(session.iam.called("create_role")[0]["AssumeRolePolicyDocument"])
    assert trust["Statement"][0]["Principal"] == {"Service": "ecs-tasks.amazonaws.com"}


def test_ensure_roles_is_idempotent(session: FakeSession, ctx: ExecutionContext) -> None:
    """Re-running does not create roles or attach policies twice."""
    ensure_roles(session, "proj", ctx)
    ensure_roles(session, "proj", ctx)

    assert len(session.iam.called("create_role")) == 2
    assert len(session.iam.called("attach_role_policy")) == 2


def test_ensure_role_attaches_missing_policy_to_existing_role(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """An existing role without its policy only gets the policy attached."""
    session.iam.roles["proj-task"] = "arn:aws:iam::123456789012:role/proj-task"
    spec = RoleSpec(
        name="proj-task",
        trust_policy={"Version": "2012-10-17", "Statement": []},
        managed_policy_arns=(TASK_ROLE_POLICY_ARN,),
    )

    arn = ensure_role(session, spec, ctx)

    assert arn == "arn:aws:iam::123456789012:role/proj-task"
    assert session.iam.called("create_role") == []
    assert session.iam.attached["proj-task"] == [TASK_ROLE_POLICY_ARN]


def test_ensure_role_treats_entity_already_exists_as_success(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """A role created concurrently is looked up instead of failing."""
    session.iam.errors["create_role"] = client_error("EntityAlreadyExists")
    original = session.iam.get_role

    def get_role_missing_first(RoleName: str) -> dict:
        if not session.iam.called("create_role"):
            session.iam.calls.append(("get_role", {"RoleName": RoleName}))
            raise client_error("NoSuchEntity")
        session.iam.roles[RoleName] = f"arn:aws:iam::123456789012:role/{RoleName}"
        return original(RoleName=RoleName)

    session.iam.get_role = get_role_missing_first  # type: ignore[method-assign]
    spec = RoleSpec(name="proj-task", trust_policy={"Version": "2012-10-17", "Statement": []})

    assert ensure_role(session, spec, ctx) == "arn:aws:iam::123456789012:role/proj-task"


def test_ensure_role_requires_trust_policy(session: FakeSession, ctx: ExecutionContext) -> None:
    """A role without a trust policy is rejected before any call."""
    with pytest.raises(PreconditionFailed):
        ensure_role(session, RoleSpec(name="proj-task", trust_policy={}), ctx)

    assert session.iam.calls == []


def test_ensure_role_propagates_access_denied(session: FakeSession, ctx: ExecutionContext) -> None:
    """Permission errors are not mistaken for a missing role."""
    session.iam.errors["get_role"] = client_error("AccessDenied")
    spec = RoleSpec(name="proj-task", trust_policy={"Version": "2012-10-17", "Statement": []})

    with pytest.raises(RemoteCallFailed) as excinfo:
        ensure_role(session, spec, ctx)

    assert excinfo.value.code == "AccessDenied"
    assert session.iam.called("create_role") == []


def test_ensure_cluster_creates_fargate_cluster(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """A missing cluster is created with the FARGATE capacity provider."""
    arn = ensure_cluster(session, "proj-cluster", ctx)

    assert arn.endswith(":cluster/proj-cluster")
    created = session.ecs.called("create_cluster")[0]
    assert created["capacityProviders"] == ["FARGATE"]
    assert created["defaultCapacityProviderStrategy"] == [
        {"capacityProvider": "FARGATE", "weight": 1}
    ]


def test_ensure_cluster_reuses_active_cluster(session: FakeSession, ctx: ExecutionContext) -> None:
    """An ACTIVE cluster is reused."""
    session.ecs.clusters["proj-cluster"] = "ACTIVE"

    ensure_cluster(session, "proj-cluster", ctx)

    assert session.ecs.called("create_cluster") == []


def test_ensure_cluster_recreates_inactive_cluster(
    session: FakeSession, ctx: ExecutionContext
) -> None:
    """A cluster that is no longer ACTIVE is created again."""
    session.ecs.clusters["proj-cluster"] = "INACTIVE"

    ensure_cluster(session, "proj-cluster", ctx)

    assert len(session.ecs.called("create_cluster")) == 1
    assert session.ecs.clusters["proj-cluster"] == "ACTIVE"


def test_ensure_log_group_ignores_existing_group(session: FakeSession) -> None:
    """Creating a log group twice is not an error."""
    ensure_log_group(session, "/ecs/proj-prod-task")
    ensure_log_group(session, "/ecs/proj-prod-task")

    assert session.logs.groups == {"/ecs/proj-prod-task"}


def test_ensure_log_group_propagates_other_errors(session: FakeSession) -> None:
    """Unexpected log errors are raised."""
    session.logs.errors["create_log_group"] = client_error("AccessDeniedException")

    with pytest.raises(RemoteCallFailed):
        ensure_log_group(session, "/ecs/proj-prod-task")
