"""Tests for the rollout monitor."""

from datetime import UTC, datetime, timedelta

import pytest

from ecs_deploy.core.deployments.aws_ecs import (
    ExecutionContext,
    PreconditionFailed,
    RolloutFailed,
    RolloutMonitor,
    RolloutState,
    RolloutTimedOut,
    classify_event,
)
from ecs_deploy.core.deployments.aws_ecs.models import ServiceSnapshot
from ecs_deploy.core.deployments.aws_ecs.rollout import EventKind
from tests.deployment_tests.fakes import (
    INITIAL_TASK_DEFINITION,
    FakeClock,
    FakeSession,
    deployment,
    event,
    service_payload,
)

SERVICE = "proj-service"


def _monitor(
    session: FakeSession,
    ctx: ExecutionContext,
    clock: FakeClock,
    *,
    poll_interval: float = 15.0,
    timeout: float = 600.0,
    since: datetime | None = None,
    task_definition_arn: str | None = None,
) -> RolloutMonitor:
    return RolloutMonitor(
        session,
        "proj-cluster",
        SERVICE,
        ctx,
        clock=clock,
        poll_interval=poll_interval,
        timeout=timeout,
        since=since,
        task_definition_arn=task_definition_arn,
    )


def _rolling(*events: dict) -> dict:
    return service_payload(SERVICE, deployments=[deployment(running=0)], events=list(events))


def _stable(*events: dict) -> dict:
    return service_payload(SERVICE, deployments=[deployment(running=1)], events=list(events))


def test_monitor_waits_until_primary_is_running(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock, reports: list[str]
) -> None:
    """The rollout is stable once the PRIMARY deployment runs every task."""
    session.ecs.script_rollout(SERVICE, [_rolling(), _stable()])
    monitor = _monitor(session, ctx, clock)

    result = monitor.wait()

    assert result.state is RolloutState.STABLE
    assert monitor.state is RolloutState.STABLE
    assert result.polls == 2
    assert (result.running_count, result.desired_count) == (1, 1)
    assert clock.sleeps == [15.0]
    assert "Service stable: 1/1 tasks running" in reports


@pytest.mark.parametrize("count", [1, 2])
def test_draining_deployment_is_not_stable(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock, count: int
) -> None:
    """Matching counts are not enough while an older deployment still exists."""
    primary = deployment(desired=count, running=count)
    draining = service_payload(
        SERVICE,
        deployments=[
            primary,
            deployment(status="ACTIVE", running=count, deployment_id="ecs-svc/0"),
        ],
    )
    settled = service_payload(SERVICE, deployments=[primary])
    session.ecs.script_rollout(SERVICE, [draining, draining, settled])

    result = _monitor(session, ctx, clock).wait()

    assert result.polls == 3
    assert (result.running_count, result.desired_count) == (count, count)
    assert not ServiceSnapshot.from_api(draining).is_stable()
    assert ServiceSnapshot.from_api(settled).is_stable()


def test_previous_revision_running_alone_is_not_stable(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """A fully running PRIMARY on the old revision keeps the monitor polling."""
    new_revision = "arn:aws:ecs:eu-west-2:123456789012:task-definition/app:2"
    old = service_payload(
        SERVICE, deployments=[deployment(running=1, task_definition=INITIAL_TASK_DEFINITION)]
    )
    new = service_payload(
        SERVICE, deployments=[deployment(running=1, task_definition=new_revision)]
    )
    session.ecs.script_rollout(SERVICE, [old, old, new])

    result = _monitor(session, ctx, clock, task_definition_arn=new_revision).wait()

    assert result.polls == 3
    assert clock.sleeps == [15.0, 15.0]
    assert ServiceSnapshot.from_api(old).is_stable()
    assert not ServiceSnapshot.from_api(old).is_stable(new_revision)


def test_events_are_reported_once_oldest_first(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock, reports: list[str]
) -> None:
    """Events repeated across polls are only surfaced the first time."""
    started = event("e1", "(service proj-service) has started 1 tasks")
    registered = event("e2", "(service proj-service) registered 1 targets")
    session.ecs.script_rollout(
        SERVICE,
        [
            _rolling(started),
            _rolling(registered, started),
            _stable(registered, started),
        ],
    )

    _monitor(session, ctx, clock).wait()

    event_reports = [message for message in reports if message.startswith("(service")]
    assert event_reports == [
        "(service proj-service) has started 1 tasks",
        "(service proj-service) registered 1 targets",
    ]


def test_stopped_task_event_fails_immediately(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """A failure event aborts on the tick it is first seen."""
    stopped = event(
        "e1", "(service proj-service) task 1234 was stopped: Essential container exited"
    )
    session.ecs.script_rollout(SERVICE, [_rolling(stopped), _stable()])
    monitor = _monitor(session, ctx, clock)

    with pytest.raises(RolloutFailed) as excinfo:
        monitor.wait()

    assert "was stopped" in excinfo.value.event_message
    assert monitor.state is RolloutState.FAILED
    assert clock.sleeps == []


def test_placement_failure_matches_case_insensitively(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """Failure phrases match regardless of case."""
    unplaceable = event("e1", "(service proj-service) Unable to place a task")
    session.ecs.script_rollout(SERVICE, [_rolling(), _rolling(unplaceable)])

    with pytest.raises(RolloutFailed):
        _monitor(session, ctx, clock).wait()

    assert clock.sleeps == [15.0]


def test_failed_rollout_state_fails(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """A PRIMARY deployment whose rollout state is FAILED aborts the wait."""
    failed = service_payload(
        SERVICE,
        deployments=[
            deployment(running=0, rollout_state="FAILED", reason="circuit breaker triggered")
        ],
    )
    session.ecs.script_rollout(SERVICE, [failed])

    with pytest.raises(RolloutFailed, match="circuit breaker triggered"):
        _monitor(session, ctx, clock).wait()


def test_monitor_times_out_at_deadline(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """A service that never stabilises times out exactly at the deadline."""
    session.ecs.script_rollout(SERVICE, [_rolling()])
    monitor = _monitor(session, ctx, clock)

    with pytest.raises(RolloutTimedOut) as excinfo:
        monitor.wait()

    assert excinfo.value.elapsed_seconds == 600.0
    assert clock.now == 600.0
    assert len(session.ecs.called("describe_services")) == 41
    assert monitor.state is RolloutState.TIMED_OUT


def test_final_poll_is_not_pushed_past_deadline(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """The last sleep is shortened so the final poll lands on the deadline."""
    session.ecs.script_rollout(SERVICE, [_rolling()])

    with pytest.raises(RolloutTimedOut):
        _monitor(session, ctx, clock, poll_interval=7.0, timeout=20.0).wait()

    assert clock.sleeps == [7.0, 7.0, 6.0]
    assert len(session.ecs.called("describe_services")) == 4


def test_events_before_deploy_start_are_ignored(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock, reports: list[str]
) -> None:
    """Failure events left over from an earlier deployment do not fail this one."""
    since = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    old_failure = event(
        "e0", "(service proj-service) task abc was stopped", since - timedelta(minutes=5)
    )
    fresh = event(
        "e1", "(service proj-service) has started 1 tasks", since + timedelta(seconds=5)
    )
    session.ecs.script_rollout(
        SERVICE, [_rolling(fresh, old_failure), _stable(fresh, old_failure)]
    )

    result = _monitor(session, ctx, clock, since=since).wait()

    assert result.state is RolloutState.STABLE
    assert "(service proj-service) task abc was stopped" not in reports
    assert "(service proj-service) has started 1 tasks" in reports


def test_failure_stamped_just_before_local_start_still_fails(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """A local clock running a few seconds ahead of ECS does not hide failures."""
    since = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    unplaceable = event(
        "e1",
        "(service proj-service) was unable to place a task",
        since - timedelta(seconds=10),
    )
    session.ecs.script_rollout(SERVICE, [_rolling(unplaceable)])

    with pytest.raises(RolloutFailed, match="unable to place"):
        _monitor(session, ctx, clock, since=since).wait()

    assert clock.sleeps == []


def test_service_disappearing_fails(
    session: FakeSession, ctx: ExecutionContext, clock: FakeClock
) -> None:
    """A service deleted mid-rollout is reported instead of polled forever."""
    with pytest.raises(PreconditionFailed):
        _monitor(session, ctx, clock).wait()


@pytest.mark.parametrize(
    ("message", "kind"),
    [
        ("(service app) has reached a steady state.", EventKind.INFO),
        ("(service app) task 1 was stopped", EventKind.FAILURE),
        ("(service app) UNABLE TO PLACE a task", EventKind.FAILURE),
        ("(service app) failed to launch a task", EventKind.FAILURE),
    ],
)
def test_classify_event(message: str, kind: EventKind) -> None:
    """Event messages are classified by phrase."""
    assert classify_event(message) is kind
