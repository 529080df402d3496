"""Rollout monitoring for ECS services.

The monitor polls ``describe_services`` until the PRIMARY deployment is the
only deployment, runs the expected task definition and has all of its tasks
running. Service events are reported once each; an event matching a failure
pattern aborts the rollout on the tick it is first seen. Time is read from an
injectable clock so the loop can be driven deterministically.
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Protocol

from ecs_deploy.core.deployments.aws_ecs.errors import (
    PreconditionFailed,
    RolloutFailed,
    RolloutTimedOut,
)
from ecs_deploy.core.deployments.aws_ecs.models import (
    ExecutionContext,
    ServiceEvent,
    ServiceSnapshot,
)
from ecs_deploy.core.deployments.aws_ecs.services import describe_service

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 15.0
ROLLOUT_TIMEOUT_SECONDS = 600.0
DEFAULT_FAILURE_PATTERNS = ("was stopped", "unable to place", "failed")
# Allowance for the local clock running ahead of the ECS event timestamps.
EVENT_CLOCK_SKEW = timedelta(seconds=30)


class Clock(Protocol):
    """Source of time for the monitor."""

    def monotonic(self) -> float:
        """Return seconds from an arbitrary fixed point."""
        ...

    def sleep(self, seconds: float) -> None:
        """Block for the given number of seconds."""
        ...


class SystemClock:
    """Clock backed by the time module."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class Ticker:
    """Fixed-interval ticks bounded by a deadline."""

    def __init__(self, clock: Clock, interval: float, timeout: float) -> None:
        self._clock = clock
        self.interval = interval
        self.timeout = timeout
        self._started = clock.monotonic()

    def elapsed(self) -> float:
        """Seconds since the ticker started."""
        return self._clock.monotonic() - self._started

    def remaining(self) -> float:
        """Seconds left before the deadline."""
        return max(0.0, self.timeout - self.elapsed())

    def expired(self) -> bool:
        """Return true once the deadline has been reached."""
        return self.elapsed() >= self.timeout

    def wait(self) -> None:
        """Sleep until the next tick, never past the deadline."""
        self._clock.sleep(min(self.interval, self.remaining()))


class EventKind(Enum):
    """Classification of a service event message."""

    INFO = "info"
    FAILURE = "failure"


class RolloutState(Enum):
    """State of a rollout monitor."""

    POLLING = "polling"
    STABLE = "stable"
    FAILED = "failed"
    TIMED_OUT = "timed-out"


@dataclass(frozen=True)
class RolloutResult:
    """Outcome of a successful rollout."""

    state: RolloutState
    elapsed_seconds: float
    polls: int
    running_count: int
    desired_count: int


def classify_event(message: str, patterns: Sequence[str] = DEFAULT_FAILURE_PATTERNS) -> EventKind:
    """Classify a service event message by case-insensitive phrase match."""
    lowered = message.lower()
    if any(pattern.lower() in lowered for pattern in patterns):
        return EventKind.FAILURE
    return EventKind.INFO


class RolloutMonitor:
    """Wait for an ECS service to reach steady state on its PRIMARY deployment."""

    def __init__(
        self,
        session: Any,
        cluster_name: str,
        service_name: str,
        ctx: ExecutionContext,
        *,
        clock: Clock | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        timeout: float = ROLLOUT_TIMEOUT_SECONDS,
        failure_patterns: Sequence[str] = DEFAULT_FAILURE_PATTERNS,
        since: datetime | None = None,
        task_definition_arn: str | None = None,
    ) -> None:
        """Initialise the monitor.

        Args:
            session: boto3 session used to create the ECS client.
            cluster_name: Cluster the service runs in.
            service_name: Service to watch.
            ctx: Execution context used to surface service events.
            clock: Time source; defaults to the system clock.
            poll_interval: Seconds between polls.
            timeout: Total seconds to wait for stability.
            failure_patterns: Event phrases that abort the rollout.
            since: Events created more than a clock-skew allowance before this
                instant are ignored.
            task_definition_arn: Revision the PRIMARY deployment must run before
                the service counts as stable.
        """
        self._ecs = session.client("ecs")
        self.cluster_name = cluster_name
        self.service_name = service_name
        self._ctx = ctx
        self._clock = clock or SystemClock()
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._patterns = tuple(failure_patterns)
        self._since = _as_utc(since) - EVENT_CLOCK_SKEW if since else None
        self.task_definition_arn = task_definition_arn
        self._seen_event_ids: set[str] = set()
        self._state = RolloutState.POLLING
        self._polls = 0

    @property
    def state(self) -> RolloutState:
        """Current monitor state."""
        return self._state

    def wait(self) -> RolloutResult:
        """Poll until stable.

        Raises:
            RolloutFailed: A failure event or failed rollout state was observed.
            RolloutTimedOut: The service did not stabilise within the timeout.
        """
        ticker = Ticker(self._clock, self.poll_interval, self.timeout)
        self._ctx.report(f"Waiting for service {self.service_name} to reach steady state")

        while True:
            snapshot = self._fetch()
            if self.observe(snapshot) is RolloutState.STABLE:
                primary = snapshot.primary
                return RolloutResult(
                    state=self._state,
                    elapsed_seconds=ticker.elapsed(),
                    polls=self._polls,
                    running_count=primary.running_count if primary else 0,
                    desired_count=primary.desired_count if primary else 0,
                )
            if ticker.expired():
                self._state = RolloutState.TIMED_OUT
                raise RolloutTimedOut(self.service_name, ticker.elapsed())
            ticker.wait()

    def observe(self, snapshot: ServiceSnapshot) -> RolloutState:
        """Process one service snapshot and return the resulting state."""
        self._polls += 1
        for event in reversed(snapshot.events):
            self._process_event(event)

        primary = snapshot.primary
        if primary is not None and primary.rollout_state == "FAILED":
            self._state = RolloutState.FAILED
            reason = primary.rollout_state_reason or "rollout state is FAILED"
            raise RolloutFailed(self.service_name, reason)

        if primary is not None and snapshot.is_stable(self.task_definition_arn):
            self._state = RolloutState.STABLE
            self._ctx.report(
                f"Service stable: {primary.running_count}/{primary.desired_count} tasks running"
            )
            return self._state

        if primary is not None:
            logger.debug(
                f"{self.service_name}: {primary.running_count}/{primary.desired_count} running, "
                f"{len(snapshot.deployments)} deployments on {primary.task_definition}"
            )
        self._state = RolloutState.POLLING
        return self._state

    def _fetch(self) -> ServiceSnapshot:
        snapshot = describe_service(self._ecs, self.cluster_name, self.service_name)
        if snapshot is None:
            raise PreconditionFailed(
                f"ECS service {self.service_name} disappeared from {self.cluster_name} "
                "during rollout."
            )
        return snapshot

    def _process_event(self, event: ServiceEvent) -> None:
        if event.event_id in self._seen_event_ids:
            return
        self._seen_event_ids.add(event.event_id)

        if self._since and event.created_at and _as_utc(event.created_at) < self._since:
            return

        if classify_event(event.message, self._patterns) is EventKind.FAILURE:
            self._state = RolloutState.FAILED
            raise RolloutFailed(self.service_name, event.message)
        self._ctx.report(event.message)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
