"""Generic lifecycle-state waiter for provider resources.

Polls a resource's lifecycle state at a fixed interval until it reaches
the expected terminal state. Transient states listed as "waiting" are
tolerated; anything else fails immediately.

Example:
    from skybake.providers.wait import Bounded, WaitSpec, wait_for_state

    spec = WaitSpec(
        resource_id=image_id,
        waiting_states=frozenset({"PROVISIONING"}),
        terminal_state="AVAILABLE",
        retries=Bounded(20),
        delay=10.0,
    )
    wait_for_state(driver.get_image_state, spec)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias

from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_fixed,
)
from tenacity.stop import stop_base

log = logger.bind(component="wait")

StateAccessor: TypeAlias = Callable[[str], str]
"""Returns the current lifecycle state of the resource with the given id."""


# =============================================================================
# Retry budget
# =============================================================================


@dataclass(frozen=True, slots=True)
class Bounded:
    """Poll at most ``attempts`` times."""

    attempts: int

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be positive, got {self.attempts}")


@dataclass(frozen=True, slots=True)
class Unbounded:
    """Poll until the terminal state, an error, cancellation or the deadline."""


Retries: TypeAlias = Bounded | Unbounded

UNBOUNDED = Unbounded()


# =============================================================================
# Wait specification
# =============================================================================


@dataclass(frozen=True, slots=True)
class WaitSpec:
    """Describes one polling operation.

    Args:
        resource_id: Provider identifier of the polled resource.
        waiting_states: Transient states that keep the wait going.
        terminal_state: The single state that ends the wait successfully.
        retries: Attempt budget. Default: 20 attempts.
        delay: Seconds between attempts. Default: 10.
        timeout: Optional wall-clock deadline in seconds.
        failure_states: States reported as ResourceFailedError instead of
            UnexpectedStateError. Neither is retried.
    """

    resource_id: str
    waiting_states: frozenset[str]
    terminal_state: str
    retries: Retries = field(default_factory=lambda: Bounded(20))
    delay: float = 10.0
    timeout: float | None = None
    failure_states: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        # Accept any iterable of states from callers
        object.__setattr__(self, "waiting_states", frozenset(self.waiting_states))
        object.__setattr__(self, "failure_states", frozenset(self.failure_states))

        if not self.waiting_states:
            raise ValueError("waiting_states must not be empty")
        if self.terminal_state in self.waiting_states:
            raise ValueError(
                f"terminal state {self.terminal_state} is also a waiting state"
            )
        overlap = self.failure_states & (self.waiting_states | {self.terminal_state})
        if overlap:
            raise ValueError(
                f"failure states overlap waiting/terminal states: {sorted(overlap)}"
            )
        if self.delay < 0:
            raise ValueError(f"delay must not be negative, got {self.delay}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


# =============================================================================
# Errors
# =============================================================================


class WaitError(Exception):
    """Base class for errors synthesized by the waiter."""

    def __init__(self, resource_id: str, message: str) -> None:
        super().__init__(message)
        self.resource_id = resource_id


class UnexpectedStateError(WaitError):
    """Resource left the expected transition path."""

    def __init__(
        self,
        resource_id: str,
        state: str,
        waiting_states: frozenset[str],
        terminal_state: str,
    ) -> None:
        super().__init__(
            resource_id,
            f"Unexpected state {state} for resource {resource_id}, "
            f"expecting a waiting state {sorted(waiting_states)} "
            f"or terminal state {terminal_state}",
        )
        self.state = state
        self.waiting_states = waiting_states
        self.terminal_state = terminal_state


class ResourceFailedError(UnexpectedStateError):
    """Resource entered a state the caller declared as failed."""


class MaxRetriesExceededError(WaitError):
    """Attempt budget consumed before the terminal state was observed."""

    def __init__(
        self,
        resource_id: str,
        attempts: int,
        terminal_state: str,
        last_state: str,
    ) -> None:
        super().__init__(
            resource_id,
            f"Maximum number of retries ({attempts}) exceeded; resource "
            f"{resource_id} did not reach state {terminal_state} "
            f"(last state: {last_state})",
        )
        self.attempts = attempts
        self.terminal_state = terminal_state
        self.last_state = last_state


class WaitCancelledError(WaitError):
    """Wait aborted by the caller's cancel signal."""

    def __init__(self, resource_id: str, terminal_state: str, reason: str = "cancelled") -> None:
        super().__init__(
            resource_id,
            f"Wait for resource {resource_id} to reach {terminal_state} {reason}",
        )
        self.terminal_state = terminal_state


class WaitTimeoutError(WaitCancelledError):
    """Wall-clock deadline passed before the terminal state was observed."""

    def __init__(self, resource_id: str, terminal_state: str, timeout: float) -> None:
        super().__init__(
            resource_id, terminal_state, reason=f"timed out after {timeout:.1f}s",
        )
        self.timeout = timeout


class _StillWaitingError(Exception):
    """Resource is in a waiting state - retry."""

    def __init__(self, state: str) -> None:
        super().__init__(state)
        self.state = state


# =============================================================================
# Waiter
# =============================================================================


def wait_for_state(
    get_state: StateAccessor,
    spec: WaitSpec,
    *,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], object] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Block until the resource reaches ``spec.terminal_state``.

    Errors raised by ``get_state`` propagate unchanged and stop the wait.

    Args:
        get_state: Accessor returning the current state for a resource id.
        spec: What to wait for and how long.
        cancel: Optional event; once set, the wait stops before the next poll
            and any pending sleep returns early.
        sleep: Sleep function. Defaults to ``cancel.wait`` when a cancel event
            is given, ``time.sleep`` otherwise.
        clock: Monotonic clock used for the deadline.

    Raises:
        UnexpectedStateError: State is neither waiting nor terminal.
        MaxRetriesExceededError: Bounded attempts exhausted.
        WaitCancelledError: ``cancel`` was set.
        WaitTimeoutError: ``spec.timeout`` elapsed.
    """
    deadline = None if spec.timeout is None else clock() + spec.timeout
    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep
    rlog = log.bind(resource_id=spec.resource_id)

    def _check_interrupted() -> None:
        if cancel is not None and cancel.is_set():
            raise WaitCancelledError(spec.resource_id, spec.terminal_state)
        if deadline is not None and clock() >= deadline:
            assert spec.timeout is not None
            raise WaitTimeoutError(spec.resource_id, spec.terminal_state, spec.timeout)

    def _sleep(seconds: float) -> None:
        if deadline is not None:
            seconds = max(0.0, min(seconds, deadline - clock()))
        sleep(seconds)

    def _log_waiting(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        rlog.bind(
            attempt=retry_state.attempt_number,
            state=getattr(exc, "state", "?"),
        ).debug(
            "Waiting {delay}s for {terminal}",
            delay=spec.delay,
            terminal=spec.terminal_state,
        )

    @retry(
        stop=_stop_for(spec.retries),
        wait=wait_fixed(spec.delay),
        retry=retry_if_exception_type(_StillWaitingError),
        sleep=_sleep,
        before_sleep=_log_waiting,
        reraise=True,
    )
    def _poll() -> str:
        _check_interrupted()
        state = get_state(spec.resource_id)
        if state in spec.waiting_states:
            raise _StillWaitingError(state)
        return state

    try:
        state = _poll()
    except _StillWaitingError as e:
        assert isinstance(spec.retries, Bounded)
        raise MaxRetriesExceededError(
            spec.resource_id, spec.retries.attempts, spec.terminal_state, e.state,
        ) from None

    if state == spec.terminal_state:
        rlog.bind(state=state).debug("Resource reached terminal state")
        return

    error_cls = ResourceFailedError if state in spec.failure_states else UnexpectedStateError
    raise error_cls(spec.resource_id, state, spec.waiting_states, spec.terminal_state)


def _stop_for(retries: Retries) -> stop_base:
    match retries:
        case Bounded(attempts=attempts):
            return stop_after_attempt(attempts)
        case Unbounded():
            return stop_never
