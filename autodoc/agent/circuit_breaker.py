"""Circuit breaker shared by every task talking to one reasoning engine endpoint.

A push event fans out into one update task per commit, all using the same
model. Once the endpoint has failed ``failure_threshold`` times in a row,
further rounds fail at once with ``CircuitBreakerOpen`` (an
``EngineUnavailableError``, so the orchestrator propagates it like any
other engine failure). After ``cooldown_seconds`` a single trial round is
let through; its result closes or reopens the circuit.

States:
  CLOSED    -- rounds reach the engine
  OPEN      -- rounds are rejected without a request
  HALF_OPEN -- one trial round in flight
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional, TypeVar

from autodoc.exceptions import EngineUnavailableError

logger = logging.getLogger("autodoc.agent.circuit_breaker")

DEFAULT_FAILURE_THRESHOLD = 3
DEFAULT_COOLDOWN_SECONDS = 60.0

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(EngineUnavailableError):
    """The engine endpoint is marked down; no request was sent."""

    def __init__(self, endpoint: str, retry_after: float):
        self.endpoint = endpoint
        self.retry_after = retry_after
        super().__init__(
            f"Reasoning engine {endpoint} is unavailable after repeated failures; "
            f"next attempt allowed in {retry_after:.0f}s",
            endpoint=endpoint,
        )


class CircuitBreaker:
    """Failure counter and state for one engine endpoint. Safe to share between threads."""

    def __init__(
        self,
        endpoint: str,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
    ) -> None:
        self.endpoint = endpoint
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def _move_to(self, state: CircuitState, reason: str) -> None:
        # Caller holds the lock.
        if state == self._state:
            return
        log = logger.warning if state == CircuitState.OPEN else logger.info
        log("Engine circuit %s: %s -> %s (%s)", self.endpoint, self._state.name, state.name, reason)
        self._state = state
        if state == CircuitState.OPEN:
            self._opened_at = time.monotonic()

    def check(self) -> None:
        """Raise CircuitBreakerOpen unless a round may be sent now."""
        with self._lock:
            if self._state != CircuitState.OPEN:
                return
            remaining = self.cooldown_seconds - (time.monotonic() - self._opened_at)
            if remaining > 0:
                raise CircuitBreakerOpen(self.endpoint, remaining)
            self._move_to(CircuitState.HALF_OPEN, "cooldown elapsed")

    def record_success(self) -> None:
        with self._lock:
            self._consecutive_failures = 0
            self._move_to(CircuitState.CLOSED, "engine answered")

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            if self._state == CircuitState.HALF_OPEN:
                self._move_to(CircuitState.OPEN, "trial round failed")
            elif self._consecutive_failures >= self.failure_threshold:
                self._move_to(CircuitState.OPEN, f"{self._consecutive_failures} consecutive failures")


_breakers: dict[str, CircuitBreaker] = {}
_registry_lock = threading.Lock()


def get_breaker(
    endpoint: str,
    failure_threshold: Optional[int] = None,
    cooldown_seconds: Optional[float] = None,
) -> CircuitBreaker:
    """Return the breaker for *endpoint*, creating it on first use.

    Thresholds only apply when the breaker is created; later callers share
    the existing instance as configured.
    """
    with _registry_lock:
        breaker = _breakers.get(endpoint)
        if breaker is None:
            breaker = CircuitBreaker(
                endpoint,
                failure_threshold=failure_threshold or DEFAULT_FAILURE_THRESHOLD,
                cooldown_seconds=DEFAULT_COOLDOWN_SECONDS if cooldown_seconds is None else cooldown_seconds,
            )
            _breakers[endpoint] = breaker
        return breaker


def reset_all() -> None:
    """Forget every breaker. Used between tests."""
    with _registry_lock:
        _breakers.clear()


def guarded_call(
    fn: Callable[[], T],
    endpoint: str,
    failure_threshold: Optional[int] = None,
    cooldown_seconds: Optional[float] = None,
) -> T:
    """Run one engine round *fn* under the breaker for *endpoint*.

    Raises:
        CircuitBreakerOpen: the circuit is open; *fn* is not called.
        Exception: whatever *fn* raised, after counting the failure.
    """
    breaker = get_breaker(endpoint, failure_threshold, cooldown_seconds)
    breaker.check()
    try:
        result = fn()
    except Exception:
        breaker.record_failure()
        raise
    breaker.record_success()
    return result
