import logging
import time
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Failing, reject requests
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


class CircuitBreaker:
    """
    Stops calling a text-generation endpoint that keeps failing.

    After `failure_threshold` consecutive failures the circuit opens and
    requests are rejected locally. Once `recovery_timeout` seconds have
    passed a single trial request is let through; its outcome closes or
    re-opens the circuit. A trial that ends without a verdict must be
    handed back with release().
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failures = 0
        self.last_failure_time = 0.0
        self._trial_in_flight = False

    def allow_request(self) -> bool:
        """Returns True if the request should be allowed to proceed."""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if self._clock() - self.last_failure_time >= self.recovery_timeout:
                self.state = CircuitState.HALF_OPEN
                self._trial_in_flight = True
                logger.info("Circuit breaker entering HALF_OPEN state")
                return True
            return False

        # HALF_OPEN: one trial request at a time
        if not self._trial_in_flight:
            self._trial_in_flight = True
            return True
        return False

    def record_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            logger.info("Circuit breaker recovered to CLOSED state")
        self.state = CircuitState.CLOSED
        self.failures = 0
        self._trial_in_flight = False

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = self._clock()
        self._trial_in_flight = False

        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            logger.warning("Circuit breaker trial request failed. Returning to OPEN state.")
        elif self.state == CircuitState.CLOSED and self.failures >= self.failure_threshold:
            self.state = CircuitState.OPEN
            logger.warning(f"Circuit breaker tripped to OPEN state after {self.failures} failures")

    def release(self) -> None:
        """
        Free the half-open slot without judging endpoint health.

        Called after every guarded request; a no-op once record_success()
        or record_failure() has run. The circuit stays HALF_OPEN so the
        next request becomes the new trial.
        """
        if self._trial_in_flight:
            logger.debug("Circuit breaker trial request ended without a verdict")
        self._trial_in_flight = False
