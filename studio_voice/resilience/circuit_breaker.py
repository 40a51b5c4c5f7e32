"""
Circuit Breaker guarding lesson store writes.

A voice batch ("mark everyone attended") issues one write per student.
When the store is down, the breaker stops the rest of the batch from
hammering it; remaining items fail fast and are reported per item.

States:
- CLOSED: Normal operation, calls pass through
- OPEN: Too many failures, calls are blocked
- HALF_OPEN: Testing if the store recovered
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Any, Optional, Type


logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"          # Normal operation
    OPEN = "open"              # Blocking calls due to failures
    HALF_OPEN = "half_open"    # Testing recovery


class CircuitBreakerOpenError(Exception):
    """Raised when circuit breaker is in OPEN state."""
    pass


class CircuitBreaker:
    """
    Circuit breaker for lesson store calls.

    Examples:
        >>> from studio_voice.errors import PersistenceError
        >>> cb = CircuitBreaker(
        ...     failure_threshold=3,
        ...     timeout=timedelta(seconds=30),
        ...     expected_exception=PersistenceError
        ... )
        >>> try:
        ...     cb.call(store.update_lesson, "lesson-1", {"completed": True})
        ... except CircuitBreakerOpenError:
        ...     print("store unavailable, skipping")
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        timeout: timedelta = timedelta(seconds=30),
        expected_exception: Type[Exception] = Exception,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            timeout: Time to wait before trying again (HALF_OPEN)
            expected_exception: Exception type to count as failure
            clock: Returns the current time
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.expected_exception = expected_exception
        self._clock = clock

        # State
        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = CircuitState.CLOSED

        logger.debug(
            f"Circuit breaker initialized: "
            f"threshold={failure_threshold}, timeout={timeout}"
        )

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute function with circuit breaker protection.

        Args:
            func: Function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Function result

        Raises:
            CircuitBreakerOpenError: If circuit is OPEN
            Exception: Any exception raised by func
        """
        if self.is_open:
            if self._should_attempt_reset():
                logger.info("Circuit breaker: Entering HALF_OPEN state")
                self.state = CircuitState.HALF_OPEN
            else:
                raise CircuitBreakerOpenError(
                    f"Circuit breaker is OPEN (failures: {self.failure_count})"
                )

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt reset."""
        if self.last_failure_time is None:
            return True

        time_since_failure = self._clock() - self.last_failure_time
        return time_since_failure > self.timeout

    def _on_success(self):
        if self.is_half_open:
            logger.info("Circuit breaker: Back to CLOSED state")
            self.state = CircuitState.CLOSED

        self.failure_count = 0

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = self._clock()

        logger.warning(
            f"Circuit breaker: Failure #{self.failure_count} "
            f"(threshold={self.failure_threshold})"
        )

        if self.is_half_open or self.failure_count >= self.failure_threshold:
            logger.error(
                f"Circuit breaker: OPEN after {self.failure_count} failures"
            )
            self.state = CircuitState.OPEN

    def reset(self):
        """Manually reset circuit breaker to CLOSED state."""
        logger.info("Circuit breaker: Manual reset to CLOSED")
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    @property
    def is_half_open(self) -> bool:
        return self.state == CircuitState.HALF_OPEN

    def get_state_info(self) -> dict:
        """
        Get current circuit breaker state information.

        Returns:
            Dictionary with state, failure count, and last failure time
        """
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time": (
                self.last_failure_time.isoformat()
                if self.last_failure_time
                else None
            ),
            "failure_threshold": self.failure_threshold,
        }
