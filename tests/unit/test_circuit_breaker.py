"""
Unit tests for Circuit Breaker pattern.
"""

import pytest
from datetime import datetime, timedelta

from studio_voice.errors import PersistenceError
from studio_voice.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    CircuitBreakerOpenError
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = datetime(2026, 2, 17, 10, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def failing_write(*args):
    raise PersistenceError("store timeout")


def successful_write(*args):
    return "lesson-1"


class TestCircuitBreaker:
    """Test cases for CircuitBreaker."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker(
            failure_threshold=2,
            timeout=timedelta(seconds=30),
            expected_exception=PersistenceError,
            clock=clock
        )

    def open_circuit(self, breaker):
        for _ in range(breaker.failure_threshold):
            with pytest.raises(PersistenceError):
                breaker.call(failing_write)

    def test_initial_state_closed(self, breaker):
        """Test circuit breaker starts in CLOSED state."""
        assert breaker.state == CircuitState.CLOSED
        assert breaker.is_closed
        assert not breaker.is_open
        assert not breaker.is_half_open
        assert breaker.failure_count == 0

    def test_successful_call_passes_arguments(self, breaker):
        """Test arguments reach the wrapped store call."""
        calls = []

        def update(lesson_id, fields):
            calls.append((lesson_id, fields))
            return None

        breaker.call(update, "lesson-1", {"completed": True})

        assert calls == [("lesson-1", {"completed": True})]
        assert breaker.failure_count == 0

    def test_failure_increments_count(self, breaker):
        """Test failure increments counter."""
        with pytest.raises(PersistenceError):
            breaker.call(failing_write)

        assert breaker.failure_count == 1
        assert breaker.state == CircuitState.CLOSED

    def test_open_circuit_blocks_calls(self, breaker):
        """Test OPEN circuit blocks calls."""
        self.open_circuit(breaker)

        assert breaker.is_open
        with pytest.raises(CircuitBreakerOpenError):
            breaker.call(successful_write)

    def test_success_resets_count(self, breaker):
        """Only consecutive failures count."""
        with pytest.raises(PersistenceError):
            breaker.call(failing_write)
        breaker.call(successful_write)

        assert breaker.failure_count == 0

    def test_half_open_after_timeout_then_closes(self, breaker, clock):
        """Test a successful trial call after the timeout closes the circuit."""
        self.open_circuit(breaker)
        clock.advance(31)

        assert breaker.call(successful_write) == "lesson-1"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    def test_still_open_before_timeout(self, breaker, clock):
        """Test calls stay blocked until the timeout passes."""
        self.open_circuit(breaker)
        clock.advance(10)

        with pytest.raises(CircuitBreakerOpenError):
            breaker.call(successful_write)

    def test_failure_in_half_open_reopens_circuit(self, breaker, clock):
        """Test failure in HALF_OPEN reopens circuit."""
        self.open_circuit(breaker)
        clock.advance(31)

        with pytest.raises(PersistenceError):
            breaker.call(failing_write)

        assert breaker.state == CircuitState.OPEN

    def test_reset_circuit(self, breaker):
        """Test manual circuit reset."""
        self.open_circuit(breaker)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.last_failure_time is None

    def test_different_exception_not_counted(self, breaker):
        """Programming errors propagate without tripping the breaker."""
        def broken(*args):
            raise KeyError("student_id")

        with pytest.raises(KeyError):
            breaker.call(broken)

        assert breaker.failure_count == 0
        assert breaker.state == CircuitState.CLOSED

    def test_get_state_info(self, breaker, clock):
        """Test getting state information."""
        with pytest.raises(PersistenceError):
            breaker.call(failing_write)

        info = breaker.get_state_info()

        assert info["state"] == "closed"
        assert info["failure_count"] == 1
        assert info["failure_threshold"] == 2
        assert info["last_failure_time"] == clock.now.isoformat()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
