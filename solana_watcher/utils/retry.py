"""
Retry helpers for ledger lookups.

Exponential backoff for transient RPC failures, and a circuit breaker that
stops hammering an endpoint that keeps failing.
"""

import asyncio
import logging
import time
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def async_retry(
    max_attempts: int = 3,
    delay: float = 0.5,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Retry an async callable with exponential backoff.

    Args:
        max_attempts: Total attempts, including the first one
        delay: Delay before the second attempt (seconds)
        backoff: Multiplier applied to the delay after each failure
        exceptions: Exception types that trigger a retry

    Example:
        fetch = async_retry(max_attempts=3, delay=0.5)(client.get_transaction)
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempts = max(1, max_attempts)
            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts - 1:
                        logger.debug(f"{func.__name__} failed after {attempts} attempts: {e}")
                        raise

                    current_delay = delay * (backoff ** attempt)
                    logger.debug(
                        f"{func.__name__} failed ({e}), retry {attempt + 1}/{attempts - 1} "
                        f"in {current_delay:.2f}s"
                    )
                    await asyncio.sleep(current_delay)

            raise RuntimeError("unreachable")

        return wrapper
    return decorator


class CircuitBreaker:
    """
    Circuit breaker to prevent cascading failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: Failures exceeded threshold, requests blocked
    - HALF_OPEN: Testing if service recovered
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._clock = clock

        self.failures = 0
        self.last_failure_time = 0.0
        self.state = "CLOSED"

    def record_success(self):
        self.failures = 0
        self.state = "CLOSED"

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = self._clock()

        if self.failures >= self.failure_threshold and self.state != "OPEN":
            self.state = "OPEN"
            logger.warning(f"Circuit breaker '{self.name}' OPENED after {self.failures} failures")

    def can_execute(self) -> bool:
        if self.state == "CLOSED":
            return True

        if self.state == "OPEN":
            elapsed = self._clock() - self.last_failure_time
            if elapsed >= self.recovery_timeout:
                self.state = "HALF_OPEN"
                logger.info(f"Circuit breaker '{self.name}' entering HALF_OPEN state")
                return True
            return False

        # HALF_OPEN - allow one request to test
        return True

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "state": self.state,
            "failures": self.failures,
            "threshold": self.failure_threshold,
        }
