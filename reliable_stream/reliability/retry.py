"""
Reliability primitives for single-shot async operations.

- ``with_deadline``: race an operation against a timer
- ``retry``: exponential-backoff retry loop with a retry predicate
- ``execute_with_reliability``: ``retry`` over ``with_deadline``
- ``with_graceful_degradation``: the above, returning a fallback on failure
- ``TimeoutManager``: named one-shot timers on the running event loop

These back the connection health paths and are building blocks of the
stream retry coordinator. Cancellation is cooperative: an operation that
misses its deadline is cancelled through asyncio and its result discarded.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from ..config import constants
from .error_classifier import error_message, is_transient_error
from .errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class RetryOptions:
    """Options for the generic retry loop."""
    attempts: int = constants.DEFAULT_RETRY_ATTEMPTS
    delay: float = constants.DEFAULT_RETRY_DELAY
    factor: float = constants.DEFAULT_RETRY_FACTOR
    max_delay: float = constants.DEFAULT_RETRY_MAX_DELAY
    jitter: bool = False
    retry_if: Callable[[BaseException], bool] = is_transient_error
    on_failed_attempt: Optional[Callable[[BaseException, int], None]] = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def compute_delay(self, attempt: int) -> float:
        """Delay after failed attempt number ``attempt`` (1-based)."""
        delay = self.delay * (self.factor ** (attempt - 1))
        if self.jitter:
            delay *= random.uniform(1.0, 2.0)
        return min(delay, self.max_delay)


class _RaisedTimeout(Exception):
    """A timeout raised by the operation itself rather than by the deadline."""

    def __init__(self, error: BaseException):
        super().__init__(error)
        self.error = error


async def _own_timeouts(operation: Awaitable[T]) -> T:
    try:
        return await operation
    except asyncio.TimeoutError as error:
        raise _RaisedTimeout(error) from None


async def with_deadline(operation: Awaitable[T], timeout: float) -> T:
    """
    Await ``operation`` for at most ``timeout`` seconds.

    A ``TimeoutError`` raised by the operation itself propagates unchanged;
    only the deadline's own timer becomes ``OperationTimeoutError``.

    Raises:
        OperationTimeoutError: If the timer fires first; the operation is
            cancelled and any late result is discarded
    """
    try:
        return await asyncio.wait_for(_own_timeouts(operation), timeout=timeout)
    except _RaisedTimeout as raised:
        raise raised.error from None
    except asyncio.TimeoutError:
        raise OperationTimeoutError(timeout) from None


async def retry(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
) -> T:
    """
    Execute an async operation with retry and exponential backoff.
    
    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        options: Retry options (defaults retry transient connection errors)
        
    Returns:
        Result of the first successful attempt
        
    Raises:
        The last error once attempts are exhausted, or the first error the
        ``retry_if`` predicate rejects
    """
    options = options or RetryOptions()
    attempts = max(1, options.attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as error:
            if options.on_failed_attempt:
                options.on_failed_attempt(error, attempt)

            if attempt >= attempts or not options.retry_if(error):
                raise

            delay = options.compute_delay(attempt)
            logger.debug(
                "Retrying operation after failure",
                extra={
                    "attempt": attempt,
                    "max_attempts": attempts,
                    "delay": delay,
                    "error_type": type(error).__name__,
                    "error_message": error_message(error)[:200],
                }
            )
            await options.sleep(delay)

    raise RuntimeError("retry loop exited without a result")  # pragma: no cover


async def execute_with_reliability(
    operation: Callable[[], Awaitable[T]],
    timeout: float = constants.DEFAULT_OPERATION_TIMEOUT,
    retry_options: Optional[RetryOptions] = None,
) -> T:
    """Run ``operation`` under a per-attempt deadline inside the retry loop."""
    return await retry(lambda: with_deadline(operation(), timeout), retry_options)


async def with_graceful_degradation(
    operation: Callable[[], Awaitable[T]],
    default_value: T,
    timeout: float = constants.DEFAULT_OPERATION_TIMEOUT,
    retry_options: Optional[RetryOptions] = None,
    on_error: Optional[Callable[[BaseException], None]] = None,
) -> T:
    """
    Return ``default_value`` instead of raising when ``operation`` fails.
    
    Intended for non-critical status paths only; stream invocations must
    surface their failures.
    """
    try:
        return await execute_with_reliability(operation, timeout, retry_options)
    except Exception as error:
        logger.debug(
            "Operation degraded to fallback value",
            extra={"error_type": type(error).__name__, "error_message": error_message(error)[:200]}
        )
        if on_error:
            on_error(error)
        return default_value


class TimeoutManager:
    """Manages named one-shot timeouts on the running event loop."""

    def __init__(self):
        self._timeouts: Dict[str, asyncio.TimerHandle] = {}

    def set_timeout(self, timeout_id: str, callback: Callable[[], None], delay: float) -> None:
        """Schedule ``callback`` after ``delay`` seconds, replacing any timer with this id."""
        self.clear_timeout(timeout_id)
        loop = asyncio.get_running_loop()

        def fire():
            self._timeouts.pop(timeout_id, None)
            callback()

        self._timeouts[timeout_id] = loop.call_later(delay, fire)

    def clear_timeout(self, timeout_id: str) -> None:
        handle = self._timeouts.pop(timeout_id, None)
        if handle is not None:
            handle.cancel()

    def clear_all(self) -> None:
        for handle in self._timeouts.values():
            handle.cancel()
        self._timeouts.clear()

    def has_timeout(self, timeout_id: str) -> bool:
        return timeout_id in self._timeouts
