"""
Stream retry coordinator.

This module wraps a producer so that transient failures before any output
are retried, while failures after output has begun are reported once and
never retried. Each invocation runs two phases:

- **Setup** (repeatable): obtain a fresh stream from the producer and pull
  its first event, retrying retryable failures within the attempt budget
  and the retry window.
- **Relay** (single-shot): yield the first event, then relay the rest of
  the same stream verbatim, ending with at most one synthesized error event.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Optional, Tuple

from ..models.events import StreamEvent
from ..observability.logging import ReliabilityLogger
from ..producers.base import StreamProducer
from .contract_validator import validate_event
from .error_classifier import Classification, ErrorClassifier, error_message
from .errors import (
    FailureReason,
    OperationTimeoutError,
    ReliabilityError,
    contract_violation,
    provider_unreliable,
    relay_failed,
    retry_exhausted,
    retry_window_timeout,
)
from .metrics import RetryMetrics
from .policy import RetryPolicy
from .retry import retry, with_deadline

logger = logging.getLogger(__name__)

EMPTY_ERROR_EVENT = "Provider emitted an error event without details"


class StreamPhase(str, Enum):
    """Phases of one coordinator invocation, recorded as its logged outcome."""
    ATTEMPTING = "attempting"
    RELAYING = "relaying"
    SETUP_FAILED = "setup_failed"
    RELAY_FAILED = "relay_failed"
    DONE = "done"


@dataclass(frozen=True)
class FirstEvent:
    """Setup succeeded: the first event and the live remainder of its stream.

    ``event`` is None when the producer completed without emitting anything.
    """
    event: Optional[StreamEvent]
    stream: AsyncIterator[StreamEvent]


@dataclass(frozen=True)
class Failed:
    """Setup attempt failed."""
    message: str
    reason: FailureReason


class SetupAttemptError(Exception):
    """Raised by one setup attempt so the retry loop can decide what to do."""

    def __init__(self, failure: Failed):
        super().__init__(failure.message)
        self.failure = failure

    @property
    def retryable(self) -> bool:
        return self.failure.reason == FailureReason.RETRYABLE


class RetryWindow:
    """
    Wall-clock budget for the setup phase of one invocation.

    The window is armed at invocation start and must be disarmed on every
    exit path. It is only ever checked, never used to abort an operation.
    """

    def __init__(self, duration: float, clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self._clock = clock
        self._deadline: Optional[float] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._fired = False

    def arm(self) -> None:
        self._deadline = self._clock() + self.duration
        self._fired = False
        self._handle = asyncio.get_running_loop().call_later(self.duration, self._expire)

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def _expire(self) -> None:
        self._fired = True
        self._handle = None

    @property
    def expired(self) -> bool:
        if self._fired:
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining(self) -> float:
        if self._deadline is None:
            return self.duration
        return max(0.0, self._deadline - self._clock())

    @property
    def timeout_message(self) -> str:
        return f"Retry window timed out after {int(self.duration * 1000)}ms"

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, but never past the deadline."""
        await asyncio.sleep(min(delay, self.remaining()))


async def _pull(stream: AsyncIterator[StreamEvent]) -> Tuple[bool, Optional[StreamEvent]]:
    try:
        return True, await stream.__anext__()
    except StopAsyncIteration:
        return False, None


async def _close(stream: Optional[AsyncIterator[StreamEvent]]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        logger.debug(f"Error closing producer stream: {e}")


class ReliableStream(StreamProducer):
    """
    Retry coordinator for a single producer.

    The output of every invocation is zero or more non-error events followed
    by either natural completion or exactly one error event. The wrapped
    producer is never invoked again once its output has reached the caller.

    Attributes:
        producer: Wrapped producer
        policy: Retry policy applied to every invocation
        metrics: Attempt and outcome counters
    """

    def __init__(
        self,
        producer: StreamProducer,
        policy: Optional[RetryPolicy] = None,
        metrics: Optional[RetryMetrics] = None,
    ):
        self.producer = producer
        self.policy = policy or RetryPolicy()
        self.metrics = metrics or RetryMetrics()
        self.producer_name = producer.get_producer_name()
        self._log = ReliabilityLogger(self.producer_name)

    def get_producer_name(self) -> str:
        return f"reliable-{self.producer_name}"

    async def produce(
        self,
        request: Any,
        resume_token: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Produce events for ``request`` with retries before the first event.

        Args:
            request: Request payload forwarded to the producer
            resume_token: Optional correlation id forwarded to the producer

        Yields:
            The producer's events, or a single synthesized error event
        """
        policy = self.policy
        window = RetryWindow(policy.retry_window)
        window.arm()
        live: Optional[AsyncIterator[StreamEvent]] = None
        attempts = 0

        async def attempt_setup() -> FirstEvent:
            nonlocal attempts
            if window.expired:
                raise SetupAttemptError(Failed(window.timeout_message, FailureReason.TIMEOUT))

            attempts += 1
            self.metrics.record_attempt(self.producer_name)
            self._log.debug(
                "Starting setup attempt",
                request_id=info["request_id"],
                attempt=attempts,
                max_attempts=policy.max_attempts,
            )
            return await self._attempt_setup(request, resume_token, window)

        def on_failed_attempt(error: BaseException, attempt: int) -> None:
            if not isinstance(error, SetupAttemptError):
                return
            self._log.warning(
                "Setup attempt failed",
                request_id=info["request_id"],
                attempt=attempt,
                reason=error.failure.reason.value,
                error_msg=error.failure.message[:200],
            )

        with self._log.track_invocation(
            "stream",
            failed_outcomes=(StreamPhase.SETUP_FAILED.value, StreamPhase.RELAY_FAILED.value),
        ) as info:
            try:
                info["outcome"] = StreamPhase.ATTEMPTING.value
                try:
                    first = await retry(
                        attempt_setup,
                        policy.retry_options(
                            retry_if=lambda e: isinstance(e, SetupAttemptError) and e.retryable,
                            on_failed_attempt=on_failed_attempt,
                            sleep=window.sleep,
                        ),
                    )
                except SetupAttemptError as error:
                    info["attempts"] = attempts
                    info["outcome"] = StreamPhase.SETUP_FAILED.value
                    yield self._setup_failure_event(error.failure, attempts, info["request_id"])
                    return

                window.disarm()
                live = first.stream
                info["attempts"] = attempts
                if first.event is None:
                    self.metrics.record_success(self.producer_name, attempts)
                    info["outcome"] = StreamPhase.DONE.value
                    return

                self._log.debug(
                    "First event ready",
                    request_id=info["request_id"],
                    attempts=attempts,
                    kind=first.event.kind,
                )
                info["outcome"] = StreamPhase.RELAYING.value
                yield first.event

                while True:
                    try:
                        has_next, event = await _pull(live)
                    except Exception as error:
                        info["outcome"] = StreamPhase.RELAY_FAILED.value
                        yield self._relay_failure_event(error_message(error), info["request_id"])
                        return

                    if not has_next:
                        self.metrics.record_success(self.producer_name, attempts)
                        info["outcome"] = StreamPhase.DONE.value
                        return

                    if policy.contract_validation:
                        result = validate_event(event)
                        if not result:
                            info["outcome"] = StreamPhase.RELAY_FAILED.value
                            yield self._relay_failure_event(
                                contract_violation(result.message).to_event_content(),
                                info["request_id"],
                            )
                            return

                    if event.is_error:
                        info["outcome"] = StreamPhase.RELAY_FAILED.value
                        yield self._relay_failure_event(
                            event.content or EMPTY_ERROR_EVENT, info["request_id"]
                        )
                        return

                    yield event
            finally:
                window.disarm()
                if live is not None:
                    await _close(live)

    async def _attempt_setup(
        self,
        request: Any,
        resume_token: Optional[str],
        window: RetryWindow,
    ) -> FirstEvent:
        """Run one setup attempt: fresh stream, exactly one pull, first-event checks."""
        stream: Optional[AsyncIterator[StreamEvent]] = None
        handed_off = False
        try:
            try:
                stream = self.producer.produce(request, resume_token)
                has_first, event = await with_deadline(self._first_pull(stream), window.remaining())
            except SetupAttemptError:
                raise
            except OperationTimeoutError:
                # Producer errors are classified inside the deadline; this is the window's timer
                raise SetupAttemptError(Failed(window.timeout_message, FailureReason.TIMEOUT))
            except Exception as error:
                raise SetupAttemptError(self._classified(error))

            if has_first:
                failure = self._check_first_event(event)
                if failure is not None:
                    raise SetupAttemptError(failure)

            handed_off = True
            return FirstEvent(event if has_first else None, stream)
        finally:
            if not handed_off:
                await _close(stream)

    async def _first_pull(self, stream: AsyncIterator[StreamEvent]) -> Tuple[bool, Optional[StreamEvent]]:
        try:
            return await _pull(stream)
        except Exception as error:
            raise SetupAttemptError(self._classified(error)) from error

    def _classified(self, error: BaseException) -> Failed:
        message = error_message(error)
        return Failed(message, self._reason_for(message))

    def _check_first_event(self, event: StreamEvent) -> Optional[Failed]:
        if self.policy.contract_validation:
            result = validate_event(event)
            if not result:
                # Contract violations are producer bugs; never retried
                message = contract_violation(result.message).to_event_content()
                return Failed(message, FailureReason.TERMINAL)

        if event.is_error:
            if not event.content:
                return Failed(EMPTY_ERROR_EVENT, FailureReason.RETRYABLE)
            return Failed(event.content, self._reason_for(event.content))
        return None

    @staticmethod
    def _reason_for(message: str) -> FailureReason:
        if ErrorClassifier.classify(message) == Classification.TERMINAL:
            return FailureReason.TERMINAL
        return FailureReason.RETRYABLE

    def _setup_failure_event(self, failure: Failed, attempts: int, request_id: str) -> StreamEvent:
        if failure.reason == FailureReason.TIMEOUT:
            error: ReliabilityError = retry_window_timeout(self.producer_name, failure.message)
        elif failure.reason == FailureReason.TERMINAL:
            error = provider_unreliable(self.producer_name, failure.message)
        else:
            error = retry_exhausted(attempts, failure.message)

        self.metrics.record_setup_failure(self.producer_name, failure.reason.value)
        self._log.error(
            "Setup failed",
            request_id=request_id,
            attempts=attempts,
            reason=failure.reason.value,
            error_msg=failure.message[:200],
        )
        return StreamEvent.error(
            error.to_event_content(),
            phase="setup",
            failure_reason=failure.reason.value,
            attempts=attempts,
        )

    def _relay_failure_event(self, message: str, request_id: str) -> StreamEvent:
        self.metrics.record_relay_failure(self.producer_name)
        self._log.error(
            "Stream failed after output began",
            request_id=request_id,
            error_msg=message[:200],
        )
        return StreamEvent.error(
            relay_failed(self.producer_name, message).to_event_content(),
            phase="relay",
        )
