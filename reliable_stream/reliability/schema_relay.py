"""
Schema-gated relay.

Buffers a complete response from the wrapped producer, validates the
concatenated ``data`` content and only then replays the buffered events.
Retryable validation failures re-run the whole invocation from scratch.

This is the one place where a producer is invoked again after it has
produced output, so wrapped producers with non-idempotent side effects may
see those effects repeated, up to ``max_attempts`` times.
"""

from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

from ..config import constants
from ..models.events import EventKind, StreamEvent
from ..observability.logging import ReliabilityLogger
from ..producers.base import StreamProducer
from ..validators.json_schema import JsonSchemaPayloadValidator, SchemaValidationResult
from .error_classifier import Classification, ErrorClassifier, error_message
from .errors import FailureReason, schema_validation_exhausted, schema_validation_failed
from .retry import RetryOptions, retry

PayloadValidator = Callable[[str], Union[bool, SchemaValidationResult]]

GENERIC_VALIDATION_FAILURE = "Response failed validation"


class SchemaAttemptError(Exception):
    """One buffered attempt failed validation or raised."""

    def __init__(self, message: str, classification: Classification):
        super().__init__(message)
        self.message = message
        self.classification = classification

    @property
    def retryable(self) -> bool:
        return self.classification == Classification.RETRYABLE


def _as_result(outcome: Union[bool, SchemaValidationResult]) -> SchemaValidationResult:
    if isinstance(outcome, SchemaValidationResult):
        return outcome
    if outcome:
        return SchemaValidationResult(is_valid=True)
    return SchemaValidationResult(is_valid=False, errors=[GENERIC_VALIDATION_FAILURE])


class SchemaGatedRelay(StreamProducer):
    """
    Full-payload validation wrapper, normally composed over ``ReliableStream``.

    Behaviour per invocation:

    - no schema or predicate: events pass straight through
    - output containing an ``error`` event: replayed unchanged, not retried
    - output without ``data`` content: replayed without validation
    - invalid payload: classified; retryable failures re-run the wrapped
      producer up to ``max_attempts`` times, anything else ends the output
      with one synthesized ``error`` event
    """

    def __init__(
        self,
        producer: StreamProducer,
        schema: Optional[Dict[str, Any]] = None,
        validator: Optional[PayloadValidator] = None,
        max_attempts: int = constants.DEFAULT_SCHEMA_MAX_ATTEMPTS,
        use_backoff: bool = constants.DEFAULT_USE_BACKOFF,
        base_delay: Optional[float] = None,
        retry_timeout: float = constants.DEFAULT_RETRY_TIMEOUT,
    ):
        if schema is not None and validator is not None:
            raise ValueError("Pass either a schema or a validator, not both")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.producer = producer
        self.validator: Optional[PayloadValidator] = (
            JsonSchemaPayloadValidator(schema) if schema is not None else validator
        )
        self.max_attempts = max_attempts
        self.use_backoff = use_backoff
        if base_delay is None:
            base_delay = constants.BACKOFF_BASE_DELAY if use_backoff else constants.FLAT_BASE_DELAY
        self.base_delay = base_delay
        self.retry_timeout = retry_timeout
        self._log = ReliabilityLogger(producer.get_producer_name())

    def get_producer_name(self) -> str:
        return f"schema-{self.producer.get_producer_name()}"

    async def produce(
        self,
        request: Any,
        resume_token: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        if self.validator is None:
            stream = self.producer.produce(request, resume_token)
            try:
                async for event in stream:
                    yield event
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()
            return

        attempts = 0

        async def attempt() -> List[StreamEvent]:
            nonlocal attempts
            attempts += 1
            self._log.debug(
                "Starting buffered attempt",
                request_id=info["request_id"],
                attempt=attempts,
                max_attempts=self.max_attempts,
            )
            return await self._buffered_attempt(request, resume_token)

        def on_failed_attempt(error: BaseException, attempt_number: int) -> None:
            if isinstance(error, SchemaAttemptError):
                self._log.warning(
                    "Buffered attempt rejected",
                    request_id=info["request_id"],
                    attempt=attempt_number,
                    classification=error.classification.value,
                    error_msg=error.message[:200],
                )

        options = RetryOptions(
            attempts=self.max_attempts,
            delay=self.base_delay,
            factor=constants.DEFAULT_DELAY_MULTIPLIER if self.use_backoff else 1.0,
            max_delay=self.retry_timeout,
            jitter=self.use_backoff,
            retry_if=lambda e: isinstance(e, SchemaAttemptError) and e.retryable,
            on_failed_attempt=on_failed_attempt,
        )

        with self._log.track_invocation("schema_relay", failed_outcomes=("rejected",)) as info:
            try:
                events = await retry(attempt, options)
            except SchemaAttemptError as error:
                info["attempts"] = attempts
                info["outcome"] = "rejected"
                yield self._failure_event(error, attempts, info["request_id"])
                return

            info["attempts"] = attempts
            info["outcome"] = "accepted"
            for event in events:
                yield event

    async def _buffered_attempt(self, request: Any, resume_token: Optional[str]) -> List[StreamEvent]:
        """Collect one complete output and validate it."""
        events: List[StreamEvent] = []
        stream = self.producer.produce(request, resume_token)
        try:
            async for event in stream:
                events.append(event)
        except Exception as error:
            message = error_message(error)
            raise SchemaAttemptError(message, ErrorClassifier.classify_schema_failure(message))
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if any(event.is_error for event in events):
            return events

        chunks = [event.content or "" for event in events if event.kind == EventKind.DATA.value]
        if not chunks:
            return events

        try:
            outcome = self.validator("".join(chunks))
        except Exception as error:
            message = error_message(error)
            raise SchemaAttemptError(message, ErrorClassifier.classify_schema_failure(message)) from error

        result = _as_result(outcome)
        if not result.is_valid:
            message = result.message or GENERIC_VALIDATION_FAILURE
            raise SchemaAttemptError(message, ErrorClassifier.classify_schema_failure(message))
        return events

    def _failure_event(self, error: SchemaAttemptError, attempts: int, request_id: str) -> StreamEvent:
        if error.retryable:
            failure = schema_validation_exhausted(attempts, error.message)
            reason = FailureReason.RETRYABLE
        else:
            failure = schema_validation_failed(error.message)
            reason = FailureReason.TERMINAL

        self._log.error(
            "Schema validation failed",
            request_id=request_id,
            attempts=attempts,
            reason=reason.value,
            error_msg=error.message[:200],
        )
        return StreamEvent.error(
            failure.to_event_content(),
            phase="schema",
            failure_reason=reason.value,
            attempts=attempts,
        )
