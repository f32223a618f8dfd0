"""Reliability layer for streaming producers."""

from .contract_validator import ContractValidationResult, validate_event
from .error_classifier import Classification, ErrorClassifier, classify, is_transient_error
from .errors import (
    FailureReason,
    OperationTimeoutError,
    ReliabilityError,
)
from .health import ConnectionHealth, ConnectionHealthMonitor
from .metrics import RetryMetrics
from .policy import RetryPolicy
from .retry import (
    RetryOptions,
    TimeoutManager,
    execute_with_reliability,
    retry,
    with_deadline,
    with_graceful_degradation,
)
from .schema_relay import SchemaGatedRelay
from .streaming_retry import ReliableStream, StreamPhase

__all__ = [
    "Classification",
    "ErrorClassifier",
    "classify",
    "is_transient_error",
    "ContractValidationResult",
    "validate_event",
    "FailureReason",
    "OperationTimeoutError",
    "ReliabilityError",
    "ConnectionHealth",
    "ConnectionHealthMonitor",
    "RetryMetrics",
    "RetryPolicy",
    "RetryOptions",
    "TimeoutManager",
    "execute_with_reliability",
    "retry",
    "with_deadline",
    "with_graceful_degradation",
    "SchemaGatedRelay",
    "ReliableStream",
    "StreamPhase",
]
