"""
Error types for the reliability layer.

Every failure that reaches a caller is described by a ``ReliabilityError``
built from one of the helpers below, then rendered into the content of a
single synthesized error event.
"""

from enum import Enum
from typing import Optional


class FailureReason(str, Enum):
    """Why an invocation ended without success."""
    TERMINAL = "terminal"
    RETRYABLE = "retryable"
    TIMEOUT = "timeout"


class ReliabilityError(Exception):
    """
    Base exception for reliability failures.
    
    Attributes:
        message: Short human-readable summary
        details: Underlying failure text, if any
        suggestion: Hint for resolving the failure
    """

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.suggestion = suggestion

    def to_event_content(self) -> str:
        """Render as ``message: details``, omitting blank details."""
        if self.details and self.details.strip():
            return f"{self.message}: {self.details}"
        return self.message


class OperationTimeoutError(ReliabilityError):
    """Raised when an operation does not finish within its deadline."""

    def __init__(self, timeout: float):
        super().__init__(f"Operation timed out after {int(timeout * 1000)}ms")
        self.timeout = timeout


def retry_exhausted(attempts: int, last_error: str) -> ReliabilityError:
    return ReliabilityError(
        f"Provider failed after {attempts} attempts, last error",
        last_error,
        "Check your network connection and provider configuration",
    )


def provider_unreliable(producer: str, reason: str) -> ReliabilityError:
    return ReliabilityError(
        f"Provider '{producer}' reliability issue",
        reason,
        "Try switching providers or check provider service status",
    )


def retry_window_timeout(producer: str, reason: str) -> ReliabilityError:
    return ReliabilityError(
        f"Provider '{producer}' timed out",
        reason,
        "Increase the retry timeout or check provider responsiveness",
    )


def relay_failed(producer: str, reason: str) -> ReliabilityError:
    return ReliabilityError(
        f"Provider '{producer}' failed after output began",
        reason,
        "Partial output was delivered; the request was not retried",
    )


def contract_violation(details: str) -> ReliabilityError:
    return ReliabilityError(
        "Contract validation failed",
        details,
        "This indicates a provider implementation issue - report to maintainers",
    )


def schema_validation_failed(details: str) -> ReliabilityError:
    return ReliabilityError(
        "Schema validation error",
        details,
        "Check the schema supplied for this request",
    )


def schema_validation_exhausted(attempts: int, details: str) -> ReliabilityError:
    return ReliabilityError(
        f"Schema validation failed after {attempts} attempts",
        details,
        "Check the schema supplied for this request",
    )
