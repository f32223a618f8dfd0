"""
Failure classification for retry decisions.

Two deliberately separate notions live here:

- ``ErrorClassifier`` decides whether a producer failure is terminal
  (authentication, missing resources, contract violations) or retryable.
  It drives the stream retry coordinator and the schema-gated relay.
- ``is_transient_error`` decides whether a connection-level failure is a
  link fault worth retrying (resets, DNS, socket and timeout failures).
  It drives the generic retry loop and the connection health paths.

The two marker lists target different failure populations and must not be
merged.
"""

import re
from enum import Enum
from typing import Iterable, Union

import httpx

from .errors import OperationTimeoutError


class Classification(str, Enum):
    """Outcome of classifying a failure message."""
    TERMINAL = "terminal"
    RETRYABLE = "retryable"


# Permanent producer failures: retrying cannot help
NON_RETRYABLE_PATTERNS = (
    "authentication",
    "unauthorized",
    "authorization",
    "forbidden",
    "permission",
    "access denied",
    "invalid api key",
    "invalid credential",
    "401",
    "404",
    "not found",
    "contract validation failed",
)

MODEL_MISSING_PATTERN = re.compile(r"model\b.*\bdoes not exist")

# Full-payload validation failures that also indicate an account problem
SCHEMA_NON_RETRYABLE_PATTERNS = (
    "authentication",
    "authorization",
    "forbidden",
    "not found",
    "invalid api key",
    "quota exceeded",
    "rate limit",
    "billing",
    "payment",
    "subscription",
)

# Link-level faults on long-lived connections
TRANSIENT_CONNECTION_PATTERNS = (
    "load failed",
    "network connection was lost",
    "network request failed",
    "failed to fetch",
    "econnreset",
    "econnrefused",
    "etimedout",
    "socket hang up",
    "connection timeout",
    "operation timed out",
    "failed to get tools",
    "server not responding",
    "proxy timeout",
    "proxy connection failed",
    "tunneling socket could not be established",
)

TRANSIENT_EXCEPTION_TYPES = (
    httpx.TimeoutException,
    httpx.ConnectError,
    OperationTimeoutError,
)


def error_message(error: Union[BaseException, str, None]) -> str:
    """Extract the text used for classification from an error or message."""
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    message = str(error)
    return message or type(error).__name__


def _matches_any(message: str, patterns: Iterable[str]) -> bool:
    lowered = message.lower()
    return any(pattern in lowered for pattern in patterns)


class ErrorClassifier:
    """Substring classifier for producer failures."""

    @classmethod
    def classify(cls, message: str) -> Classification:
        """
        Classify a failure message.
        
        Matching is case-insensitive. Any permanent-failure marker makes the
        failure terminal; everything else is presumed transient.
        
        Args:
            message: Failure text from an exception or an in-band error event
            
        Returns:
            Classification.TERMINAL or Classification.RETRYABLE
        """
        if cls.is_non_retryable(message):
            return Classification.TERMINAL
        return Classification.RETRYABLE

    @classmethod
    def is_non_retryable(cls, message: str) -> bool:
        if _matches_any(message, NON_RETRYABLE_PATTERNS):
            return True
        return MODEL_MISSING_PATTERN.search(message.lower()) is not None

    @classmethod
    def classify_schema_failure(cls, message: str) -> Classification:
        """Classify a full-payload validation failure message."""
        if cls.is_non_retryable(message) or _matches_any(message, SCHEMA_NON_RETRYABLE_PATTERNS):
            return Classification.TERMINAL
        return Classification.RETRYABLE


def classify(message: str) -> Classification:
    """Classify a producer failure message as terminal or retryable."""
    return ErrorClassifier.classify(message)


def is_transient_error(error: Union[BaseException, str, None]) -> bool:
    """
    Determine if a connection-level error is transient and should be retried.
    
    Transport timeouts and connect failures are transient by type; anything
    else is matched against the link-fault marker list.
    """
    if not error:
        return False
    if isinstance(error, TRANSIENT_EXCEPTION_TYPES):
        return True
    return _matches_any(error_message(error), TRANSIENT_CONNECTION_PATTERNS)
