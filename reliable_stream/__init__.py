"""
Reliable Stream SDK - retry and validation layer for streaming producers.

This package wraps any producer of lazy event streams with:
- Retries before the first event, never after output has begun
- Terminal/retryable failure classification
- Optional event contract validation
- A schema-gated relay for full-payload validation
- Connection health tracking for long-lived endpoints

Every failure reaches the caller as exactly one trailing error event.
"""

__version__ = "0.1.0"

from .config.settings import ReliabilitySettings
from .models.events import EventKind, StreamEvent
from .producers.base import StreamProducer
from .producers.registry import ProducerRegistry, get_default_registry
from .producers.scripted import ScriptedProducer
from .reliability import (
    Classification,
    ConnectionHealthMonitor,
    FailureReason,
    ReliabilityError,
    ReliableStream,
    RetryMetrics,
    RetryPolicy,
    SchemaGatedRelay,
    classify,
    validate_event,
)
from .validators.json_schema import JsonSchemaPayloadValidator

__all__ = [
    # Events
    "EventKind",
    "StreamEvent",

    # Producers
    "StreamProducer",
    "ScriptedProducer",
    "ProducerRegistry",
    "get_default_registry",

    # Reliability
    "ReliableStream",
    "SchemaGatedRelay",
    "ConnectionHealthMonitor",
    "RetryPolicy",
    "RetryMetrics",
    "Classification",
    "classify",
    "validate_event",
    "FailureReason",
    "ReliabilityError",
    "JsonSchemaPayloadValidator",

    # Configuration
    "ReliabilitySettings",
]
