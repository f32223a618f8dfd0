"""Event contract validation.

A contract violation is a bug in the producer, so callers treat every
failure reported here as terminal regardless of its message text.
"""

from dataclasses import dataclass
from typing import Optional

from ..models.events import ALLOWED_EVENT_KINDS, EventKind, StreamEvent

MISSING_CORRELATION_ID = "Missing or invalid correlation id in terminal-result event"


@dataclass(frozen=True)
class ContractValidationResult:
    """Result of validating one event."""
    is_valid: bool
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_valid


VALID = ContractValidationResult(is_valid=True)


def validate_event_kind(event: StreamEvent) -> bool:
    return event.kind in ALLOWED_EVENT_KINDS


def validate_correlation_id(event: StreamEvent) -> bool:
    if event.kind != EventKind.TERMINAL_RESULT.value:
        return True
    return event.correlation_id is not None and event.correlation_id.strip() != ""


def validate_event(event: StreamEvent) -> ContractValidationResult:
    """
    Validate one event against the producer contract.
    
    Args:
        event: Event pulled from a producer
        
    Returns:
        ContractValidationResult; invalid results carry a message naming the
        offending kind or the missing correlation id
    """
    if not validate_event_kind(event):
        return ContractValidationResult(False, f"Invalid event kind: {event.kind}")
    if not validate_correlation_id(event):
        return ContractValidationResult(False, MISSING_CORRELATION_ID)
    return VALID
