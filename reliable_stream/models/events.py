"""Event models for producer streams.

This module defines the single value type that flows from a producer,
through the reliability layer, to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class EventKind(str, Enum):
    """Kinds of event a producer is allowed to emit."""
    DATA = "data"
    TOOL_CALL = "tool-call"
    SYSTEM_NOTE = "system-note"
    THINKING = "thinking"
    TERMINAL_RESULT = "terminal-result"
    ERROR = "error"


ALLOWED_EVENT_KINDS = frozenset(kind.value for kind in EventKind)


@dataclass(frozen=True)
class StreamEvent:
    """One unit of streamed output.
    
    ``kind`` is kept as a plain string so that events carrying a kind outside
    the allowed vocabulary can still be represented and rejected by contract
    validation.
    
    Attributes:
        kind: One of the ``EventKind`` values
        content: Optional text payload
        tool_name: Tool invoked (only meaningful for ``tool-call``)
        correlation_id: Identifier of the underlying call, carried on
            ``terminal-result`` events
        metadata: Additional information about the event
    """
    kind: str
    content: Optional[str] = None
    tool_name: Optional[str] = None
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if isinstance(self.kind, EventKind):
            object.__setattr__(self, "kind", self.kind.value)

    @property
    def is_error(self) -> bool:
        return self.kind == EventKind.ERROR.value

    @classmethod
    def data(cls, content: str, **metadata: Any) -> "StreamEvent":
        return cls(kind=EventKind.DATA.value, content=content, metadata=metadata)

    @classmethod
    def tool_call(cls, tool_name: str, content: Optional[str] = None) -> "StreamEvent":
        return cls(kind=EventKind.TOOL_CALL.value, content=content, tool_name=tool_name)

    @classmethod
    def system_note(cls, content: str) -> "StreamEvent":
        return cls(kind=EventKind.SYSTEM_NOTE.value, content=content)

    @classmethod
    def thinking(cls, content: str) -> "StreamEvent":
        return cls(kind=EventKind.THINKING.value, content=content)

    @classmethod
    def terminal_result(
        cls, correlation_id: Optional[str], content: Optional[str] = None
    ) -> "StreamEvent":
        return cls(
            kind=EventKind.TERMINAL_RESULT.value,
            content=content,
            correlation_id=correlation_id,
        )

    @classmethod
    def error(cls, content: str, **metadata: Any) -> "StreamEvent":
        return cls(kind=EventKind.ERROR.value, content=content, metadata=metadata)
