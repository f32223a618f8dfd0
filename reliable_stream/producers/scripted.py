"""Scripted producer for tests and end-to-end scenarios."""

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Optional, Sequence, Union

from ..models.events import StreamEvent
from .base import StreamProducer


@dataclass(frozen=True)
class Delay:
    """Pause the scripted stream for ``seconds`` before the next step."""
    seconds: float


@dataclass(frozen=True)
class Stall:
    """Block the scripted stream until it is cancelled."""


Step = Union[StreamEvent, BaseException, Delay, Stall]

SCENARIOS = (
    "success",
    "delay-then-success",
    "setup-delay-success",
    "nonretryable-model-error",
    "stall",
)

SUCCESS_CONTENT = "ok-from-scripted-producer"
MODEL_MISSING_CONTENT = (
    "The model `gpt-5.3-codex` does not exist or you do not have access to it."
)


class ScriptedProducer(StreamProducer):
    """
    Producer that replays a fixed script per invocation.
    
    Invocation ``n`` (0-based) plays ``attempts[n]``; once the scripts run out
    the last one is repeated. Each step is an event to yield, an exception to
    raise, a ``Delay`` or a ``Stall``.
    
    Attributes:
        invocations: Number of times ``produce`` has been called
        requests: Request payloads received, in order
        resume_tokens: Resume tokens received, in order
        closed: Number of streams that finished or were abandoned
    """

    def __init__(self, attempts: Sequence[Sequence[Step]], name: str = "scripted"):
        if not attempts:
            raise ValueError("ScriptedProducer needs at least one scripted attempt")
        self._attempts: List[List[Step]] = [list(steps) for steps in attempts]
        self._name = name
        self.invocations = 0
        self.requests: List[Any] = []
        self.resume_tokens: List[Optional[str]] = []
        self.closed = 0

    @classmethod
    def from_scenario(cls, scenario: str, delay: float = 0.025) -> "ScriptedProducer":
        """
        Build a producer for one of the named end-to-end scenarios.
        
        Raises:
            ValueError: If ``scenario`` is not one of ``SCENARIOS``
        """
        if scenario in ("success", "setup-delay-success"):
            script: List[Step] = [StreamEvent.data(SUCCESS_CONTENT)]
        elif scenario == "delay-then-success":
            script = [Delay(max(0.0, delay)), StreamEvent.data(SUCCESS_CONTENT)]
        elif scenario == "nonretryable-model-error":
            script = [StreamEvent.error(MODEL_MISSING_CONTENT)]
        elif scenario == "stall":
            script = [Stall()]
        else:
            raise ValueError(f"Unsupported scenario: {scenario}")
        return cls([script], name=f"scripted-{scenario}")

    def get_producer_name(self) -> str:
        return self._name

    def produce(
        self,
        request: Any,
        resume_token: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        script = self._attempts[min(self.invocations, len(self._attempts) - 1)]
        self.invocations += 1
        self.requests.append(request)
        self.resume_tokens.append(resume_token)
        return self._play(script)

    async def _play(self, script: List[Step]) -> AsyncIterator[StreamEvent]:
        try:
            for step in script:
                if isinstance(step, Delay):
                    await asyncio.sleep(step.seconds)
                elif isinstance(step, Stall):
                    await asyncio.Event().wait()
                elif isinstance(step, BaseException):
                    raise step
                else:
                    yield step
        finally:
            self.closed += 1
