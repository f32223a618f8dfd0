"""
Base Producer Interface

This module defines the abstract base class for everything that emits a
stream of events for one request: concrete backends, test doubles, and the
reliability wrappers that compose on top of them.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional

from ..models.events import StreamEvent


class StreamProducer(ABC):
    """
    Abstract base class for event producers.
    
    A producer returns a lazy, pull-based sequence of events. Each pull may
    raise instead of producing an element, and the consumer may abandon the
    sequence at any time without further obligation on the producer.
    
    Producers may perform non-idempotent side effects (such as running tools)
    while producing output, so wrappers must not re-invoke a producer once
    any of its output has reached the caller.
    """
    
    @abstractmethod
    def produce(
        self,
        request: Any,
        resume_token: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Produce the event sequence for one request.
        
        Args:
            request: Request payload (a prompt string or a list of messages)
            resume_token: Optional correlation id of a previous call to resume
            
        Returns:
            Async iterator of StreamEvent, normally an async generator
        """
        pass
    
    def get_producer_name(self) -> str:
        """
        Get the name of this producer.
        
        By default, returns the class name without 'Producer' suffix.
        Override this method to provide a custom name.
        
        Returns:
            str: The producer name (e.g., "scripted")
        """
        class_name = self.__class__.__name__
        if class_name.endswith("Producer"):
            return class_name[:-8].lower()
        return class_name.lower()
