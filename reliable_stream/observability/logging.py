"""
Structured logging utility for the reliability layer.

This module provides a consistent logging interface for stream invocations,
ensuring structured log lines with standard fields like producer,
request_id and attempt.
"""

import asyncio
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Optional


class ReliabilityLogger:
    """Structured logger scoped to one producer."""
    
    def __init__(self, producer_name: str):
        """
        Initialize logger for a specific producer.
        
        Args:
            producer_name: Name of the wrapped producer (e.g., "scripted")
        """
        self.producer = producer_name
        self.logger = logging.getLogger(f"reliable_stream.producers.{producer_name}")
    
    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with structured fields."""
        fields = [f"producer={self.producer}"]
        
        for key, value in kwargs.items():
            if value is not None:
                fields.append(f"{key}={value}")
        
        return f"[{' '.join(fields)}] {message}"
    
    def debug(self, message: str, request_id: Optional[str] = None, **kwargs):
        self.logger.debug(self._format_message(message, request_id=request_id, **kwargs))
    
    def info(self, message: str, request_id: Optional[str] = None, **kwargs):
        self.logger.info(self._format_message(message, request_id=request_id, **kwargs))
    
    def warning(self, message: str, request_id: Optional[str] = None, **kwargs):
        self.logger.warning(self._format_message(message, request_id=request_id, **kwargs))
    
    def error(self, message: str, request_id: Optional[str] = None,
              error: Optional[BaseException] = None, **kwargs):
        """Log error message with structured fields."""
        if error:
            kwargs['error_type'] = type(error).__name__
            kwargs['error_msg'] = str(error)
        
        self.logger.error(self._format_message(message, request_id=request_id, **kwargs))
    
    @contextmanager
    def track_invocation(
        self,
        method: str,
        request_id: Optional[str] = None,
        failed_outcomes: Iterable[str] = (),
    ) -> Iterator[Dict[str, Any]]:
        """
        Context manager to time an invocation and log its outcome.

        The completion line is logged at INFO, or at WARNING when the
        ``outcome`` recorded by the caller is one of ``failed_outcomes``.
        A caller that closes or cancels the invocation early is logged at
        DEBUG as abandoned, with the outcome reached so far.

        Args:
            method: The operation being run (e.g., "stream", "schema_relay")
            request_id: Optional request ID (generated if not provided)
            failed_outcomes: Outcome values that end the invocation with an error event

        Yields:
            Dict with invocation metadata; callers may add fields such as
            ``attempts`` or ``outcome`` which are included in the final log line
        """
        if request_id is None:
            request_id = str(uuid.uuid4())[:8]

        start_time = time.time()
        self.debug(f"Starting {method} invocation", request_id=request_id, method=method)

        metadata: Dict[str, Any] = {
            'request_id': request_id,
            'method': method,
            'start_time': start_time,
        }

        def elapsed_ms() -> int:
            return int((time.time() - start_time) * 1000)

        try:
            yield metadata

            outcome = metadata.get('outcome')
            level = logging.WARNING if outcome in set(failed_outcomes) else logging.INFO
            self.logger.log(level, self._format_message(
                f"Completed {method} invocation",
                request_id=request_id,
                method=method,
                duration_ms=elapsed_ms(),
                attempts=metadata.get('attempts'),
                outcome=outcome,
            ))

        except (GeneratorExit, asyncio.CancelledError):
            self.debug(
                f"Abandoned {method} invocation",
                request_id=request_id,
                method=method,
                duration_ms=elapsed_ms(),
                outcome=metadata.get('outcome'),
            )
            raise

        except Exception as e:
            self.error(
                f"Failed {method} invocation",
                request_id=request_id,
                method=method,
                duration_ms=elapsed_ms(),
                error=e
            )
            raise
