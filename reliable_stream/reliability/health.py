"""
Connection health monitoring for long-lived endpoints.

Tracks per-endpoint liveness (for example, auxiliary tool servers) in a
ledger of health records, independently of any single stream invocation.
A background sweep evicts records that have not been checked recently so
endpoints that are seen once and never revisited do not accumulate.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from ..config import constants
from .error_classifier import error_message
from .retry import RetryOptions, with_graceful_degradation

logger = logging.getLogger(__name__)


@dataclass
class ConnectionHealth:
    """
    Health record for one endpoint.

    Attributes:
        connected: Result of the most recent health update
        last_check: Clock reading of the most recent update
        error_count: Failed updates since the last successful one
        last_error: Most recent failure text; kept after recovery
    """
    connected: bool
    last_check: float
    error_count: int = 0
    last_error: Optional[str] = None


class ConnectionHealthMonitor:
    """
    Per-endpoint health ledger with staleness eviction.

    Each record is guarded by one of a fixed set of striped locks, so updates
    to the same endpoint are serialized while independent endpoints can be
    updated concurrently.
    """

    def __init__(
        self,
        check_interval: float = constants.HEALTH_SWEEP_INTERVAL,
        max_errors: int = constants.HEALTH_MAX_ERRORS,
        max_age: float = constants.HEALTH_MAX_AGE,
        stale_age: float = constants.HEALTH_STALE_AGE,
        clock: Callable[[], float] = time.monotonic,
        lock_stripes: int = 16,
    ):
        self.check_interval = check_interval
        self.max_errors = max_errors
        self.max_age = max_age
        self.stale_age = stale_age
        self._clock = clock
        self._records: Dict[str, ConnectionHealth] = {}
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(max(1, lock_stripes))]
        self._monitor_task: Optional[asyncio.Task] = None

    def _lock_for(self, server_id: str) -> threading.Lock:
        return self._locks[hash(server_id) % len(self._locks)]

    def start_monitoring(self) -> None:
        """Start the periodic stale-record sweep on the running event loop."""
        if self._monitor_task is not None and not self._monitor_task.done():
            return
        self._monitor_task = asyncio.get_running_loop().create_task(self._monitor_loop())
        logger.debug("Connection health monitoring started", extra={"interval": self.check_interval})

    def stop_monitoring(self) -> None:
        """Stop the periodic sweep."""
        if self._monitor_task is None:
            return
        self._monitor_task.cancel()
        self._monitor_task = None
        logger.debug("Connection health monitoring stopped")

    @property
    def is_monitoring(self) -> bool:
        return self._monitor_task is not None and not self._monitor_task.done()

    async def _monitor_loop(self) -> None:
        while True:
            await asyncio.sleep(self.check_interval)
            self.sweep()

    def update_health(self, server_id: str, connected: bool, error: Optional[str] = None) -> None:
        """
        Record the outcome of a liveness check.

        A successful update resets the error count but keeps ``last_error``;
        a failed update increments the error count and replaces ``last_error``
        when ``error`` is given.
        """
        with self._lock_for(server_id):
            now = self._clock()
            record = self._records.get(server_id)
            if record is None:
                record = ConnectionHealth(
                    connected=connected,
                    last_check=now,
                    error_count=0 if connected else 1,
                    last_error=error,
                )
                self._records[server_id] = record
            else:
                record.connected = connected
                record.last_check = now
                if connected:
                    record.error_count = 0
                else:
                    record.error_count += 1
                    if error:
                        record.last_error = error
            error_count = record.error_count

        if not connected:
            logger.warning(
                f"Connection {server_id} reported unhealthy",
                extra={"server_id": server_id, "error_count": error_count, "error": error}
            )

    def get_health(self, server_id: str) -> Optional[ConnectionHealth]:
        """Get a snapshot of the health record for ``server_id``."""
        with self._lock_for(server_id):
            record = self._records.get(server_id)
            return replace(record) if record is not None else None

    def get_all_health(self) -> Dict[str, ConnectionHealth]:
        """Get snapshots of every tracked health record."""
        result = {}
        for server_id in list(self._records):
            record = self.get_health(server_id)
            if record is not None:
                result[server_id] = record
        return result

    def remove_server(self, server_id: str) -> None:
        with self._lock_for(server_id):
            self._records.pop(server_id, None)

    def is_healthy(self, server_id: str) -> bool:
        """
        Check if an endpoint is healthy.

        Healthy means a record exists, the last update reported a connection,
        fewer than ``max_errors`` failures are outstanding and the record was
        updated within ``max_age``. Unknown endpoints are unhealthy.
        """
        with self._lock_for(server_id):
            record = self._records.get(server_id)
            if record is None:
                return False
            return (
                record.connected
                and record.error_count < self.max_errors
                and self._clock() - record.last_check < self.max_age
            )

    def get_unhealthy_servers(self) -> Set[str]:
        return {server_id for server_id in list(self._records) if not self.is_healthy(server_id)}

    def sweep(self) -> int:
        """
        Evict records not updated within ``stale_age``, regardless of health.

        Returns:
            Number of records removed
        """
        removed = 0
        for server_id in list(self._records):
            with self._lock_for(server_id):
                record = self._records.get(server_id)
                if record is not None and self._clock() - record.last_check > self.stale_age:
                    del self._records[server_id]
                    removed += 1

        if removed:
            logger.debug("Evicted stale connection health records", extra={"removed": removed})
        return removed

    async def record_check(
        self,
        server_id: str,
        probe: Callable[[], Awaitable[Any]],
        timeout: float = constants.DEFAULT_OPERATION_TIMEOUT,
        retry_options: Optional[RetryOptions] = None,
    ) -> bool:
        """
        Run a liveness probe and record its outcome.

        The probe runs under a deadline with transient-error retries; any
        unrecovered failure marks the endpoint disconnected instead of
        propagating.

        Returns:
            True if the probe completed, False otherwise
        """
        failures: List[BaseException] = []

        async def check() -> bool:
            await probe()
            return True

        connected = await with_graceful_degradation(
            check,
            False,
            timeout=timeout,
            retry_options=retry_options,
            on_error=failures.append,
        )
        error = error_message(failures[-1]) if failures else None
        self.update_health(server_id, connected, error)
        return connected
