"""Retry metrics for stream invocations."""

from typing import Dict


class RetryMetrics:
    """Tracks per-producer setup attempts and invocation outcomes."""
    
    def __init__(self):
        self.setup_attempts: Dict[str, int] = {}
        self.successes: Dict[str, int] = {}
        self.setup_failures: Dict[str, int] = {}
        self.relay_failures: Dict[str, int] = {}
        self.retried_invocations: Dict[str, int] = {}
        
    def record_attempt(self, producer: str):
        self.setup_attempts[producer] = self.setup_attempts.get(producer, 0) + 1
    
    def record_success(self, producer: str, attempts: int):
        """Record an invocation that reached the relay phase and completed."""
        self.successes[producer] = self.successes.get(producer, 0) + 1
        if attempts > 1:
            self.retried_invocations[producer] = self.retried_invocations.get(producer, 0) + 1
    
    def record_setup_failure(self, producer: str, reason: str):
        """Record a setup failure, keyed by ``producer:reason``."""
        key = f"{producer}:{reason}"
        self.setup_failures[key] = self.setup_failures.get(key, 0) + 1
    
    def record_relay_failure(self, producer: str):
        self.relay_failures[producer] = self.relay_failures.get(producer, 0) + 1
    
    def get_success_rate(self, producer: str) -> float:
        """Fraction of finished invocations for ``producer`` that succeeded."""
        successes = self.successes.get(producer, 0)
        failures = self.relay_failures.get(producer, 0) + sum(
            count for key, count in self.setup_failures.items()
            if key.rsplit(":", 1)[0] == producer
        )
        total = successes + failures
        return successes / total if total > 0 else 0.0
