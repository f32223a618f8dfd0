"""
Producer registry.

Concrete producers are selected by configured name, never by inspecting
types inside the reliability layer. Host applications register a factory
per backend at startup and build the configured one, optionally wrapped in
the stream retry coordinator.
"""

import logging
from typing import Callable, Dict, List, Optional

from ..config.settings import ReliabilitySettings
from ..reliability.metrics import RetryMetrics
from ..reliability.policy import RetryPolicy
from ..reliability.streaming_retry import ReliableStream
from .base import StreamProducer
from .scripted import SCENARIOS, ScriptedProducer

logger = logging.getLogger(__name__)

ProducerFactory = Callable[[], StreamProducer]


class ProducerRegistry:
    """Registry of producer factories keyed by name."""

    def __init__(self):
        self._factories: Dict[str, ProducerFactory] = {}

    def register(self, name: str, factory: ProducerFactory, replace: bool = False) -> None:
        """Register a producer factory.

        Args:
            name: Name used to select the producer in configuration
            factory: Zero-argument callable building a fresh producer
            replace: Overwrite an existing registration instead of raising

        Raises:
            ValueError: If ``name`` is already registered and ``replace`` is False
        """
        if name in self._factories and not replace:
            raise ValueError(f"Producer '{name}' already registered")
        self._factories[name] = factory
        logger.debug(f"Registered producer '{name}'")

    def unregister(self, name: str) -> bool:
        if name in self._factories:
            del self._factories[name]
            return True
        return False

    def has_producer(self, name: str) -> bool:
        return name in self._factories

    def get_available_producers(self) -> List[str]:
        return sorted(self._factories)

    def create(self, name: str) -> StreamProducer:
        """Build the producer registered under ``name``.

        Raises:
            KeyError: If no producer is registered under ``name``
        """
        factory = self._factories.get(name)
        if factory is None:
            available = ", ".join(self.get_available_producers()) or "none"
            raise KeyError(f"Unknown producer '{name}'. Available producers: {available}")
        return factory()

    def create_reliable(
        self,
        name: str,
        policy: Optional[RetryPolicy] = None,
        metrics: Optional[RetryMetrics] = None,
    ) -> ReliableStream:
        """Build the named producer wrapped in the stream retry coordinator."""
        return ReliableStream(self.create(name), policy=policy, metrics=metrics)

    def from_settings(
        self,
        settings: ReliabilitySettings,
        metrics: Optional[RetryMetrics] = None,
    ) -> ReliableStream:
        """Build the producer named by ``settings`` with its retry policy.

        Raises:
            ValueError: If ``settings`` does not name a producer
        """
        if not settings.producer:
            raise ValueError("No producer configured")
        return self.create_reliable(settings.producer, settings.to_policy(), metrics)


def _scenario_factory(scenario: str) -> ProducerFactory:
    return lambda: ScriptedProducer.from_scenario(scenario)


def build_default_registry() -> ProducerRegistry:
    """Registry preloaded with the scripted end-to-end scenarios."""
    registry = ProducerRegistry()
    for scenario in SCENARIOS:
        registry.register(f"scripted-{scenario}", _scenario_factory(scenario))
    return registry


_default_registry = build_default_registry()


def get_default_registry() -> ProducerRegistry:
    return _default_registry
