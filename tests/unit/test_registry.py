"""Unit tests for producer registration and selection."""

import pytest

from reliable_stream.config.settings import ReliabilitySettings
from reliable_stream.producers.registry import (
    ProducerRegistry,
    build_default_registry,
    get_default_registry,
)
from reliable_stream.producers.scripted import SCENARIOS, ScriptedProducer
from reliable_stream.reliability.policy import RetryPolicy
from reliable_stream.reliability.streaming_retry import ReliableStream


@pytest.mark.unit
class TestProducerRegistry:
    """Test producer registry functions."""

    def test_register_and_create(self):
        registry = ProducerRegistry()
        registry.register("fixed", lambda: ScriptedProducer([[]], name="fixed"))

        assert registry.has_producer("fixed")
        producer = registry.create("fixed")
        assert producer.get_producer_name() == "fixed"

    def test_factory_builds_fresh_producers(self):
        registry = ProducerRegistry()
        registry.register("fixed", lambda: ScriptedProducer([[]]))
        assert registry.create("fixed") is not registry.create("fixed")

    def test_duplicate_registration(self):
        registry = ProducerRegistry()
        registry.register("fixed", lambda: ScriptedProducer([[]]))
        with pytest.raises(ValueError, match="already registered"):
            registry.register("fixed", lambda: ScriptedProducer([[]]))
        registry.register("fixed", lambda: ScriptedProducer([[]], name="other"), replace=True)
        assert registry.create("fixed").get_producer_name() == "other"

    def test_unknown_producer_lists_available(self):
        registry = ProducerRegistry()
        registry.register("b", lambda: ScriptedProducer([[]]))
        registry.register("a", lambda: ScriptedProducer([[]]))

        with pytest.raises(KeyError) as exc_info:
            registry.create("missing")
        assert "Available producers: a, b" in str(exc_info.value)

    def test_unregister(self):
        registry = ProducerRegistry()
        registry.register("fixed", lambda: ScriptedProducer([[]]))
        assert registry.unregister("fixed") is True
        assert registry.unregister("fixed") is False
        assert registry.get_available_producers() == []

    def test_create_reliable(self):
        registry = ProducerRegistry()
        registry.register("fixed", lambda: ScriptedProducer([[]], name="fixed"))
        policy = RetryPolicy(max_attempts=5)

        stream = registry.create_reliable("fixed", policy)
        assert isinstance(stream, ReliableStream)
        assert stream.policy is policy
        assert stream.get_producer_name() == "reliable-fixed"

    def test_from_settings(self):
        registry = build_default_registry()
        settings = ReliabilitySettings(
            retries=4, retry_timeout_ms=2000, producer="scripted-success"
        )
        stream = registry.from_settings(settings)

        assert stream.producer.get_producer_name() == "scripted-success"
        assert stream.policy.max_attempts == 4
        assert stream.policy.explicit_timeout == 2.0

    def test_from_settings_requires_producer(self):
        with pytest.raises(ValueError, match="No producer configured"):
            build_default_registry().from_settings(ReliabilitySettings())

    def test_default_registry_has_scenarios(self):
        names = get_default_registry().get_available_producers()
        assert names == sorted(f"scripted-{scenario}" for scenario in SCENARIOS)
