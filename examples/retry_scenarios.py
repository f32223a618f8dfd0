"""
Example: Reliable Streaming Scenarios

This example wraps scripted producers with the retry coordinator and the
schema-gated relay to show how setup failures, mid-stream failures and
invalid payloads reach the caller.
"""

import asyncio
import logging

from reliable_stream import (
    ReliableStream,
    RetryPolicy,
    SchemaGatedRelay,
    ScriptedProducer,
    StreamEvent,
)

POLICY = RetryPolicy(max_attempts=3, use_backoff=False, base_delay=0.05, contract_validation=True)


async def print_stream(title, stream):
    print(f"=== {title} ===")
    async for event in stream.produce("Summarize the release notes"):
        print(f"  {event.kind:16} {event.content}")
    print()


async def example_transient_setup_failure():
    """A connection reset before any output is retried transparently."""
    producer = ScriptedProducer([
        [RuntimeError("read ECONNRESET")],
        [StreamEvent.data("All good"), StreamEvent.terminal_result("call-42")],
    ])
    await print_stream("Transient setup failure", ReliableStream(producer, POLICY))
    print(f"Producer invoked {producer.invocations} times\n")


async def example_failure_after_output():
    """Once output has begun, a failure is reported once and never retried."""
    producer = ScriptedProducer([
        [StreamEvent.data("Partial answer..."), RuntimeError("socket hang up")],
    ])
    await print_stream("Failure after output", ReliableStream(producer, POLICY))


async def example_schema_gated():
    """Structured output is validated as a whole and re-requested if invalid."""
    producer = ScriptedProducer([
        [StreamEvent.data('{"summary": 3}')],
        [StreamEvent.data('{"summary": "Three fixes"}')],
    ])
    relay = SchemaGatedRelay(
        ReliableStream(producer, POLICY),
        schema={
            "type": "object",
            "properties": {"summary": {"type": "string"}},
            "required": ["summary"],
        },
        use_backoff=False,
        base_delay=0.05,
    )
    await print_stream("Schema-gated relay", relay)


async def main():
    logging.basicConfig(level=logging.INFO)
    await example_transient_setup_failure()
    await example_failure_after_output()
    await example_schema_gated()


if __name__ == "__main__":
    asyncio.run(main())
