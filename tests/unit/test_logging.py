"""Unit tests for the structured invocation logger."""

import logging

import pytest

from reliable_stream.models.events import StreamEvent
from reliable_stream.observability.logging import ReliabilityLogger
from reliable_stream.producers.scripted import ScriptedProducer, Stall
from reliable_stream.reliability.streaming_retry import ReliableStream

LOGGER_NAME = "reliable_stream.producers.scripted"


def completion_records(caplog, method="stream"):
    return [r for r in caplog.records if f"Completed {method} invocation" in r.getMessage()]


@pytest.mark.unit
class TestReliabilityLogger:

    def test_structured_fields(self, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
        ReliabilityLogger("scripted").info("hello", request_id="abc", attempt=2, skipped=None)

        assert caplog.records[-1].getMessage() == "[producer=scripted request_id=abc attempt=2] hello"

    def test_success_outcome_logged_at_info(self, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)
        with ReliabilityLogger("scripted").track_invocation("stream", failed_outcomes=("failed",)) as info:
            info["outcome"] = "done"

        record = completion_records(caplog)[0]
        assert record.levelno == logging.INFO
        assert "outcome=done" in record.getMessage()

    def test_failed_outcome_logged_at_warning(self, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)
        with ReliabilityLogger("scripted").track_invocation("stream", failed_outcomes=("failed",)) as info:
            info["outcome"] = "failed"

        assert completion_records(caplog)[0].levelno == logging.WARNING

    def test_exception_logged_at_error(self, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)
        with pytest.raises(RuntimeError):
            with ReliabilityLogger("scripted").track_invocation("stream"):
                raise RuntimeError("boom")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "error_type=RuntimeError" in record.getMessage()

    @pytest.mark.asyncio
    async def test_coordinator_setup_failure_is_a_warning(self, fast_policy, collect, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)
        producer = ScriptedProducer([[RuntimeError("401 Unauthorized")]])
        await collect(ReliableStream(producer, fast_policy).produce("hi"))

        record = completion_records(caplog)[0]
        assert record.levelno == logging.WARNING
        assert "outcome=setup_failed" in record.getMessage()

    @pytest.mark.asyncio
    async def test_abandoned_invocation_logged_at_debug(self, fast_policy, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
        producer = ScriptedProducer([[StreamEvent.data("a"), Stall()]])
        stream = ReliableStream(producer, fast_policy).produce("hi")

        await stream.__anext__()
        await stream.aclose()

        abandoned = [r for r in caplog.records if "Abandoned stream invocation" in r.getMessage()]
        assert len(abandoned) == 1
        assert abandoned[0].levelno == logging.DEBUG
        assert "outcome=relaying" in abandoned[0].getMessage()
        assert completion_records(caplog) == []
