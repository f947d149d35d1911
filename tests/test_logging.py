"""Tests for log context propagation and formatting."""

import asyncio
import json
import logging

import pytest

from app.core.logging import ContextFilter, LogContext, StructuredFormatter


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []
        self.addFilter(ContextFilter())

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    handler = ListHandler()
    logger = logging.getLogger("kamibot.tests.logging")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield logger, handler.records
    logger.removeHandler(handler)


def test_context_fields_are_attached_and_removed(captured):
    logger, records = captured

    with LogContext(jid="923001234567"):
        with LogContext(session_id="s1"):
            logger.info("inner")
        logger.info("outer")
    logger.info("after")

    assert (records[0].jid, records[0].session_id) == ("923001234567", "s1")
    assert records[1].jid == "923001234567"
    assert not hasattr(records[1], "session_id")
    assert not hasattr(records[2], "jid")


@pytest.mark.asyncio
async def test_context_is_isolated_per_task(captured):
    logger, records = captured

    async def work(api_index):
        with LogContext(api_index=api_index):
            await asyncio.sleep(0)
            logger.info("polled")

    await asyncio.gather(work(1), work(2), work(3))

    assert sorted(r.api_index for r in records) == [1, 2, 3]


def test_structured_formatter_emits_json(captured):
    logger, records = captured

    with LogContext(jid="923001234567", api_index=2):
        logger.warning("Broadcast done")

    entry = json.loads(StructuredFormatter().format(records[0]))
    assert entry["level"] == "WARNING"
    assert entry["msg"] == "Broadcast done"
    assert entry["jid"] == "923001234567"
    assert entry["api_index"] == 2
