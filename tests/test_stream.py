"""Tests for the run stream normalizer."""

from __future__ import annotations

from collections import namedtuple
from unittest.mock import AsyncMock

import pytest

from langgraph_chat.stream import EventKind, RunStream, StreamEvent, extract_interrupt

StreamPart = namedtuple("StreamPart", ["event", "data"])


async def parts(*items):
    for item in items:
        yield item


class TestStreamEvent:
    """Tests for StreamEvent.from_raw."""

    def test_tags_sdk_stream_part(self):
        event = StreamEvent.from_raw(StreamPart("updates", {"agent": {"messages": []}}))

        assert event.kind is EventKind.UPDATES
        assert event.event == "updates"
        assert event.data == {"agent": {"messages": []}}

    def test_tags_dict_part(self):
        event = StreamEvent.from_raw({"event": "messages/complete", "data": []})

        assert event.kind is EventKind.MESSAGES_COMPLETE

    def test_subgraph_namespace(self):
        event = StreamEvent.from_raw({"event": "updates|tools:abc", "data": {}})

        assert event.kind is EventKind.UPDATES
        assert event.event == "updates|tools:abc"

    def test_unknown_event(self):
        assert StreamEvent.from_raw({"event": "custom", "data": 1}).kind is EventKind.UNKNOWN


class TestExtractInterrupt:
    """Tests for extract_interrupt."""

    def test_interrupt_value(self):
        event = StreamEvent.from_raw(
            {"event": "updates", "data": {"__interrupt__": [{"value": "Approve?", "id": "i-1"}]}}
        )

        assert extract_interrupt(event) == "Approve?"
        assert event.interrupt == "Approve?"

    def test_no_interrupt(self):
        event = StreamEvent.from_raw({"event": "updates", "data": {"agent": {}}})

        assert extract_interrupt(event) is None

    def test_ignores_message_events(self):
        event = StreamEvent.from_raw({"event": "messages/partial", "data": [{"__interrupt__": "x"}]})

        assert extract_interrupt(event) is None


class TestRunStream:
    """Tests for RunStream."""

    @pytest.mark.asyncio
    async def test_replays_first_then_rest_in_order(self):
        stream = RunStream(
            "thread-1",
            {"event": "metadata", "data": {"run_id": "r"}},
            parts(
                {"event": "updates", "data": {"a": 1}},
                {"event": "updates", "data": {"b": 2}},
            ),
        )

        events = [event async for event in stream]

        assert [event.data for event in events] == [{"run_id": "r"}, {"a": 1}, {"b": 2}]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_records_interrupt(self):
        stream = RunStream(
            "thread-1",
            {"event": "metadata", "data": {}},
            parts({"event": "updates", "data": {"__interrupt__": [{"value": "Continue?"}]}}),
        )

        async for _ in stream:
            pass

        assert stream.interrupt == "Continue?"

    @pytest.mark.asyncio
    async def test_error_events_are_passed_through(self):
        stream = RunStream(
            "thread-1",
            {"event": "metadata", "data": {}},
            parts({"event": "error", "data": {"message": "boom"}}),
        )

        events = [event async for event in stream]

        assert events[-1].kind is EventKind.ERROR

    @pytest.mark.asyncio
    async def test_aclose_closes_underlying_iterator(self):
        closed = []

        async def source():
            try:
                yield {"event": "updates", "data": {}}
                yield {"event": "updates", "data": {}}
            finally:
                closed.append(True)

        rest = source()
        first = await rest.__anext__()
        async with RunStream("thread-1", first, rest) as stream:
            await stream.__anext__()

        assert closed == [True]
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_closes_client_after_last_event(self):
        client = AsyncMock()
        stream = RunStream("thread-1", {"event": "metadata", "data": {}}, parts(), client=client)

        async for _ in stream:
            pass
        await stream.aclose()

        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closes_client_on_mid_stream_failure(self):
        async def failing():
            raise RuntimeError("connection reset")
            yield  # pragma: no cover

        client = AsyncMock()
        stream = RunStream("thread-1", {"event": "metadata", "data": {}}, failing(), client=client)
        await stream.__anext__()

        with pytest.raises(RuntimeError):
            await stream.__anext__()

        assert stream.closed
        client.aclose.assert_awaited_once()
