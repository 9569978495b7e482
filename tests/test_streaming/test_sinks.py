"""Unit tests for QueueEventSink and CallbackEventSink (codestream.streaming.sinks)."""

from __future__ import annotations

import asyncio

import pytest

from codestream.streaming import CallbackEventSink, EventName, QueueEventSink, RelayEvent


def _chunk(data: str) -> RelayEvent:
    return RelayEvent(name=EventName.CODE_CHUNK, data=data)


class TestQueueEventSink:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_events_delivered_in_order_until_close(self):
        sink = QueueEventSink(maxsize=8)
        assert await sink.send(_chunk("a")) is True
        assert await sink.send(_chunk("b")) is True
        await sink.close()

        received = [e.data async for e in sink.events()]
        assert received == ["a", "b"]
        assert sink.detached is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_after_close_refused(self):
        sink = QueueEventSink()
        await sink.close()
        assert await sink.send(_chunk("late")) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_detach_refuses_further_sends(self):
        sink = QueueEventSink()
        await sink.send(_chunk("a"))
        sink.detach()
        assert sink.detached is True
        assert await sink.send(_chunk("b")) is False
        await sink.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_detach_wakes_blocked_producer(self):
        sink = QueueEventSink(maxsize=1)
        await sink.send(_chunk("fills the queue"))

        blocked = asyncio.create_task(sink.send(_chunk("waits")))
        await asyncio.sleep(0)
        assert not blocked.done()

        sink.detach()
        assert await asyncio.wait_for(blocked, timeout=1) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_consumer_leaving_early_detaches(self):
        sink = QueueEventSink(maxsize=8)
        for data in ("a", "b", "c"):
            await sink.send(_chunk(data))

        events = sink.events()
        first = await events.__anext__()
        await events.aclose()

        assert first.data == "a"
        assert sink.detached is True
        assert await sink.send(_chunk("d")) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bounded_queue_backpressures_producer(self):
        sink = QueueEventSink(maxsize=2)

        async def produce():
            for i in range(5):
                await sink.send(_chunk(str(i)))
            await sink.close()

        producer = asyncio.create_task(produce())
        await asyncio.sleep(0)
        assert not producer.done()

        received = [e.data async for e in sink.events()]
        await producer
        assert received == ["0", "1", "2", "3", "4"]


class TestCallbackEventSink:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_forwards_events(self):
        seen: list[str] = []

        async def callback(event):
            seen.append(event.data)

        sink = CallbackEventSink(callback)
        assert await sink.send(_chunk("a")) is True
        await sink.close()
        assert seen == ["a"]
        assert sink.closed is True
        assert await sink.send(_chunk("b")) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_callback_returning_false_stops_delivery(self):
        seen: list[str] = []

        async def callback(event):
            seen.append(event.data)
            return False

        sink = CallbackEventSink(callback)
        assert await sink.send(_chunk("a")) is False
        assert await sink.send(_chunk("b")) is False
        assert seen == ["a"]
