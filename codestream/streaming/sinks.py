"""Destinations for relay events.

A sink is the downstream end of a relay. ``send`` returns ``False`` once the
consumer is gone, which puts the relay into detached mode; it never raises
for a vanished client.

:class:`QueueEventSink` is the bounded channel used by the HTTP server: the
relay task writes into it and the response generator reads from it, so a slow
client backpressures the relay. :class:`CallbackEventSink` hands each event to
a coroutine, which is how the CLI renders a generation live.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol

from .models import RelayEvent

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """What :class:`~codestream.streaming.relay.GenerationRelay` pushes to."""

    async def send(self, event: RelayEvent) -> bool: ...

    async def close(self) -> None: ...


class QueueEventSink:
    """Bounded queue between a relay task and one consumer."""

    def __init__(self, maxsize: int = 64) -> None:
        self._queue: asyncio.Queue[RelayEvent | None] = asyncio.Queue(maxsize=maxsize)
        self._detached = False
        self._closed = False

    @property
    def detached(self) -> bool:
        return self._detached

    async def send(self, event: RelayEvent) -> bool:
        if self._detached or self._closed:
            return False
        await self._queue.put(event)
        return not self._detached

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._detached:
            await self._queue.put(None)

    def detach(self) -> None:
        """Mark the consumer as gone.

        Pending events are discarded so a producer blocked on a full queue
        wakes up, and every later :meth:`send` returns ``False``.
        """
        if self._detached:
            return
        self._detached = True
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            dropped += 1
        if dropped:
            logger.debug("Discarded %d undelivered event(s) after client disconnect", dropped)

    async def events(self) -> AsyncIterator[RelayEvent]:
        """Yield events until the producer closes the sink.

        Leaving the loop early (the client disconnected) detaches the sink.
        """
        try:
            while True:
                event = await self._queue.get()
                if event is None:
                    return
                yield event
        finally:
            if not self._closed or not self._queue.empty():
                self.detach()


class CallbackEventSink:
    """Forwards each event to an async callback.

    The callback may return ``False`` to signal that nobody is listening any
    more; after that the sink refuses further events.
    """

    def __init__(self, callback: Callable[[RelayEvent], Awaitable[bool | None]]) -> None:
        self._callback = callback
        self._open = True
        self.closed = False

    async def send(self, event: RelayEvent) -> bool:
        if not self._open:
            return False
        if await self._callback(event) is False:
            self._open = False
        return self._open

    async def close(self) -> None:
        self._open = False
        self.closed = True
