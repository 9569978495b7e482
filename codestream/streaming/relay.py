"""Streaming generation relay.

One :class:`GenerationRelay` serves one client request. It opens a single
upstream generation, pipes the body through :class:`LineDecoder` and
:class:`TokenFilter`, pushes every accepted fragment to an :class:`EventSink`
as a ``code-chunk`` event and keeps its own copy of the text.

Lifecycle::

    IDLE -> STREAMING -> COMPLETING -> COMPLETED
                 \\            \\
                  +------------+--> FAILED

* The terminal record, or the upstream body simply ending, moves the relay to
  COMPLETING. Accumulated text is handed to the completion handler, then a
  ``complete`` event is pushed. With no text a ``no-code`` event is pushed
  instead and nothing is handed off.
* Upstream failures, timeouts and unexpected errors push one ``error`` event
  and end in FAILED. Fragments already pushed stay pushed and are kept in
  the outcome.
* A client that goes away only detaches the sink. The relay keeps draining
  upstream so the connection is released normally.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from typing import Protocol

from codestream.ollama_client import UpstreamError

from .decoder import LineDecoder
from .filter import FilterStats, TokenFilter
from .models import EventName, RelayEvent, RelayOutcome, RelayState
from .sinks import EventSink

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[str], Awaitable[None]]


class Upstream(Protocol):
    """Anything that can stream a generation body (see ``OllamaClient``)."""

    def stream_generate(
        self, prompt: str, model: str | None = None, system: str = ""
    ) -> AsyncIterator[bytes]: ...


class RelayStateError(RuntimeError):
    """Raised when a relay is run more than once."""


class GenerationRelay:
    """Runs one streaming generation from upstream to a sink."""

    def __init__(
        self,
        upstream: Upstream,
        prompt: str,
        sink: EventSink,
        on_complete: CompletionHandler | None = None,
        model: str | None = None,
        timeout: float | None = 300,
        token_filter: TokenFilter | None = None,
    ) -> None:
        self._upstream = upstream
        self._prompt = prompt
        self._sink = sink
        self._on_complete = on_complete
        self._model = model
        self._timeout = timeout
        self._filter = token_filter or TokenFilter()
        self._state = RelayState.IDLE
        self._buffer: list[str] = []
        self._chunks = 0
        self._detached = False

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def stats(self) -> FilterStats:
        """Filter counters for this run."""
        return self._filter.stats

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> RelayOutcome:
        """Drive the relay to COMPLETED or FAILED and report the outcome.

        Raises:
            RelayStateError: If this relay has already been run.
        """
        if self._state is not RelayState.IDLE:
            raise RelayStateError(f"Relay already started (state: {self._state.value})")

        self._transition(RelayState.STREAMING)
        try:
            await asyncio.wait_for(self._consume(), timeout=self._timeout)
        except asyncio.TimeoutError:
            return await self._fail(f"Generation timed out after {self._timeout}s")
        except UpstreamError as exc:
            return await self._fail(str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error while streaming")
            return await self._fail(f"{type(exc).__name__}: {exc}")

        self._transition(RelayState.COMPLETING)
        return await self._complete()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, state: RelayState) -> None:
        logger.debug("Relay %s -> %s", self._state.value, state.value)
        self._state = state

    async def _consume(self) -> None:
        decoder = LineDecoder()
        body = self._upstream.stream_generate(self._prompt, model=self._model)
        async with aclosing(body):
            async for fragment in self._filter.fragments(decoder.records(body)):
                self._buffer.append(fragment)
                self._chunks += 1
                await self._push(RelayEvent(name=EventName.CODE_CHUNK, data=fragment))
        if not self._filter.stats.terminal_seen:
            logger.info("Upstream ended without a terminal record; treating as complete")

    async def _push(self, event: RelayEvent) -> None:
        if self._detached:
            return
        if not await self._sink.send(event):
            self._detached = True
            logger.info("Client disconnected; continuing to drain upstream without pushing")

    def _take_text(self) -> str:
        text = "".join(self._buffer)
        self._buffer = []
        return text

    async def _complete(self) -> RelayOutcome:
        text = self._take_text()
        stats = self._filter.stats

        if not text:
            logger.warning("Stream completed but no code was generated")
            await self._push(
                RelayEvent(
                    name=EventName.NO_CODE,
                    data="No code was generated. Please check your prompt and Ollama connection.",
                )
            )
            await self._sink.close()
            self._transition(RelayState.COMPLETED)
            return self._outcome(text)

        if self._on_complete is not None:
            try:
                await self._on_complete(text)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Completion handoff failed")
                return await self._fail(f"Failed to save generated code: {exc}", text)

        logger.info(
            "Stream completed: %d characters in %d chunk(s), %d refusal(s) skipped",
            len(text), self._chunks, stats.refusals,
        )
        await self._push(
            RelayEvent(
                name=EventName.COMPLETE,
                data=f"Code generation completed. Total: {len(text)} characters",
            )
        )
        await self._sink.close()
        self._transition(RelayState.COMPLETED)
        return self._outcome(text)

    async def _fail(self, message: str, text: str | None = None) -> RelayOutcome:
        if text is None:
            text = self._take_text()
        logger.error("Generation failed: %s", message)
        await self._push(RelayEvent(name=EventName.ERROR, data=f"Error generating code: {message}"))
        await self._sink.close()
        self._transition(RelayState.FAILED)
        return self._outcome(text, error=message)

    def _outcome(self, text: str, error: str | None = None) -> RelayOutcome:
        return RelayOutcome(
            state=self._state,
            text=text,
            error=error,
            chunks=self._chunks,
            detached=self._detached,
        )
