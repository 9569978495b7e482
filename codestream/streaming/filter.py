"""Per-record filtering of the decoded token stream.

Decides which fragments are worth forwarding to the client. Rules, in order:

1. A record carrying an ``error`` aborts the stream (:class:`UpstreamError`).
2. The terminal record (``done``) ends the stream; its text is not content.
3. Empty (and, by default, whitespace-only) fragments are dropped.
4. Fragments containing a refusal phrase are dropped and logged.

Everything else is yielded in arrival order.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from dataclasses import dataclass

from codestream.config import DEFAULT_REFUSAL_PHRASES
from codestream.ollama_client import UpstreamError

from .models import GeneratedRecord

logger = logging.getLogger(__name__)


@dataclass
class FilterStats:
    """Counters for one filtered stream."""

    accepted: int = 0
    empty: int = 0
    refusals: int = 0
    terminal_seen: bool = False


class TokenFilter:
    """Filters :class:`GeneratedRecord` objects down to emit-worthy fragments."""

    def __init__(
        self,
        refusal_phrases: Iterable[str] = DEFAULT_REFUSAL_PHRASES,
        drop_whitespace: bool = True,
    ) -> None:
        self.refusal_phrases = tuple(p.lower() for p in refusal_phrases if p.strip())
        self.drop_whitespace = drop_whitespace
        self.stats = FilterStats()

    def is_refusal(self, text: str) -> bool:
        """Return ``True`` if *text* contains one of the refusal phrases."""
        lower = text.lower().replace("\u2019", "'")
        return any(phrase in lower for phrase in self.refusal_phrases)

    def accept(self, record: GeneratedRecord) -> str | None:
        """Return the record's fragment if it should be emitted, else ``None``.

        Only the content rules apply here; terminal and error records are
        handled by :meth:`fragments`.
        """
        fragment = record.text_fragment
        if not fragment or (self.drop_whitespace and not fragment.strip()):
            self.stats.empty += 1
            return None
        if self.is_refusal(fragment):
            self.stats.refusals += 1
            logger.warning("Model returned a refusal, skipping: %.200s", fragment)
            return None
        self.stats.accepted += 1
        return fragment

    async def fragments(self, records: AsyncIterable[GeneratedRecord]) -> AsyncIterator[str]:
        """Yield accepted fragments until the terminal record arrives.

        Raises:
            UpstreamError: If the server reports an error inside the stream.
        """
        async for record in records:
            if record.error:
                raise UpstreamError(f"Ollama reported an error: {record.error}")
            if record.is_final:
                self.stats.terminal_seen = True
                logger.debug("Terminal record received from %s", record.model_name or "model")
                return
            fragment = self.accept(record)
            if fragment is not None:
                yield fragment
