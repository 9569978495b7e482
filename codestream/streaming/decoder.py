"""Newline-delimited JSON decoding for the upstream token stream.

The model server writes one JSON object per line, but network reads do not
respect line boundaries: a chunk can hold several records, or stop in the
middle of one.  :class:`LineDecoder` buffers the unfinished tail between
chunks, strips byte-order marks and blank lines, and turns each complete line
into a :class:`GeneratedRecord`.  A line that does not decode is treated as
noise and dropped, never as an error.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from .models import GeneratedRecord

logger = logging.getLogger(__name__)

_BOM = "\ufeff"
_RECORD_KEYS = frozenset({"response", "done", "error"})


def decode_record(line: str) -> GeneratedRecord | None:
    """Decode one NDJSON line, returning ``None`` for anything unusable.

    Unusable covers malformed or truncated JSON, JSON values that are not
    objects, objects with none of the ``response``/``done``/``error`` keys, and
    objects whose fields have the wrong types.
    """
    try:
        data = json.loads(line)
    except (ValueError, RecursionError):
        logger.debug("Dropping undecodable line (possibly partial): %.100s", line)
        return None

    if not isinstance(data, dict) or not _RECORD_KEYS & data.keys():
        logger.debug("Dropping line that is not a generation record: %.100s", line)
        return None

    try:
        return GeneratedRecord.model_validate(data)
    except ValidationError:
        logger.debug("Dropping record with invalid fields: %.100s", line)
        return None


class LineDecoder:
    """Reassembles text lines from arbitrarily framed chunks.

    One decoder serves exactly one stream; it is not restartable.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @staticmethod
    def _clean(line: str) -> str | None:
        cleaned = line.replace(_BOM, "").strip()
        return cleaned or None

    def feed(self, chunk: bytes | str) -> list[str]:
        """Add a chunk and return the lines it completed.

        The trailing piece after the last newline is kept until the next
        call to :meth:`feed` or :meth:`flush`.
        """
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        self._pending += text
        *complete, self._pending = self._pending.split("\n")
        return [line for line in map(self._clean, complete) if line is not None]

    def flush(self) -> list[str]:
        """Return whatever is left once the stream has ended."""
        self._pending += self._decoder.decode(b"", final=True)
        remainder, self._pending = self._pending, ""
        lines = [self._clean(line) for line in remainder.split("\n")]
        return [line for line in lines if line is not None]

    async def lines(self, chunks: AsyncIterable[bytes | str]) -> AsyncIterator[str]:
        """Yield complete, non-empty lines from an async stream of chunks."""
        async for chunk in chunks:
            for line in self.feed(chunk):
                yield line
        for line in self.flush():
            yield line

    async def records(self, chunks: AsyncIterable[bytes | str]) -> AsyncIterator[GeneratedRecord]:
        """Yield every line of the stream that decodes into a record."""
        async for line in self.lines(chunks):
            record = decode_record(line)
            if record is not None:
                yield record
