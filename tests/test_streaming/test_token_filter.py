"""Unit tests for TokenFilter (codestream.streaming.filter)."""

from __future__ import annotations

import pytest

from codestream.ollama_client import UpstreamError
from codestream.streaming import GeneratedRecord, TokenFilter


def _record(text: str = "", done: bool = False, error: str | None = None) -> GeneratedRecord:
    return GeneratedRecord(response=text, done=done, error=error)


async def _aiter(items):
    for item in items:
        yield item


async def _fragments(token_filter: TokenFilter, records: list[GeneratedRecord]) -> list[str]:
    return [f async for f in token_filter.fragments(_aiter(records))]


class TestAccept:
    @pytest.mark.unit
    def test_plain_fragment_accepted(self):
        token_filter = TokenFilter()
        assert token_filter.accept(_record("public class")) == "public class"
        assert token_filter.stats.accepted == 1

    @pytest.mark.unit
    def test_whitespace_preserved_inside_fragment(self):
        assert TokenFilter().accept(_record("  x = 1\n")) == "  x = 1\n"

    @pytest.mark.unit
    def test_empty_dropped(self):
        token_filter = TokenFilter()
        assert token_filter.accept(_record("")) is None
        assert token_filter.stats.empty == 1

    @pytest.mark.unit
    def test_whitespace_only_dropped_by_default(self):
        assert TokenFilter().accept(_record("\n  ")) is None

    @pytest.mark.unit
    def test_whitespace_only_kept_when_configured(self):
        assert TokenFilter(drop_whitespace=False).accept(_record("\n  ")) == "\n  "

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text",
        [
            "I'm sorry, I cannot help",
            "I CAN'T do that",
            "This cannot be generated",
            "I am unable to comply",
            "I'm not able to",
            "I apologize for the confusion",
            "I\u2019m sorry",
        ],
    )
    def test_refusals_dropped(self, text):
        token_filter = TokenFilter()
        assert token_filter.accept(_record(text)) is None
        assert token_filter.stats.refusals == 1

    @pytest.mark.unit
    def test_custom_phrases(self):
        token_filter = TokenFilter(refusal_phrases=["as an ai"])
        assert token_filter.accept(_record("As an AI model")) is None
        assert token_filter.accept(_record("I'm sorry")) == "I'm sorry"


class TestFragments:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_order_preserved(self):
        records = [_record("a"), _record("b"), _record("c"), _record(done=True)]
        assert await _fragments(TokenFilter(), records) == ["a", "b", "c"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_terminal_text_not_emitted(self):
        token_filter = TokenFilter()
        records = [_record("a"), _record("trailing", done=True)]
        assert await _fragments(token_filter, records) == ["a"]
        assert token_filter.stats.terminal_seen is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_records_after_terminal_ignored(self):
        records = [_record("a"), _record(done=True), _record("noise"), _record("more")]
        assert await _fragments(TokenFilter(), records) == ["a"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_refusal_between_valid_fragments(self):
        records = [_record("x"), _record("I apologize"), _record("y"), _record(done=True)]
        assert await _fragments(TokenFilter(), records) == ["x", "y"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_end_without_terminal(self):
        token_filter = TokenFilter()
        assert await _fragments(token_filter, [_record("a")]) == ["a"]
        assert token_filter.stats.terminal_seen is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_error_record_raises(self):
        records = [_record("a"), _record(error="out of memory")]
        with pytest.raises(UpstreamError, match="out of memory"):
            await _fragments(TokenFilter(), records)
