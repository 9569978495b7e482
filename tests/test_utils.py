"""Unit tests for utility functions (codestream.utils).

Tests cover:
- configure_logging (RichHandler installation, idempotence, level parsing)
- load_json / save_json / save_text (use tmp_path)
- format_duration / format_size
- Rich output helpers
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from codestream.utils import (
    configure_logging,
    format_duration,
    format_size,
    load_json,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
    save_text,
)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    @pytest.mark.unit
    def test_installs_single_rich_handler(self):
        configure_logging("DEBUG")
        configure_logging("INFO")
        logger = logging.getLogger("codestream")
        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.INFO
        assert logger.propagate is False

    @pytest.mark.unit
    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        assert logging.getLogger("codestream").level == logging.INFO

    @pytest.mark.unit
    def test_numeric_level(self):
        configure_logging(logging.WARNING)
        assert logging.getLogger("codestream").level == logging.WARNING


# ---------------------------------------------------------------------------
# JSON / text I/O
# ---------------------------------------------------------------------------


class TestJsonIO:
    @pytest.mark.unit
    def test_load_json_dict(self, tmp_path: Path):
        path = tmp_path / "data.json"
        path.write_text('{"a": 1}', encoding="utf-8")
        assert load_json(path) == {"a": 1}

    @pytest.mark.unit
    def test_load_json_list_wraps_in_dict(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_json(path) == {"_root": [1, 2]}

    @pytest.mark.unit
    def test_load_json_file_not_found(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_json(tmp_path / "missing.json")

    @pytest.mark.unit
    def test_load_json_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_json(path)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_json_creates_parents(self, tmp_path: Path):
        path = tmp_path / "deep" / "nested" / "out.json"
        await save_json({"name": "caf\u00e9", "n": 2}, path)
        content = path.read_text(encoding="utf-8")
        assert json.loads(content) == {"name": "caf\u00e9", "n": 2}
        assert "\n  " in content
        assert "caf\u00e9" in content

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_text(self, tmp_path: Path):
        path = tmp_path / "out" / "gen.txt"
        await save_text("FILE: a.py\nprint(1)\n", path)
        assert path.read_text(encoding="utf-8") == "FILE: a.py\nprint(1)\n"


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    def test_seconds_only(self):
        assert format_duration(3.7) == "3.7s"

    @pytest.mark.unit
    def test_minutes_and_seconds(self):
        assert format_duration(65.2) == "1m 5s"

    @pytest.mark.unit
    def test_hours_minutes_seconds(self):
        assert format_duration(3661.0) == "1h 1m 1s"

    @pytest.mark.unit
    def test_negative(self):
        assert format_duration(-5) == "0.0s"


class TestFormatSize:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "num_bytes,expected",
        [(0, "0 B"), (512, "512 B"), (1536, "1.5 KB"), (2 * 1024 * 1024, "2.0 MB")],
    )
    def test_units(self, num_bytes, expected):
        assert format_size(num_bytes) == expected


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestRichHelpers:
    @pytest.mark.unit
    def test_print_header(self):
        # Should not raise
        print_header("Generating backend code")

    @pytest.mark.unit
    def test_print_summary_table(self):
        print_summary_table({"Files": "2", "Characters": "120"}, title="Generation")

    @pytest.mark.unit
    def test_print_messages(self):
        print_success("Saved")
        print_error("Failed")
        print_warning("No files")
