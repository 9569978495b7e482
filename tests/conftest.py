"""Shared pytest fixtures for the codestream test suite.

Provides reusable helpers for:
- NDJSON bodies as the Ollama server streams them
- A fake upstream that replays byte chunks (or fails, or hangs)
- An in-memory event sink that records what a relay pushes
- A temporary configuration and generation store
"""

from __future__ import annotations

import asyncio
import json
import textwrap
from pathlib import Path
from typing import Any

import pytest

from codestream.config import Config
from codestream.storage import FileGenerationStore
from codestream.streaming import RelayEvent


# ---------------------------------------------------------------------------
# NDJSON helpers
# ---------------------------------------------------------------------------


def ndjson(*records: dict[str, Any]) -> bytes:
    """Serialise records the way Ollama writes them: one object per line."""
    return "".join(json.dumps(r) + "\n" for r in records).encode("utf-8")


def token_records(*fragments: str, done: bool = True) -> list[dict[str, Any]]:
    """Build ``response`` records for *fragments*, optionally followed by ``done``."""
    records: list[dict[str, Any]] = [
        {"model": "qwen2.5-coder", "response": f, "done": False} for f in fragments
    ]
    if done:
        records.append({"model": "qwen2.5-coder", "response": "", "done": True, "eval_count": 42})
    return records


def split_every(data: bytes, size: int) -> list[bytes]:
    """Cut *data* into chunks of *size* bytes, ignoring record boundaries."""
    return [data[i:i + size] for i in range(0, len(data), size)]


# ---------------------------------------------------------------------------
# Fake upstream
# ---------------------------------------------------------------------------


class FakeUpstream:
    """Stands in for ``OllamaClient.stream_generate``.

    Replays *chunks*, then raises *error* if given, then blocks forever if
    *hang* is set. Records each call and how many chunks were consumed.
    """

    def __init__(
        self,
        chunks: list[bytes | str] | None = None,
        error: Exception | None = None,
        hang: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.chunks = list(chunks or [])
        self.error = error
        self.hang = hang
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.consumed = 0
        self.closed = False

    async def stream_generate(self, prompt: str, model: str | None = None, system: str = ""):
        self.calls.append({"prompt": prompt, "model": model, "system": system})
        try:
            for chunk in self.chunks:
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.consumed += 1
                yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
            if self.error is not None:
                raise self.error
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.closed = True


class RecordingSink:
    """Event sink that keeps every event; optionally disconnects after *limit*."""

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit
        self.events: list[RelayEvent] = []
        self.refused = 0
        self.closed = False

    async def send(self, event: RelayEvent) -> bool:
        if self.limit is not None and len(self.events) >= self.limit:
            self.refused += 1
            return False
        self.events.append(event)
        return True

    async def close(self) -> None:
        self.closed = True

    @property
    def names(self) -> list[str]:
        return [e.name.value for e in self.events]

    def payloads(self, name: str) -> list[str]:
        return [e.data for e in self.events if e.name.value == name]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration writing below a temporary directory."""
    return Config(output_dir=tmp_path / "output")


@pytest.fixture
def store(config: Config) -> FileGenerationStore:
    return FileGenerationStore(config.generations_dir)


@pytest.fixture
def two_file_output() -> str:
    """Model output with a Java entity and a TypeScript interface."""
    return textwrap.dedent("""\
        Here is your code.

        FILE: src/main/java/com/example/demo/entity/Product.java
        ```java
        package com.example.demo.entity;

        public class Product {
            private Long id;
        }
        ```

        FILE: frontend/src/app/models/product.ts
        ```typescript
        export interface Product {
          id?: number;
        }
        ```
        """)


@pytest.fixture
def existing_project(tmp_path: Path) -> Path:
    """A small on-disk project with sources, build output and a binary file."""
    root = tmp_path / "existing"
    (root / "src" / "main" / "java").mkdir(parents=True)
    (root / "src" / "main" / "java" / "App.java").write_text(
        "public class App {}\n", encoding="utf-8"
    )
    (root / "pom.xml").write_text("<project></project>\n", encoding="utf-8")
    (root / "target").mkdir()
    (root / "target" / "App.class.java").write_text("compiled\n", encoding="utf-8")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "index.js").write_text("x\n", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG")
    (root / "empty.md").write_text("", encoding="utf-8")
    return root
