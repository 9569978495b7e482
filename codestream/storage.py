"""Completion handoff store.

A finished generation is written to ``<output_dir>/generations/<id>.txt``
together with a ``<id>.json`` metadata file, so it can later be parsed into a
project structure or downloaded as a ZIP.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from codestream.utils import load_json, save_json, save_text

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_generation_id() -> str:
    """Return a fresh generation id (uuid4 hex)."""
    return uuid.uuid4().hex


class FileGenerationStore:
    """Stores generated text on disk, keyed by generation id."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _paths(self, generation_id: str) -> tuple[Path, Path]:
        if not isinstance(generation_id, str) or not _ID_PATTERN.match(generation_id):
            raise KeyError(generation_id)
        return (
            self.directory / f"{generation_id}.txt",
            self.directory / f"{generation_id}.json",
        )

    async def save(
        self,
        generation_id: str,
        text: str,
        *,
        target: str = "",
        prompt: str = "",
        model: str = "",
    ) -> Path:
        """Write *text* and its metadata; return the path of the text file."""
        text_path, meta_path = self._paths(generation_id)
        await save_text(text, text_path)
        await save_json(
            {
                "generation_id": generation_id,
                "target": target,
                "prompt": prompt,
                "model": model,
                "length": len(text),
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
            meta_path,
        )
        logger.info("Saved generation %s (%d characters)", generation_id, len(text))
        return text_path

    def load(self, generation_id: str) -> str:
        """Return the stored text.

        Raises:
            KeyError: If the id is malformed or nothing is stored under it.
        """
        text_path, _ = self._paths(generation_id)
        if not text_path.is_file():
            raise KeyError(generation_id)
        return text_path.read_text(encoding="utf-8")

    def metadata(self, generation_id: str) -> dict[str, Any]:
        """Return the stored metadata, raising ``KeyError`` when absent."""
        _, meta_path = self._paths(generation_id)
        if not meta_path.is_file():
            raise KeyError(generation_id)
        return load_json(meta_path)

    def exists(self, generation_id: str) -> bool:
        try:
            text_path, _ = self._paths(generation_id)
        except KeyError:
            return False
        return text_path.is_file()
