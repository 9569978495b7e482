"""Extraction of project files from generated text.

The model is asked to write every file as::

    FILE: src/main/java/App.java
    ```java
    ...content...
    ```

This module scans the text line by line instead of matching one large
regular expression, so the block boundaries are explicit:

* a *marker line* starts a file. Leading whitespace and markdown decoration
  (``#``, ``*``, ``>``) are allowed before the case-insensitive ``FILE:``;
* blank lines after the marker are skipped; an opening fence there sets the
  language tag, and the body then runs to the first closing fence;
* without an opening fence the body runs to the next fence line;
* the next marker line or the end of input ends any body early.

Text with no marker at all becomes a single fallback file, so non-blank input
never produces an empty result. When a path repeats, the last block wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from .languages import DEFAULT_LANGUAGE, detect_language
from .models import FileKind, ProjectFile

logger = logging.getLogger(__name__)

FALLBACK_PATH = "generated-code.txt"

_MARKER = re.compile(r"^[\s#*>]*file:(.*)$", re.IGNORECASE)
_FENCE = "```"
_WINDOWS_DRIVE = re.compile(r"^[a-zA-Z]:/")


class _Mode(Enum):
    SEEK = "seek"
    HEADER = "header"
    FENCED = "fenced"
    BARE = "bare"


@dataclass
class _Block:
    raw_path: str
    language: str | None = None
    lines: list[str] = field(default_factory=list)


def normalize_path(raw: str) -> str | None:
    """Clean a path taken from a marker line.

    Backslashes become ``/``; leading ``/`` and ``./`` and empty segments are
    dropped. Returns ``None`` for blank paths and for paths that would leave
    the project root (``..`` segments, drive letters).
    """
    path = raw.strip().strip("*`'\"").strip().replace("\\", "/")
    if not path or _WINDOWS_DRIVE.match(path):
        return None

    parts: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            return None
        parts.append(segment)
    return "/".join(parts) or None


def marker_path(line: str) -> str | None:
    """Return the raw path of a marker line, or ``None`` for any other line."""
    match = _MARKER.match(line)
    if match is None:
        return None
    raw = match.group(1).strip().strip("*`").strip()
    return raw or None


def _fence_tag(stripped: str) -> str | None:
    words = stripped.lstrip("`").split()
    return words[0].lower() if words else None


def _is_closing_fence(stripped: str) -> bool:
    return stripped.startswith(_FENCE) and not stripped.lstrip("`").strip()


class FileExtractor:
    """Turns generated text into a flat list of :class:`ProjectFile`."""

    def __init__(self, fallback_path: str = FALLBACK_PATH) -> None:
        self.fallback_path = fallback_path

    def extract(self, text: str | None) -> list[ProjectFile]:
        """Extract every file block from *text*.

        Returns an empty list only for blank input.
        """
        if not text or not text.strip():
            return []

        files: dict[str, ProjectFile] = {}
        for block in self.scan(text):
            project_file = self._to_file(block)
            if project_file is None:
                continue
            if project_file.path in files:
                logger.debug("Duplicate FILE marker for %s; keeping the later block", project_file.path)
            files[project_file.path] = project_file
            logger.debug("Parsed file: %s (%d chars)", project_file.path, len(project_file.content))

        if not files:
            logger.info("No FILE markers found; returning the whole text as %s", self.fallback_path)
            return [self._fallback(text)]
        return list(files.values())

    def scan(self, text: str):
        """Yield the raw blocks of *text* in order of appearance."""
        current: _Block | None = None
        mode = _Mode.SEEK

        for line in text.split("\n"):
            stripped = line.strip()

            raw_path = marker_path(line)
            if raw_path is not None:
                if current is not None:
                    yield current
                current = _Block(raw_path=raw_path)
                mode = _Mode.HEADER
                continue

            if current is None:
                continue

            if mode is _Mode.HEADER:
                if not stripped:
                    continue
                if stripped.startswith(_FENCE):
                    current.language = _fence_tag(stripped)
                    mode = _Mode.FENCED
                    continue
                mode = _Mode.BARE

            if mode is _Mode.FENCED and _is_closing_fence(stripped):
                yield current
                current, mode = None, _Mode.SEEK
            elif mode is _Mode.BARE and stripped.startswith(_FENCE):
                yield current
                current, mode = None, _Mode.SEEK
            else:
                current.lines.append(line)

        if current is not None:
            yield current

    def _to_file(self, block: _Block) -> ProjectFile | None:
        path = normalize_path(block.raw_path)
        if path is None:
            logger.warning("Skipping file with unusable path: %r", block.raw_path)
            return None
        return ProjectFile(
            path=path,
            content="\n".join(block.lines).strip(),
            language=block.language or detect_language(path),
            kind=FileKind.FILE,
        )

    def _fallback(self, text: str) -> ProjectFile:
        return ProjectFile(
            path=self.fallback_path,
            content=text,
            language=DEFAULT_LANGUAGE,
            kind=FileKind.FILE,
        )


def extract_files(text: str | None) -> list[ProjectFile]:
    """Module-level shortcut for ``FileExtractor().extract(text)``."""
    return FileExtractor().extract(text)
