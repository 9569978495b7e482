"""Reading an existing project to use as generation context.

When the user asks to extend a project that already exists on disk, its
relevant source files are read (within size limits) and rendered in the same
``FILE:`` + fenced-block format the model is asked to produce.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from codestream.config import ContextConfig

from .languages import detect_language
from .models import ProjectFile

logger = logging.getLogger(__name__)

CONTEXT_HEADER = (
    "EXISTING PROJECT FILES:\n"
    "The following files already exist in the project:\n\n"
)


def render_files(files: Iterable[ProjectFile]) -> str:
    """Serialise files to the ``FILE:`` marker grammar."""
    parts: list[str] = []
    for project_file in files:
        content = project_file.content
        if not content.endswith("\n"):
            content += "\n"
        parts.append(f"FILE: {project_file.path}\n```{project_file.language}\n{content}```\n")
    return "\n".join(parts)


class ProjectContextReader:
    """Collects source files below a directory for use as prompt context."""

    def __init__(self, config: ContextConfig | None = None) -> None:
        self.config = config or ContextConfig()
        self._extensions = tuple(ext.lower() for ext in self.config.extensions)
        self._excluded = {name.lower() for name in self.config.excluded_dirs}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read_files(self, project_path: str | Path | None) -> list[ProjectFile]:
        """Return the relevant files below *project_path*.

        Missing, non-directory or disallowed paths give an empty list.
        """
        root = self._resolve(project_path)
        if root is None:
            return []

        logger.info("Reading existing project files from %s", root)
        files = self._scan(root)
        if not files:
            logger.warning("No relevant files found in project path: %s", root)
        return files

    def read_context(self, project_path: str | Path | None) -> str:
        """Return the rendered context for *project_path*, or ``""``."""
        files = self.read_files(project_path)
        if not files:
            return ""
        context = CONTEXT_HEADER + render_files(files)
        logger.info("Read %d files (%d chars) from existing project", len(files), len(context))
        return context

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, project_path: str | Path | None) -> Path | None:
        if project_path is None or not str(project_path).strip():
            return None

        root = Path(project_path).expanduser().resolve()
        if not root.is_dir():
            logger.warning("Project path does not exist or is not a directory: %s", root)
            return None

        allowed = self.config.allowed_root
        if allowed is not None:
            allowed = Path(allowed).expanduser().resolve()
            if root != allowed and allowed not in root.parents:
                logger.warning("Project path %s is outside the allowed root %s", root, allowed)
                return None
        return root

    def _scan(self, root: Path) -> list[ProjectFile]:
        files: list[ProjectFile] = []
        total_size = 0

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d.lower() not in self._excluded)
            for filename in sorted(filenames):
                if not filename.lower().endswith(self._extensions):
                    continue
                path = Path(dirpath) / filename
                try:
                    size = path.stat().st_size
                except OSError as exc:
                    logger.warning("Cannot stat %s: %s", path, exc)
                    continue
                if size == 0 or size > self.config.max_file_size:
                    logger.debug("Skipping empty or large file: %s (%d bytes)", path, size)
                    continue
                if total_size + size > self.config.max_total_size or len(files) >= self.config.max_files:
                    logger.warning(
                        "Reached context limit; stopping at %d files (%d bytes)", len(files), total_size
                    )
                    return files
                try:
                    content = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    logger.warning("Error reading file %s: %s", path, exc)
                    continue

                relative = path.relative_to(root).as_posix()
                files.append(
                    ProjectFile(path=relative, content=content, language=detect_language(relative))
                )
                total_size += size

        return files
