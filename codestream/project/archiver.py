"""ZIP packaging of generated project files."""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Sequence

from .extractor import normalize_path
from .models import ProjectFile

logger = logging.getLogger(__name__)


class ArchiveError(Exception):
    """Raised when no archive can be produced from the given files."""


class Archiver:
    """Writes one ZIP entry per file, in input order.

    A bad entry (missing path, a path that is absolute or leaves the project
    root, duplicate name) is logged and skipped; the archive fails as a whole
    only when nothing could be written.
    """

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression

    def create(self, files: Sequence[ProjectFile]) -> bytes:
        """Return the ZIP archive bytes for *files*.

        Raises:
            ArchiveError: If *files* is empty or every entry was rejected.
        """
        if not files:
            raise ArchiveError("Cannot create an archive from an empty file list")

        buffer = io.BytesIO()
        written: set[str] = set()
        with zipfile.ZipFile(buffer, "w", self.compression) as archive:
            for project_file in files:
                path = getattr(project_file, "path", None)
                if not isinstance(path, str) or not path.strip():
                    logger.warning("Skipping archive entry without a path")
                    continue
                if normalize_path(path) != path:
                    logger.warning("Skipping archive entry with unsafe path: %s", path)
                    continue
                if path in written:
                    logger.warning("Skipping duplicate archive entry: %s", path)
                    continue
                content = getattr(project_file, "content", None) or ""
                archive.writestr(path, content.encode("utf-8"))
                written.add(path)

        if not written:
            raise ArchiveError("None of the files could be added to the archive")

        logger.info("Created archive with %d entr%s", len(written), "y" if len(written) == 1 else "ies")
        return buffer.getvalue()


def create_archive(files: Sequence[ProjectFile]) -> bytes:
    """Module-level shortcut for ``Archiver().create(files)``."""
    return Archiver().create(files)
