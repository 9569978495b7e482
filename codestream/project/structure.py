"""Turns generated text into a :class:`ProjectStructure` and back into a ZIP."""

from __future__ import annotations

from collections.abc import Sequence

from .archiver import Archiver
from .extractor import FileExtractor
from .models import ProjectFile, ProjectStructure
from .tree import TreeBuilder


class ProjectStructureService:
    """Glue between the extractor, the tree builder and the archiver."""

    def __init__(
        self,
        extractor: FileExtractor | None = None,
        tree_builder: TreeBuilder | None = None,
        archiver: Archiver | None = None,
    ) -> None:
        self.extractor = extractor or FileExtractor()
        self.tree_builder = tree_builder or TreeBuilder()
        self.archiver = archiver or Archiver()

    def build(self, generated_code: str | None) -> ProjectStructure:
        """Parse *generated_code* into files plus their tree."""
        return self.from_files(self.extractor.extract(generated_code))

    def from_files(self, files: Sequence[ProjectFile]) -> ProjectStructure:
        files = list(files)
        return ProjectStructure(files=files, root=self.tree_builder.build(files))

    def archive(self, structure: ProjectStructure) -> bytes:
        """ZIP the files of *structure* (see :meth:`Archiver.create`)."""
        return self.archiver.create(structure.files)


def build_project_structure(generated_code: str | None) -> ProjectStructure:
    """Module-level shortcut for ``ProjectStructureService().build(...)``."""
    return ProjectStructureService().build(generated_code)
