"""codestream project structure module.

Parses generated text into project files, arranges them as a tree for display
and packages them as a ZIP archive.

Usage::

    from codestream.project import ProjectStructureService

    service = ProjectStructureService()
    structure = service.build(generated_code)
    zip_bytes = service.archive(structure)
"""

from .archiver import ArchiveError, Archiver, create_archive
from .context import ProjectContextReader, render_files
from .extractor import FALLBACK_PATH, FileExtractor, extract_files, normalize_path
from .languages import detect_language, icon_for_language
from .models import FileKind, ProjectFile, ProjectStructure, TreeNode
from .starters import StarterTemplates
from .structure import ProjectStructureService, build_project_structure
from .tree import ROOT_LABEL, TreeBuilder, build_tree

__all__ = [
    "ArchiveError",
    "Archiver",
    "FALLBACK_PATH",
    "FileExtractor",
    "FileKind",
    "ProjectContextReader",
    "ProjectFile",
    "ProjectStructure",
    "ProjectStructureService",
    "ROOT_LABEL",
    "StarterTemplates",
    "TreeBuilder",
    "TreeNode",
    "build_project_structure",
    "build_tree",
    "create_archive",
    "detect_language",
    "extract_files",
    "icon_for_language",
    "normalize_path",
    "render_files",
]
