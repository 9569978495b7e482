"""Builds the folder/file tree shown next to the generated code."""

from __future__ import annotations

from collections.abc import Iterable

from .languages import FOLDER_ICON, icon_for_language
from .models import FileKind, ProjectFile, TreeNode

ROOT_LABEL = "Project"


def _folder(label: str) -> TreeNode:
    return TreeNode(label=label, icon=FOLDER_ICON, kind=FileKind.FOLDER, children=[], expanded=True)


class TreeBuilder:
    """Converts a flat file list into a :class:`TreeNode` hierarchy.

    Files are sorted by full path first, so the same set of files always
    yields the same tree regardless of input order. Folders are created once
    per cumulative path; a path listed twice gets a single leaf.
    """

    def __init__(self, root_label: str = ROOT_LABEL) -> None:
        self.root_label = root_label

    def build(self, files: Iterable[ProjectFile]) -> TreeNode:
        root = _folder(self.root_label)
        folders: dict[str, TreeNode] = {"": root}
        leaves: dict[str, TreeNode] = {}

        for project_file in sorted(files, key=lambda f: f.path):
            parts = project_file.path.split("/")
            parent = root
            current = ""
            for part in parts[:-1]:
                current = f"{current}/{part}" if current else part
                folder = folders.get(current)
                if folder is None:
                    folder = _folder(part)
                    folders[current] = folder
                    parent.children.append(folder)
                parent = folder

            leaf = TreeNode(
                label=parts[-1],
                data_ref=project_file.path,
                icon=icon_for_language(project_file.language),
                kind=FileKind.FILE,
                children=None,
                expanded=False,
            )
            existing = leaves.get(project_file.path)
            if existing is not None:
                existing.icon = leaf.icon
                continue
            leaves[project_file.path] = leaf
            parent.children.append(leaf)

        return root


def build_tree(files: Iterable[ProjectFile]) -> TreeNode:
    """Module-level shortcut for ``TreeBuilder().build(files)``."""
    return TreeBuilder().build(files)
