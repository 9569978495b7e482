"""Pydantic v2 models for generated project structures.

Field aliases (``data``, ``type``) match the JSON shape the tree view in the
web client consumes; Python code uses the descriptive attribute names.
"""

from __future__ import annotations

import posixpath
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FileKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"


class ProjectFile(BaseModel):
    """A single file extracted from generated text."""

    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(..., min_length=1, description="Slash-separated path relative to the project root")
    name: str = Field(default="", description="Basename of the path")
    content: str = Field(default="", description="Raw file text")
    language: str = Field(default="text", description="Language tag, e.g. 'java'")
    kind: FileKind = Field(default=FileKind.FILE, alias="type")

    @model_validator(mode="after")
    def _default_name(self) -> "ProjectFile":
        if not self.name:
            self.name = posixpath.basename(self.path) or self.path
        return self


class TreeNode(BaseModel):
    """A node of the project tree shown to the user."""

    model_config = ConfigDict(populate_by_name=True)

    label: str
    data_ref: Optional[str] = Field(default=None, alias="data", description="File path, absent for folders")
    icon: str = ""
    kind: FileKind = Field(default=FileKind.FOLDER, alias="type")
    children: Optional[list[TreeNode]] = None
    expanded: bool = True

    @property
    def is_folder(self) -> bool:
        return self.kind is FileKind.FOLDER

    def iter_leaves(self):
        """Yield every file node below (and including) this node, depth first."""
        if not self.is_folder:
            yield self
            return
        for child in self.children or []:
            yield from child.iter_leaves()


TreeNode.model_rebuild()


class ProjectStructure(BaseModel):
    """Flat file list plus the tree built from it."""

    files: list[ProjectFile] = Field(default_factory=list)
    root: Optional[TreeNode] = None

    def file_paths(self) -> list[str]:
        return [f.path for f in self.files]

    def get(self, path: str) -> ProjectFile | None:
        """Return the file stored at *path*, if any."""
        for project_file in self.files:
            if project_file.path == path:
                return project_file
        return None
