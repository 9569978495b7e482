"""Language and icon lookup tables for generated files."""

from __future__ import annotations

import posixpath

EXTENSION_LANGUAGES: dict[str, str] = {
    ".html": "html",
    ".css": "css",
    ".js": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".json": "json",
    ".md": "markdown",
    ".properties": "properties",
    ".py": "python",
    ".xml": "xml",
    ".yml": "yaml",
    ".yaml": "yaml",
}

DEFAULT_LANGUAGE = "text"

# PrimeNG icon classes used by the tree view.
FOLDER_ICON = "pi pi-folder"
DEFAULT_FILE_ICON = "pi pi-file"
LANGUAGE_ICONS: dict[str, str] = {
    "html": "pi pi-code",
    "css": "pi pi-palette",
    "javascript": "pi pi-code",
    "typescript": "pi pi-code",
    "json": "pi pi-file-edit",
    "java": "pi pi-file",
    "markdown": "pi pi-file-edit",
}


def detect_language(path: str) -> str:
    """Infer a language tag from the file extension of *path*."""
    _, ext = posixpath.splitext(path.lower())
    return EXTENSION_LANGUAGES.get(ext, DEFAULT_LANGUAGE)


def icon_for_language(language: str | None) -> str:
    """Return the tree icon for a language tag."""
    if not language:
        return DEFAULT_FILE_ICON
    return LANGUAGE_ICONS.get(language.lower(), DEFAULT_FILE_ICON)
