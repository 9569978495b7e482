"""Empty starter projects for each generation target.

The files of a starter are Jinja2 templates under ``templates/<target>/``.
:class:`StarterTemplates` renders them with a small context derived from the
project name and returns a :class:`ProjectStructure`, so starters go through
the same tree and archive path as generated code.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from codestream.prompts import TargetKind

from .languages import detect_language
from .models import ProjectFile, ProjectStructure
from .structure import ProjectStructureService


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]{0,63}$")

DEFAULT_NAMES: dict[TargetKind, str] = {
    TargetKind.BACKEND: "demo",
    TargetKind.FRONTEND: "my-app",
}

ARCHIVE_NAMES: dict[TargetKind, str] = {
    TargetKind.BACKEND: "spring-boot-template.zip",
    TargetKind.FRONTEND: "frontend-template.zip",
}

# (output path, template) pairs; output paths are rendered too.
_MANIFESTS: dict[TargetKind, list[tuple[str, str]]] = {
    TargetKind.BACKEND: [
        ("pom.xml", "backend/pom.xml.j2"),
        ("src/main/java/{{ java_package_path }}/{{ class_name }}.java", "backend/Application.java.j2"),
        ("src/main/resources/application.properties", "backend/application.properties.j2"),
        ("README.md", "backend/README.md.j2"),
    ],
    TargetKind.FRONTEND: [
        ("index.html", "frontend/index.html.j2"),
        ("styles.css", "frontend/styles.css.j2"),
        ("app.js", "frontend/app.js.j2"),
        ("package.json", "frontend/package.json.j2"),
        ("README.md", "frontend/README.md.j2"),
    ],
}


def _words(name: str) -> list[str]:
    return [w for w in re.split(r"[-_]+", name) if w]


def starter_context(name: str) -> dict[str, Any]:
    """Template variables for a project called *name*.

    Raises:
        ValueError: If *name* is not a plain identifier-like project name.
    """
    if not _NAME_PATTERN.match(name or ""):
        raise ValueError(
            f"Invalid project name {name!r}: use letters, digits, '-' or '_', starting with a letter"
        )
    words = _words(name)
    package_leaf = "".join(words).lower()
    return {
        "project_name": name,
        "artifact_id": "-".join(words).lower(),
        "group_id": "com.example",
        "java_package": f"com.example.{package_leaf}",
        "java_package_path": f"com/example/{package_leaf}",
        "class_name": "".join(w[:1].upper() + w[1:] for w in words) + "Application",
        "spring_boot_version": "4.0.1",
        "java_version": "17",
    }


class StarterTemplates:
    """Renders empty starter projects from the bundled templates."""

    def __init__(
        self,
        template_dir: str | Path | None = None,
        service: ProjectStructureService | None = None,
    ) -> None:
        self.template_dir = Path(template_dir or _DEFAULT_TEMPLATE_DIR)
        self.service = service or ProjectStructureService()
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def files(self, target: TargetKind | str, name: str | None = None) -> list[ProjectFile]:
        """Render the starter files for *target*.

        Raises:
            ValueError: For an unknown target or an invalid project name.
        """
        target = TargetKind(target)
        context = starter_context(name or DEFAULT_NAMES[target])

        files: list[ProjectFile] = []
        for path_template, template_name in _MANIFESTS[target]:
            path = self.env.from_string(path_template).render(**context)
            content = self.env.get_template(template_name).render(**context)
            files.append(ProjectFile(path=path, content=content, language=detect_language(path)))
        return files

    def structure(self, target: TargetKind | str, name: str | None = None) -> ProjectStructure:
        """Starter files for *target* plus their tree."""
        return self.service.from_files(self.files(target, name))

    def archive(self, target: TargetKind | str, name: str | None = None) -> bytes:
        """ZIP bytes of the starter project for *target*."""
        return self.service.archive(self.structure(target, name))
