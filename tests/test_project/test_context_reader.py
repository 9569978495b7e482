"""Unit tests for ProjectContextReader and render_files (codestream.project.context)."""

from __future__ import annotations

from pathlib import Path

import pytest

from codestream.config import ContextConfig
from codestream.project import ProjectContextReader, ProjectFile, extract_files, render_files
from codestream.project.context import CONTEXT_HEADER


class TestRenderFiles:
    @pytest.mark.unit
    def test_marker_grammar(self):
        files = [ProjectFile(path="a/b.py", content="x = 1", language="python")]
        assert render_files(files) == "FILE: a/b.py\n```python\nx = 1\n```\n"

    @pytest.mark.unit
    def test_files_separated_by_blank_line(self):
        files = [ProjectFile(path="a.txt", content="a\n"), ProjectFile(path="b.txt", content="b")]
        assert render_files(files) == "FILE: a.txt\n```text\na\n```\n\nFILE: b.txt\n```text\nb\n```\n"


class TestProjectContextReader:
    @pytest.mark.unit
    def test_reads_relevant_files_only(self, existing_project: Path):
        files = ProjectContextReader().read_files(existing_project)
        assert [f.path for f in files] == ["pom.xml", "src/main/java/App.java"]
        assert files[1].language == "java"
        assert files[1].content == "public class App {}\n"

    @pytest.mark.unit
    def test_context_text_is_parseable(self, existing_project: Path):
        context = ProjectContextReader().read_context(existing_project)
        assert context.startswith(CONTEXT_HEADER)
        parsed = {f.path for f in extract_files(context)}
        assert parsed == {"pom.xml", "src/main/java/App.java"}

    @pytest.mark.unit
    @pytest.mark.parametrize("path", [None, "", "   "])
    def test_blank_path_gives_empty_context(self, path):
        assert ProjectContextReader().read_context(path) == ""

    @pytest.mark.unit
    def test_missing_directory_gives_empty_context(self, tmp_path: Path):
        assert ProjectContextReader().read_context(tmp_path / "nope") == ""

    @pytest.mark.unit
    def test_file_instead_of_directory(self, tmp_path: Path):
        target = tmp_path / "file.txt"
        target.write_text("x", encoding="utf-8")
        assert ProjectContextReader().read_files(target) == []

    @pytest.mark.unit
    def test_directory_without_relevant_files(self, tmp_path: Path):
        (tmp_path / "image.png").write_bytes(b"\x89PNG")
        assert ProjectContextReader().read_context(tmp_path) == ""

    @pytest.mark.unit
    def test_per_file_size_limit(self, tmp_path: Path):
        (tmp_path / "big.java").write_text("x" * 200, encoding="utf-8")
        (tmp_path / "small.java").write_text("y", encoding="utf-8")
        reader = ProjectContextReader(ContextConfig(max_file_size=100))
        assert [f.path for f in reader.read_files(tmp_path)] == ["small.java"]

    @pytest.mark.unit
    def test_file_count_limit(self, tmp_path: Path):
        for i in range(5):
            (tmp_path / f"F{i}.java").write_text("class F {}", encoding="utf-8")
        reader = ProjectContextReader(ContextConfig(max_files=3))
        assert [f.path for f in reader.read_files(tmp_path)] == ["F0.java", "F1.java", "F2.java"]

    @pytest.mark.unit
    def test_total_size_limit(self, tmp_path: Path):
        for name in ("a.ts", "b.ts", "c.ts"):
            (tmp_path / name).write_text("x" * 40, encoding="utf-8")
        reader = ProjectContextReader(ContextConfig(max_total_size=100))
        assert [f.path for f in reader.read_files(tmp_path)] == ["a.ts", "b.ts"]

    @pytest.mark.unit
    def test_path_outside_allowed_root_rejected(self, existing_project: Path, tmp_path: Path):
        allowed = tmp_path / "sandbox"
        allowed.mkdir()
        reader = ProjectContextReader(ContextConfig(allowed_root=allowed))
        assert reader.read_files(existing_project) == []

    @pytest.mark.unit
    def test_path_inside_allowed_root_accepted(self, existing_project: Path):
        reader = ProjectContextReader(ContextConfig(allowed_root=existing_project.parent))
        assert len(reader.read_files(existing_project)) == 2

    @pytest.mark.unit
    def test_undecodable_file_skipped(self, tmp_path: Path):
        (tmp_path / "bad.java").write_bytes(b"\xff\xfe\xfa")
        (tmp_path / "good.java").write_text("class G {}", encoding="utf-8")
        assert [f.path for f in ProjectContextReader().read_files(tmp_path)] == ["good.java"]
