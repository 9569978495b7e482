"""Unit tests for ProjectStructureService (codestream.project.structure)."""

from __future__ import annotations

import io
import zipfile

import pytest

from codestream.project import (
    FALLBACK_PATH,
    ArchiveError,
    ProjectStructure,
    ProjectStructureService,
    build_project_structure,
)


class TestProjectStructureService:
    @pytest.mark.unit
    def test_build_from_generated_code(self, two_file_output):
        structure = build_project_structure(two_file_output)

        assert len(structure.files) == 2
        assert structure.root is not None
        leaves = sorted(leaf.data_ref for leaf in structure.root.iter_leaves())
        assert leaves == sorted(structure.file_paths())

    @pytest.mark.unit
    def test_get_by_path(self, two_file_output):
        structure = build_project_structure(two_file_output)
        ts = structure.get("frontend/src/app/models/product.ts")
        assert ts is not None and ts.language == "typescript"
        assert structure.get("missing.txt") is None

    @pytest.mark.unit
    def test_plain_text_uses_fallback(self):
        structure = build_project_structure("no markers")
        assert structure.file_paths() == [FALLBACK_PATH]

    @pytest.mark.unit
    def test_archive_of_built_structure(self, two_file_output):
        service = ProjectStructureService()
        data = service.archive(service.build(two_file_output))
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert set(archive.namelist()) == {
                "src/main/java/com/example/demo/entity/Product.java",
                "frontend/src/app/models/product.ts",
            }

    @pytest.mark.unit
    def test_archive_of_empty_structure_fails(self):
        service = ProjectStructureService()
        with pytest.raises(ArchiveError):
            service.archive(service.build(""))

    @pytest.mark.unit
    def test_json_round_trip_with_aliases(self, two_file_output):
        structure = build_project_structure(two_file_output)
        payload = structure.model_dump_json(by_alias=True)
        restored = ProjectStructure.model_validate_json(payload)
        assert restored == structure
