"""
tests/test_manifest.py
Unit tests for manifest persistence, stale-file reconciliation and erase.
"""

from __future__ import annotations

import pytest

from blueprintc.errors import GenerationError, ParsingError
from blueprintc.filesystem import MemoryFileSystem
from blueprintc.manifest import (
    carry_forward,
    dump_manifest,
    erase,
    load_manifest,
    reconcile,
    stale_paths,
)
from blueprintc.models import GenerationManifest


@pytest.fixture()
def previous() -> GenerationManifest:
    return GenerationManifest(
        actions={
            "created": ["app/a.py", "app/b.py"],
            "updated": ["app/c.py"],
            "skipped": ["app/d.py"],
        },
        models={"Post": {"columns": {"id": "id", "title": "string"}}},
    )


class TestGenerationManifest:
    def test_document_round_trip(self, previous: GenerationManifest) -> None:
        document = previous.to_document()
        assert list(document) == ["created", "updated", "skipped", "models"]
        assert GenerationManifest.from_document(document) == previous

    def test_empty_actions_are_not_written(self) -> None:
        assert GenerationManifest(actions={"created": []}).to_document() == {}

    def test_single_path_value(self) -> None:
        manifest = GenerationManifest.from_document({"created": "app/a.py"})
        assert manifest.paths("created") == ["app/a.py"]

    def test_written_paths_and_lookup(self, previous: GenerationManifest) -> None:
        assert previous.written_paths == ["app/a.py", "app/b.py", "app/c.py"]
        assert previous.by_path()["app/d.py"] == "skipped"


class TestLoadAndDump:
    def test_absent_manifest_is_empty(self, memory_fs: MemoryFileSystem) -> None:
        assert load_manifest(memory_fs, ".blueprint") == GenerationManifest()

    def test_dump_then_load(self, memory_fs: MemoryFileSystem, previous: GenerationManifest) -> None:
        dump_manifest(memory_fs, ".blueprint", previous)
        assert memory_fs.read(".blueprint").startswith("created:")
        assert load_manifest(memory_fs, ".blueprint") == previous

    def test_corrupt_manifest(self) -> None:
        fs = MemoryFileSystem({".blueprint": "created: [unclosed\n"})
        with pytest.raises(ParsingError) as exc_info:
            load_manifest(fs, ".blueprint")
        assert exc_info.value.file_path == ".blueprint"

    def test_dump_permission_error(self, previous: GenerationManifest) -> None:
        fs = MemoryFileSystem(read_only=[".blueprint"])
        with pytest.raises(GenerationError) as exc_info:
            dump_manifest(fs, ".blueprint", previous)
        assert exc_info.value.context["permission_error"] is True


class TestReconcile:
    def test_stale_paths(self, previous: GenerationManifest) -> None:
        assert stale_paths(previous, {"skipped": ["app/a.py"]}) == ["app/b.py", "app/c.py"]

    def test_report_only(self, previous: GenerationManifest) -> None:
        fs = MemoryFileSystem({"app/b.py": "", "app/c.py": ""})
        result = reconcile(fs, previous, {"created": ["app/a.py"]})
        assert result.stale == ["app/b.py", "app/c.py"]
        assert result.deleted == []
        assert fs.exists("app/b.py")

    def test_prune(self, previous: GenerationManifest) -> None:
        fs = MemoryFileSystem({"app/b.py": ""})
        result = reconcile(fs, previous, {"created": ["app/a.py"]}, prune=True)
        assert result.deleted == ["app/b.py"]
        assert result.actions == {"created": ["app/a.py"], "deleted": ["app/b.py"]}
        assert not fs.exists("app/b.py")

    def test_nothing_stale(self, previous: GenerationManifest) -> None:
        output = {"skipped": ["app/a.py", "app/b.py", "app/c.py"]}
        result = reconcile(MemoryFileSystem(), previous, output, prune=True)
        assert result.stale == []
        assert result.actions == output

    def test_skipped_paths_keep_ownership(self, previous: GenerationManifest) -> None:
        output = {"skipped": ["app/a.py", "app/c.py", "app/d.py", "app/e.py"], "created": ["app/b.py"]}
        result = reconcile(MemoryFileSystem(), previous, output)
        assert result.persisted == {
            "created": ["app/a.py", "app/b.py"],
            "updated": ["app/c.py"],
            "skipped": ["app/d.py", "app/e.py"],
        }

    def test_carried_paths_become_stale_later(self, previous: GenerationManifest) -> None:
        rerun = reconcile(MemoryFileSystem(), previous, {"skipped": ["app/a.py", "app/b.py", "app/c.py"]})
        persisted = GenerationManifest(actions=rerun.persisted)
        assert stale_paths(persisted, {"skipped": ["app/a.py"]}) == ["app/b.py", "app/c.py"]

    def test_carry_forward_without_previous(self) -> None:
        output = {"skipped": ["app/a.py"], "created": ["app/b.py"]}
        assert carry_forward(GenerationManifest(), output) == output


class TestErase:
    def test_erase(self, previous: GenerationManifest) -> None:
        fs = MemoryFileSystem({"app/a.py": "", "app/c.py": "", "app/d.py": ""})
        dump_manifest(fs, ".blueprint", previous)
        report = erase(fs, ".blueprint")
        assert report.deleted == ["app/a.py"]
        assert report.missing == ["app/b.py"]
        assert report.not_erasable == ["app/c.py"]
        assert report.manifest_deleted
        assert set(fs.files) == {"app/c.py", "app/d.py"}

    def test_erase_without_manifest(self, memory_fs: MemoryFileSystem) -> None:
        report = erase(memory_fs, ".blueprint")
        assert report.to_dict() == {
            "deleted": [],
            "missing": [],
            "not_erasable": [],
            "manifest_deleted": False,
        }
