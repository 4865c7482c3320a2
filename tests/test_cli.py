"""
tests/test_cli.py
Tests for the blueprintc command-line interface.

Every command runs against a MemoryFileSystem passed straight to ``run``.
"""

from __future__ import annotations

import pytest

from blueprintc.cli import (
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_MANIFEST_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    run,
)
from blueprintc.filesystem import MemoryFileSystem


@pytest.fixture()
def blog_fs(blog_draft: str) -> MemoryFileSystem:
    return MemoryFileSystem({"draft.yaml": blog_draft})


# ===========================================================================
# build
# ===========================================================================


class TestBuild:
    def test_build(self, blog_fs: MemoryFileSystem, capsys: pytest.CaptureFixture) -> None:
        assert run(["build", "draft.yaml", "-q"], filesystem=blog_fs) == EXIT_SUCCESS
        assert blog_fs.exists("app/models/post.py")
        assert blog_fs.exists(".blueprint")
        assert "✅ SUCCESS" in capsys.readouterr().out

    def test_default_draft_name(self, blog_fs: MemoryFileSystem) -> None:
        assert run(["build", "-q"], filesystem=blog_fs) == EXIT_SUCCESS

    def test_only_and_skip(self, blog_fs: MemoryFileSystem) -> None:
        run(["build", "--only", "models,schemas", "--skip", "schemas", "-q"], filesystem=blog_fs)
        assert blog_fs.exists("app/models/post.py")
        assert not blog_fs.exists("app/schemas/post.py")

    def test_location_overrides(self, blog_fs: MemoryFileSystem) -> None:
        args = ["build", "--manifest", "build.lock", "--output-root", "src", "-q"]
        assert run(args, filesystem=blog_fs) == EXIT_SUCCESS
        assert blog_fs.exists("build.lock")
        assert not blog_fs.exists(".blueprint")
        assert blog_fs.exists("src/models/post.py")

    def test_overwrite(self, blog_fs: MemoryFileSystem) -> None:
        run(["build", "-q"], filesystem=blog_fs)
        blog_fs.write("app/models/post.py", "# edited\n")
        run(["build", "-q"], filesystem=blog_fs)
        assert blog_fs.read("app/models/post.py") == "# edited\n"
        run(["build", "--overwrite", "-q"], filesystem=blog_fs)
        assert "class Post(Base):" in blog_fs.read("app/models/post.py")

    def test_missing_draft(self, capsys: pytest.CaptureFixture) -> None:
        assert run(["build", "nope.yaml", "-q"], filesystem=MemoryFileSystem()) == EXIT_INPUT_ERROR
        assert "Draft file not found: nope.yaml" in capsys.readouterr().err

    def test_cycle_is_a_validation_error(
        self, cyclic_draft: str, capsys: pytest.CaptureFixture
    ) -> None:
        fs = MemoryFileSystem({"draft.yaml": cyclic_draft})
        assert run(["build", "-q"], filesystem=fs) == EXIT_VALIDATION_ERROR
        err = capsys.readouterr().err
        assert "Circular dependency detected" in err
        assert "Error ID: bp_" in err
        assert not fs.exists("app/models/a.py")

    def test_write_failure_is_a_generation_error(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft}, read_only=["app"])
        assert run(["build", "-q"], filesystem=fs) == EXIT_GENERATION_ERROR

    def test_yaml_error_with_recovery(self, capsys: pytest.CaptureFixture) -> None:
        fs = MemoryFileSystem({"draft.yaml": "models:\n  Post:\n    title: string\n    body:text\n"})
        assert run(["build", "--recover", "-q"], filesystem=fs) == EXIT_INPUT_ERROR
        err = capsys.readouterr().err
        assert "Recovery Attempt: ✅" in err
        assert "Suggested draft after automatic fixes" in err
        assert "    body: text" in err

    def test_yaml_error_without_recovery(self, capsys: pytest.CaptureFixture) -> None:
        fs = MemoryFileSystem({"draft.yaml": "models:\n  Post:\n    title: string\n    body:text\n"})
        assert run(["build", "-q"], filesystem=fs) == EXIT_INPUT_ERROR
        assert "Recovery Attempt" not in capsys.readouterr().err


# ===========================================================================
# validate
# ===========================================================================


class TestValidate:
    def test_valid_draft(self, blog_fs: MemoryFileSystem, capsys: pytest.CaptureFixture) -> None:
        assert run(["validate", "-q"], filesystem=blog_fs) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Draft Validation Report" in out
        assert "Models:      2" in out
        assert list(blog_fs.files) == ["draft.yaml"]

    def test_cyclic_draft(self, cyclic_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": cyclic_draft})
        assert run(["validate", "-q"], filesystem=fs) == EXIT_VALIDATION_ERROR

    def test_missing_draft(self) -> None:
        assert run(["validate", "-q"], filesystem=MemoryFileSystem()) == EXIT_INPUT_ERROR


# ===========================================================================
# erase / trace
# ===========================================================================


class TestEraseAndTrace:
    def test_erase_after_build(self, blog_fs: MemoryFileSystem, capsys: pytest.CaptureFixture) -> None:
        run(["build", "-q"], filesystem=blog_fs)
        capsys.readouterr()
        assert run(["erase", "-q"], filesystem=blog_fs) == EXIT_SUCCESS
        assert "  - deleted app/models/post.py" in capsys.readouterr().out
        assert list(blog_fs.files) == ["draft.yaml"]

    def test_erase_nothing(self, capsys: pytest.CaptureFixture) -> None:
        assert run(["erase", "-q"], filesystem=MemoryFileSystem()) == EXIT_SUCCESS
        assert "Nothing to erase." in capsys.readouterr().out

    def test_trace(self, blog_fs: MemoryFileSystem, capsys: pytest.CaptureFixture) -> None:
        run(["build", "-q"], filesystem=blog_fs)
        capsys.readouterr()
        assert run(["trace", "-q"], filesystem=blog_fs) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Post (posts)" in out
        assert "    belongsTo User:author" in out

    def test_trace_empty(self, capsys: pytest.CaptureFixture) -> None:
        assert run(["trace", "-q"], filesystem=MemoryFileSystem()) == EXIT_SUCCESS
        assert "No models recorded" in capsys.readouterr().out

    @pytest.mark.parametrize("command", ["erase", "trace"])
    def test_corrupt_manifest(self, command: str) -> None:
        fs = MemoryFileSystem({".blueprint": "created: [unclosed\n"})
        assert run([command, "-q"], filesystem=fs) == EXIT_MANIFEST_ERROR


# ===========================================================================
# Arguments
# ===========================================================================


class TestArguments:
    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            run([], filesystem=MemoryFileSystem())

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("blueprintc v")
