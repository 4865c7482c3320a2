"""
tests/test_emitters.py
Unit tests for blueprintc.emitters: selection, the file-writing base class,
template lookup and the emitter registry.
"""

from __future__ import annotations

from typing import Dict

import pytest

from blueprintc.emitters import (
    EmitterRegistry,
    FileEmitter,
    order_emitters,
    should_generate,
)
from blueprintc.errors import GenerationError
from blueprintc.filesystem import MemoryFileSystem
from blueprintc.models import CompilationOptions, ModelRegistry

from conftest import RecordingEmitter


class TextEmitter(FileEmitter):
    """Writes a fixed set of files under the output root."""

    CATEGORIES = ("text",)

    def __init__(self, filesystem, options=None, *, files: Dict[str, str] | None = None, strict: bool = False):
        super().__init__(filesystem, options, strict=strict)
        self.files: Dict[str, str] = files or {}

    def emit(self, registry: ModelRegistry, overwrite: bool) -> None:
        for name, content in self.files.items():
            self.create_or_update(self.output_path(name), content, overwrite)


# ===========================================================================
# Selection
# ===========================================================================


class TestShouldGenerate:
    def test_no_filters_runs_everything(self) -> None:
        assert should_generate(("models",), [], [])

    def test_only_keeps_shared_category(self) -> None:
        assert should_generate(("models", "schemas"), ["models"], [])
        assert not should_generate(("schemas",), ["models"], [])

    def test_skip_drops_shared_category(self) -> None:
        assert not should_generate(("controllers", "routers"), [], ["routers"])
        assert should_generate(("models",), [], ["routers"])

    def test_only_wins_over_skip(self) -> None:
        assert should_generate(("models",), ["models"], ["models"])

    def test_emitter_without_categories(self) -> None:
        assert should_generate((), [], ["models"])
        assert not should_generate((), ["models"], [])


# ===========================================================================
# FileEmitter
# ===========================================================================


class TestCreateOrUpdate:
    def test_created(self, memory_fs: MemoryFileSystem) -> None:
        emitter = TextEmitter(memory_fs, files={"a.py": "x = 1\n"})
        output = emitter.output(ModelRegistry())
        assert output == {"created": ["app/a.py"]}
        assert memory_fs.read("app/a.py") == "x = 1\n"
        record = emitter.records[0]
        assert (record.action, record.line_count, record.size_bytes) == ("created", 1, 6)
        assert len(record.sha256) == 64

    def test_identical_content_is_skipped(self) -> None:
        fs = MemoryFileSystem({"app/a.py": "x = 1\n"})
        output = TextEmitter(fs, files={"a.py": "x = 1\n"}).output(ModelRegistry(), overwrite=True)
        assert output == {"skipped": ["app/a.py"]}

    def test_changed_content_without_overwrite_is_skipped(self) -> None:
        fs = MemoryFileSystem({"app/a.py": "x = 0\n"})
        output = TextEmitter(fs, files={"a.py": "x = 1\n"}).output(ModelRegistry())
        assert output == {"skipped": ["app/a.py"]}
        assert fs.read("app/a.py") == "x = 0\n"

    def test_changed_content_with_overwrite_is_updated(self) -> None:
        fs = MemoryFileSystem({"app/a.py": "x = 0\n"})
        output = TextEmitter(fs, files={"a.py": "x = 1\n"}).output(ModelRegistry(), overwrite=True)
        assert output == {"updated": ["app/a.py"]}
        assert fs.read("app/a.py") == "x = 1\n"

    def test_strict_conflict(self) -> None:
        fs = MemoryFileSystem({"app/a.py": "x = 0\n"})
        emitter = TextEmitter(fs, files={"a.py": "x = 1\n"}, strict=True)
        with pytest.raises(GenerationError) as exc_info:
            emitter.output(ModelRegistry())
        assert exc_info.value.code == 2006

    def test_permission_error(self) -> None:
        fs = MemoryFileSystem(read_only=["app"])
        with pytest.raises(GenerationError) as exc_info:
            TextEmitter(fs, files={"a.py": "x = 1\n"}).output(ModelRegistry())
        error = exc_info.value
        assert error.code == 2001
        assert error.context["permission_error"] is True
        assert error.file_path == "app/a.py"
        assert isinstance(error.__cause__, PermissionError)

    def test_output_root_option(self, memory_fs: MemoryFileSystem) -> None:
        emitter = TextEmitter(memory_fs, CompilationOptions(output_root="src"), files={"a.py": "x\n"})
        assert emitter.output(ModelRegistry()) == {"created": ["src/a.py"]}

    def test_output_resets_between_runs(self, memory_fs: MemoryFileSystem) -> None:
        emitter = TextEmitter(memory_fs, files={"a.py": "x\n"})
        emitter.output(ModelRegistry())
        assert emitter.output(ModelRegistry()) == {"skipped": ["app/a.py"]}
        assert len(emitter.records) == 1


class TestLoadTemplate:
    def test_first_match_wins(self) -> None:
        fs = MemoryFileSystem({"custom/model.stub": "custom", "shared/model.stub": "shared"})
        options = CompilationOptions(template_paths=["missing", "custom", "shared"])
        assert TextEmitter(fs, options).load_template("model.stub") == "custom"

    def test_default_when_missing(self, memory_fs: MemoryFileSystem) -> None:
        assert TextEmitter(memory_fs).load_template("model.stub", "fallback") == "fallback"

    def test_not_found(self, memory_fs: MemoryFileSystem) -> None:
        options = CompilationOptions(template_paths=["stubs"])
        with pytest.raises(GenerationError) as exc_info:
            TextEmitter(memory_fs, options).load_template("model.stub")
        error = exc_info.value
        assert error.code == 2003
        assert error.context["template_path"] == "stubs/model.stub"

    def test_empty_template(self) -> None:
        fs = MemoryFileSystem({"stubs/model.stub": "  \n"})
        options = CompilationOptions(template_paths=["stubs"])
        with pytest.raises(GenerationError) as exc_info:
            TextEmitter(fs, options).load_template("model.stub")
        assert exc_info.value.code == 2004


# ===========================================================================
# Registry
# ===========================================================================


class TestEmitterRegistry:
    def test_build_orders_by_priority(self, recording_registry, memory_fs, options) -> None:
        registry, _ = recording_registry(
            [
                {"name": "low", "categories": ("low",), "priority": 1},
                {"name": "high", "categories": ("high",), "priority": 9},
                {"name": "also_low", "categories": ("also_low",), "priority": 1},
            ]
        )
        names = [e.name for e in registry.build(memory_fs, options)]
        assert names == ["high", "low", "also_low"]

    def test_replacing_keeps_position(self, memory_fs, options) -> None:
        registry = EmitterRegistry()
        registry.register("a", lambda fs, opts: RecordingEmitter("first", ("a",)))
        registry.register("b", lambda fs, opts: RecordingEmitter("b", ("b",)))
        registry.register("a", lambda fs, opts: RecordingEmitter("second", ("a",)))
        assert registry.categories() == ["a", "b"]
        assert [e.name for e in registry.build(memory_fs, options)] == ["second", "b"]
        assert len(registry) == 2

    def test_unregister(self) -> None:
        registry = EmitterRegistry()
        registry.register("a", lambda fs, opts: RecordingEmitter("a", ("a",)))
        assert "a" in registry
        assert registry.unregister("a")
        assert not registry.unregister("a")
        assert "a" not in registry

    def test_factories_receive_filesystem_and_options(self, memory_fs, options) -> None:
        seen = []
        registry = EmitterRegistry()

        def factory(fs, opts):
            seen.append((fs, opts))
            return RecordingEmitter("a", ("a",))

        registry.register("a", factory)
        registry.build(memory_fs, options)
        assert seen == [(memory_fs, options)]

    def test_order_emitters_is_stable(self) -> None:
        first = RecordingEmitter("first", ("x",), priority=5)
        second = RecordingEmitter("second", ("y",), priority=5)
        assert order_emitters([first, second]) == [first, second]

    def test_repr(self) -> None:
        assert repr(RecordingEmitter("a", ("models",), priority=3)) == "<a categories=['models'] priority=3>"
