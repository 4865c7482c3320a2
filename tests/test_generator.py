"""
tests/test_generator.py
Integration tests for the Blueprint orchestrator.

Tests cover:
- Emitter selection with only / skip and priority order
- Output merging and lifecycle events
- Failure semantics (validation aborts early, emitter errors propagate)
- build(): manifest persistence, cached entities, stale files, pruning
- erase() and trace()
"""

from __future__ import annotations

import textwrap

import pytest

from blueprintc.errors import ValidationError
from blueprintc.filesystem import MemoryFileSystem
from blueprintc.generator import (
    Blueprint,
    EmitterExecuted,
    EmitterExecuting,
    GenerationCompleted,
    GenerationStarted,
)
from blueprintc.manifest import load_manifest
from blueprintc.models import ModelRegistry

from conftest import RecordingEmitter

BLOG_FILES = [
    "app/models/base.py",
    "app/models/post.py",
    "app/models/user.py",
    "app/models/__init__.py",
    "app/schemas/post.py",
    "app/schemas/user.py",
]

POST_ONLY_DRAFT = textwrap.dedent(
    """\
    models:
      Post:
        title: string
        author: belongsTo User
    """
)


# ===========================================================================
# Generation
# ===========================================================================


class TestGenerate:
    def test_only_selects_shared_category(self, recording_registry, memory_fs) -> None:
        emitters, calls = recording_registry(
            [
                {"name": "xy", "categories": ("X", "Y")},
                {"name": "y", "categories": ("Y",)},
            ]
        )
        Blueprint(memory_fs, emitters=emitters).generate(ModelRegistry(), only=["X"])
        assert calls == ["xy"]

    def test_skip_drops_shared_category(self, recording_registry, memory_fs) -> None:
        emitters, calls = recording_registry(
            [
                {"name": "xy", "categories": ("X", "Y")},
                {"name": "z", "categories": ("Z",)},
            ]
        )
        Blueprint(memory_fs, emitters=emitters).generate(ModelRegistry(), skip=["Y"])
        assert calls == ["z"]

    def test_priority_order(self, recording_registry, memory_fs) -> None:
        emitters, calls = recording_registry(
            [
                {"name": "routers", "categories": ("routers",), "priority": 10},
                {"name": "models", "categories": ("models",), "priority": 30},
                {"name": "schemas", "categories": ("schemas",), "priority": 20},
            ]
        )
        Blueprint(memory_fs, emitters=emitters).generate(ModelRegistry())
        assert calls == ["models", "schemas", "routers"]

    def test_outputs_are_merged(self, recording_registry, memory_fs) -> None:
        emitters, _ = recording_registry(
            [
                {"name": "a", "categories": ("a",), "output": {"created": ["a.py"]}},
                {"name": "b", "categories": ("b",), "output": {"created": ["b.py"], "updated": ["c.py"]}},
            ]
        )
        merged = Blueprint(memory_fs, emitters=emitters).generate(ModelRegistry())
        assert merged == {"created": ["a.py", "b.py"], "updated": ["c.py"]}

    def test_events(self, recording_registry, memory_fs) -> None:
        emitters, _ = recording_registry([{"name": "a", "categories": ("a",)}])
        blueprint = Blueprint(memory_fs, emitters=emitters)
        events = []
        blueprint.subscribe(events.append)
        blueprint.generate(ModelRegistry(), overwrite=True)
        assert events == [
            GenerationStarted(["a"], True),
            EmitterExecuting("a", ["a"]),
            EmitterExecuted("a", {"created": ["a.txt"]}),
            GenerationCompleted({"created": ["a.txt"]}),
        ]

    def test_emitter_errors_propagate(self, recording_registry, memory_fs) -> None:
        emitters, calls = recording_registry(
            [
                {"name": "boom", "categories": ("a",), "priority": 5, "error": RuntimeError("boom")},
                {"name": "later", "categories": ("b",)},
            ]
        )
        blueprint = Blueprint(memory_fs, emitters=emitters)
        events = []
        blueprint.subscribe(events.append)
        with pytest.raises(RuntimeError, match="boom"):
            blueprint.generate(ModelRegistry())
        assert calls == ["boom"]
        assert not any(isinstance(e, GenerationCompleted) for e in events)


# ===========================================================================
# Compile
# ===========================================================================


class TestCompile:
    def test_cycle_aborts_before_emitters(self, recording_registry, memory_fs, cyclic_draft) -> None:
        emitters, calls = recording_registry([{"name": "a", "categories": ("a",)}])
        blueprint = Blueprint(memory_fs, emitters=emitters)
        events = []
        blueprint.subscribe(events.append)
        with pytest.raises(ValidationError) as exc_info:
            blueprint.compile(cyclic_draft)
        assert exc_info.value.context["dependency_chain"] == ["A", "B", "A"]
        assert calls == []
        assert events == []

    def test_returns_manifest_with_snapshot(self, blueprint: Blueprint, blog_draft: str) -> None:
        manifest = blueprint.compile(blog_draft)
        assert manifest.paths("created") == BLOG_FILES
        assert set(manifest.models) == {"Post", "User"}

    def test_only_models(self, blueprint: Blueprint, blog_draft: str) -> None:
        manifest = blueprint.compile(blog_draft, only=["models"])
        assert all(path.startswith("app/models/") for path in manifest.paths("created"))


# ===========================================================================
# Build
# ===========================================================================


class TestBuild:
    def test_missing_draft(self, blueprint: Blueprint) -> None:
        with pytest.raises(FileNotFoundError):
            blueprint.build("draft.yaml")

    def test_first_build(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        report = Blueprint(fs).build("draft.yaml")
        assert report.success
        assert report.paths("created") == BLOG_FILES
        assert report.entities == 2
        assert "class Post(Base):" in fs.read("app/models/post.py")
        manifest = load_manifest(fs, ".blueprint")
        assert manifest.paths("created") == BLOG_FILES
        assert set(manifest.models) == {"Post", "User"}
        assert "SUCCESS" in report.summary()
        assert "Created (6):" in report.summary()

    def test_second_build_skips_unchanged(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        Blueprint(fs).build("draft.yaml")
        report = Blueprint(fs).build("draft.yaml")
        assert report.paths("created") == []
        assert report.paths("skipped") == BLOG_FILES

    def test_cached_entity_resolves_reference(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        Blueprint(fs).build("draft.yaml")
        fs.write("draft.yaml", POST_ONLY_DRAFT)
        report = Blueprint(fs).build("draft.yaml")
        assert report.success
        assert report.stale == ["app/models/user.py", "app/schemas/user.py"]
        assert fs.exists("app/models/user.py")
        assert "User" in load_manifest(fs, ".blueprint").models

    def test_unchanged_rebuild_keeps_stale_tracking(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        Blueprint(fs).build("draft.yaml")
        Blueprint(fs).build("draft.yaml")
        assert load_manifest(fs, ".blueprint").paths("created") == BLOG_FILES
        fs.write("draft.yaml", POST_ONLY_DRAFT)
        report = Blueprint(fs).build("draft.yaml")
        assert report.stale == ["app/models/user.py", "app/schemas/user.py"]

    def test_cached_definition_with_quotes_reloads(self) -> None:
        note = 'models:\n  Note:\n    label: string default:"it\'s"\n    kind: enum:"a,b",c\n'
        fs = MemoryFileSystem({"draft.yaml": note})
        Blueprint(fs).build("draft.yaml")
        fs.write("draft.yaml", "models:\n  Other:\n    name: string\n")
        report = Blueprint(fs).build("draft.yaml")
        assert report.success
        cached = Blueprint(fs).trace()["Note"]
        assert cached.columns["label"].modifier_value("default") == "it's"
        assert cached.columns["kind"].attributes == ["a,b", "c"]

    def test_prune_stale(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        Blueprint(fs).build("draft.yaml")
        fs.write("draft.yaml", POST_ONLY_DRAFT)
        report = Blueprint(fs, overrides={"prune_stale": True}).build("draft.yaml")
        assert report.paths("deleted") == ["app/models/user.py", "app/schemas/user.py"]
        assert not fs.exists("app/models/user.py")

    def test_draft_settings_and_overrides(self, blog_draft: str) -> None:
        draft = blog_draft + "settings:\n  output_root: src\n"
        fs = MemoryFileSystem({"draft.yaml": draft})
        Blueprint(fs).build("draft.yaml", only=["schemas"])
        assert fs.exists("src/schemas/post.py")
        Blueprint(fs, overrides={"output_root": "lib"}).build("draft.yaml", only=["schemas"])
        assert fs.exists("lib/schemas/post.py")

    def test_emitter_failure_keeps_earlier_files(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        blueprint = Blueprint(fs)
        blueprint.register_emitter(
            "boom", lambda filesystem, options: RecordingEmitter("boom", ("boom",), error=OSError("disk full"))
        )
        with pytest.raises(OSError):
            blueprint.build("draft.yaml")
        assert fs.exists("app/models/post.py")
        assert not fs.exists(".blueprint")

    def test_cycle_edges_setting(self) -> None:
        draft = "models:\n  User:\n    hasMany: Post\n  Post:\n    belongsTo: User\n"
        fs = MemoryFileSystem({"draft.yaml": draft})
        with pytest.raises(ValidationError) as exc_info:
            Blueprint(fs).build("draft.yaml")
        assert exc_info.value.context["dependency_chain"] == ["User", "Post", "User"]
        fs.write("draft.yaml", draft + "settings:\n  cycle_edges: belongsTo\n")
        assert Blueprint(fs).build("draft.yaml").success

    def test_example_draft(self, example_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": example_draft})
        report = Blueprint(fs).build("draft.yaml")
        assert "app/routers/post.py" in report.paths("created")
        assert "app/routers/comment.py" in report.paths("created")
        assert report.action_entities == 2


# ===========================================================================
# Erase / trace
# ===========================================================================


class TestEraseAndTrace:
    def test_trace(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        Blueprint(fs).build("draft.yaml")
        entities = Blueprint(fs).trace()
        assert set(entities) == {"Post", "User"}
        assert "author_id" in entities["Post"].columns

    def test_trace_without_manifest(self, blueprint: Blueprint) -> None:
        assert blueprint.trace() == {}

    def test_erase(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        Blueprint(fs).build("draft.yaml")
        report = Blueprint(fs).erase()
        assert report.deleted == BLOG_FILES
        assert report.manifest_deleted
        assert set(fs.files) == {"draft.yaml"}

    def test_erase_after_unchanged_rebuild(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        Blueprint(fs).build("draft.yaml")
        Blueprint(fs).build("draft.yaml")
        report = Blueprint(fs).erase()
        assert report.deleted == BLOG_FILES
        assert set(fs.files) == {"draft.yaml"}
