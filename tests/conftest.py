"""
tests/conftest.py
Shared fixtures for the blueprintc test suite.

Most tests run against ``MemoryFileSystem`` so nothing touches the disk;
the few that exercise ``LocalFileSystem`` use pytest's tmp_path fixture.
"""

from __future__ import annotations

import logging
import pathlib
import textwrap
from typing import Any, Dict, List

import pytest

from blueprintc.analyzer import SemanticAnalyzer
from blueprintc.emitters import Emitter, EmitterRegistry
from blueprintc.filesystem import MemoryFileSystem
from blueprintc.generator import Blueprint
from blueprintc.loader import parse_draft
from blueprintc.models import CompilationOptions, ModelRegistry


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
DRAFT_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "draft_example.yaml"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo the CLI's logging setup so caplog sees every record."""
    yield
    package_logger = logging.getLogger("blueprintc")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.disabled = False
    package_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Draft text fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def example_draft() -> str:
    """The reference draft_example.yaml shipped at the project root."""
    assert DRAFT_EXAMPLE_PATH.exists(), (
        f"Reference draft not found at {DRAFT_EXAMPLE_PATH}. "
        "Make sure draft_example.yaml is in the project root."
    )
    return DRAFT_EXAMPLE_PATH.read_text(encoding="utf-8")


@pytest.fixture()
def blog_draft() -> str:
    """Post belongs to User through an 'author' alias."""
    return textwrap.dedent(
        """\
        models:
          Post:
            title: string
            author: belongsTo User
          User:
            name: string
        """
    )


@pytest.fixture()
def cyclic_draft() -> str:
    return textwrap.dedent(
        """\
        models:
          A:
            belongsTo: B
          B:
            belongsTo: A
        """
    )


@pytest.fixture()
def controller_draft() -> str:
    return textwrap.dedent(
        """\
        models:
          Post:
            title: string:400
            content: longtext
        controllers:
          Post:
            index:
              query: all:posts
              render: post.index with:posts
            store:
              validate: title, content
              save: post
              redirect: posts.index
        """
    )


# ---------------------------------------------------------------------------
# Pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def options() -> CompilationOptions:
    return CompilationOptions()


@pytest.fixture()
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture()
def analyze():
    """Parse and analyze draft text in one call."""

    def _analyze(content: str, cache: Dict[str, Any] | None = None, **overrides: Any) -> ModelRegistry:
        document = parse_draft(content)
        options = CompilationOptions().merged(document.settings).merged(overrides)
        return SemanticAnalyzer(options).analyze(document, cache)

    return _analyze


@pytest.fixture()
def blueprint(memory_fs: MemoryFileSystem) -> Blueprint:
    return Blueprint(memory_fs)


# ---------------------------------------------------------------------------
# Recording emitters
# ---------------------------------------------------------------------------


class RecordingEmitter(Emitter):
    """Emitter that writes nothing and remembers each call."""

    def __init__(
        self,
        name: str,
        categories: tuple,
        priority: int = 0,
        calls: List[str] | None = None,
        output: Dict[str, List[str]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._name = name
        self.CATEGORIES = categories
        self.PRIORITY = priority
        self.calls = calls if calls is not None else []
        self._result = output if output is not None else {"created": [f"{name}.txt"]}
        self._error = error

    @property
    def name(self) -> str:
        return self._name

    def output(self, registry: ModelRegistry, overwrite: bool = False) -> Dict[str, List[str]]:
        self.calls.append(self._name)
        if self._error is not None:
            raise self._error
        return {action: list(paths) for action, paths in self._result.items()}


@pytest.fixture()
def recording_registry():
    """Build an ``EmitterRegistry`` of ``RecordingEmitter``s sharing one call log."""

    def _build(specs: List[Dict[str, Any]]) -> tuple:
        calls: List[str] = []
        registry = EmitterRegistry()
        for spec in specs:
            spec = dict(spec)
            name: str = spec.pop("name")

            def factory(filesystem, options, _name=name, _spec=spec):
                return RecordingEmitter(_name, calls=calls, **_spec)

            registry.register(name, factory)
        return registry, calls

    return _build
