# File: blueprintc/emitters.py
"""
Blueprintc - Emitter Contract & Registry
==========================================
An emitter consumes the read-only ``ModelRegistry`` and writes files.

Contract (what the orchestrator relies on)::

    emitter.categories()                 -> ("models", ...)
    emitter.priority()                   -> int (higher runs first)
    emitter.output(registry, overwrite)  -> {"created": [...], "updated": [...], ...}

``FileEmitter`` is the base class for file-producing emitters: it owns the
injected ``FileSystem``, classifies each write as created / updated /
skipped, wraps I/O failures in ``GenerationError`` and loads templates from
the configured template paths.

``EmitterRegistry`` maps category names to factories.  Emitters are never
resolved from dotted class paths at runtime; whoever builds the compiler
registers the factories it wants (``templates.default_emitter_factories``
provides the built-in ones).
"""

from __future__ import annotations

import logging
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from blueprintc.errors import GenerationError
from blueprintc.filesystem import FileSystem
from blueprintc.models import CompilationOptions, ManifestAction, ModelRegistry
from blueprintc.utils import count_lines, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.emitters")

EmitterOutput = Dict[str, List[str]]
EmitterFactory = Callable[[FileSystem, CompilationOptions], "Emitter"]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of one file an emitter handled."""

    path: str
    action: str
    size_bytes: int = 0
    line_count: int = 0
    sha256: str = ""


def should_generate(categories: Iterable[str], only: Sequence[str], skip: Sequence[str]) -> bool:
    """
    Emitter selection.

    A non-empty *only* list keeps emitters sharing a category with it;
    otherwise a non-empty *skip* list drops emitters sharing a category with
    it; with neither, everything runs.
    """
    declared = set(categories)
    if only:
        return bool(declared & set(only))
    if skip:
        return not (declared & set(skip))
    return True


# ---------------------------------------------------------------------------
# Emitter contract
# ---------------------------------------------------------------------------


class Emitter(ABC):
    """Independent unit producing output-file actions from the registry."""

    #: Categories used by ``only``/``skip`` selection.
    CATEGORIES: Tuple[str, ...] = ()
    #: Higher priorities run first; ties keep registration order.
    PRIORITY: int = 0

    def categories(self) -> Tuple[str, ...]:
        return tuple(self.CATEGORIES)

    def priority(self) -> int:
        return self.PRIORITY

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def output(self, registry: ModelRegistry, overwrite: bool = False) -> EmitterOutput:
        """Produce files for *registry*; return ``{action: [paths]}``."""

    def __repr__(self) -> str:
        return f"<{self.name} categories={list(self.categories())} priority={self.priority()}>"


# ---------------------------------------------------------------------------
# File-writing base class
# ---------------------------------------------------------------------------


class FileEmitter(Emitter):
    """
    Base class for emitters that write through the injected filesystem.

    Args:
        filesystem: Where files are read and written.
        options: Run settings (``output_root``, ``template_paths``, ...).
        strict: Raise ``conflicting_file`` instead of skipping a file that
            exists with different content when overwriting is off.
    """

    def __init__(
        self,
        filesystem: FileSystem,
        options: Optional[CompilationOptions] = None,
        *,
        strict: bool = False,
    ) -> None:
        self.filesystem: FileSystem = filesystem
        self.options: CompilationOptions = options or CompilationOptions()
        self.strict: bool = strict
        self.records: List[FileRecord] = []
        self._output: EmitterOutput = {}

    # -- Run bookkeeping -----------------------------------------------------

    def output(self, registry: ModelRegistry, overwrite: bool = False) -> EmitterOutput:
        self._output = {}
        self.records = []
        self.emit(registry, overwrite)
        logger.debug("%s produced %d file action(s).", self.name, len(self.records))
        return {action: list(paths) for action, paths in self._output.items()}

    @abstractmethod
    def emit(self, registry: ModelRegistry, overwrite: bool) -> None:
        """Write files via ``create_or_update``."""

    def record(self, action: str, path: str, content: str = "") -> None:
        self._output.setdefault(action, []).append(path)
        self.records.append(
            FileRecord(
                path=path,
                action=action,
                size_bytes=len(content.encode("utf-8")),
                line_count=count_lines(content),
                sha256=sha256_hex(content) if content else "",
            )
        )

    # -- Paths -----------------------------------------------------------------

    def output_path(self, *parts: str) -> str:
        return posixpath.join(self.options.output_root, *parts)

    # -- Writing ---------------------------------------------------------------

    def ensure_directory(self, path: str) -> None:
        directory: str = posixpath.dirname(path)
        if not directory or self.filesystem.is_directory(directory):
            return
        try:
            self.filesystem.make_directory(directory)
        except OSError as exc:
            raise GenerationError.directory_create_error(directory, str(exc)) from exc

    def create_or_update(self, path: str, content: str, overwrite: bool = False) -> str:
        """
        Write *content* to *path* and record the outcome.

        * missing file                      -> ``created``
        * same content already there         -> ``skipped``
        * different content, ``overwrite``   -> ``updated``
        * different content, no ``overwrite`` -> ``skipped`` (or
          ``conflicting_file`` when strict)

        Raises:
            GenerationError: ``file_write_error``, ``directory_create_error``
                or ``conflicting_file``.
        """
        exists: bool = self.filesystem.exists(path)

        if exists:
            try:
                current: Optional[str] = self.filesystem.read(path)
            except OSError as exc:
                raise GenerationError.file_write_error(
                    path, str(exc), permission_error=isinstance(exc, PermissionError)
                ) from exc
            if current == content:
                action: str = ManifestAction.SKIPPED.value
                self.record(action, path, content)
                return action
            if not overwrite:
                if self.strict:
                    raise GenerationError.conflicting_file(path, "update")
                action = ManifestAction.SKIPPED.value
                self.record(action, path, content)
                logger.info("Skipped existing file %s (overwrite disabled).", path)
                return action

        self.ensure_directory(path)
        try:
            self.filesystem.write(path, content)
        except OSError as exc:
            raise GenerationError.file_write_error(
                path, str(exc), permission_error=isinstance(exc, PermissionError)
            ) from exc

        action = ManifestAction.UPDATED.value if exists else ManifestAction.CREATED.value
        self.record(action, path, content)
        logger.debug("%s %s (%d lines).", action.capitalize(), path, count_lines(content))
        return action

    # -- Templates -------------------------------------------------------------

    def template_search_paths(self, name: str) -> List[str]:
        return [posixpath.join(root, name) for root in self.options.template_paths]

    def load_template(self, name: str, default: Optional[str] = None) -> str:
        """
        Return the first template called *name* under ``template_paths``,
        else *default*.

        Raises:
            GenerationError: ``template_not_found`` when nothing matches and
                no default is given; ``invalid_stub_content`` for an empty
                template file.
        """
        candidates: List[str] = self.template_search_paths(name)
        for candidate in candidates:
            if not self.filesystem.exists(candidate):
                continue
            content: str = self.filesystem.read(candidate)
            if not content.strip():
                raise GenerationError.invalid_stub_content(candidate, "template is empty")
            logger.debug("Loaded template %s.", candidate)
            return content
        if default is not None:
            return default
        raise GenerationError.template_not_found(name, candidates or [name])


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class _Registration:
    category: str
    factory: EmitterFactory
    order: int


@dataclass(frozen=False, slots=True)
class EmitterRegistry:
    """
    Category name → emitter factory table.

    ``build`` instantiates every registered emitter once for a run and
    returns them in execution order: priority descending, then registration
    order.
    """

    _entries: Dict[str, _Registration] = field(default_factory=dict)
    _counter: int = 0

    def register(self, category: str, factory: EmitterFactory) -> None:
        if category in self._entries:
            logger.debug("Replacing emitter factory for '%s'.", category)
            order: int = self._entries[category].order
        else:
            order = self._counter
            self._counter += 1
        self._entries[category] = _Registration(category, factory, order)

    def unregister(self, category: str) -> bool:
        return self._entries.pop(category, None) is not None

    def categories(self) -> List[str]:
        return [r.category for r in sorted(self._entries.values(), key=lambda r: r.order)]

    def __contains__(self, category: object) -> bool:
        return category in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def build(self, filesystem: FileSystem, options: CompilationOptions) -> List[Emitter]:
        registrations: List[_Registration] = sorted(self._entries.values(), key=lambda r: r.order)
        emitters: List[Emitter] = [r.factory(filesystem, options) for r in registrations]
        return order_emitters(emitters)


def order_emitters(emitters: Sequence[Emitter]) -> List[Emitter]:
    """Stable sort by descending priority (registration order breaks ties)."""
    return sorted(emitters, key=lambda emitter: -emitter.priority())


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "EmitterOutput",
    "EmitterFactory",
    "FileRecord",
    "should_generate",
    "Emitter",
    "FileEmitter",
    "EmitterRegistry",
    "order_emitters",
]

logger.debug("blueprintc.emitters loaded — %d public symbols.", len(__all__))
