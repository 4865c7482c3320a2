# File: blueprintc/generator.py
"""
Blueprintc - Compilation Pipeline (Orchestrator)
==================================================
Connects every stage of a run:

    PARSE → ANALYZE → VALIDATE → SELECT EMITTERS → EXECUTE → MERGE → PERSIST MANIFEST

``Blueprint`` offers both a programmatic API and the backend for the CLI::

    blueprint = Blueprint(LocalFileSystem("."))
    report = blueprint.build("draft.yaml", only=["models"])
    print(report.summary())

Failure semantics:
    - Parsing and validation failures abort the run before any emitter runs.
    - An emitter raising is NOT caught: the exception propagates and the
      rest of the run is abandoned.  Files written by earlier emitters stay
      on disk (at-least-once writes, no rollback).
    - The manifest is only rewritten after a run completes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from blueprintc.analyzer import SemanticAnalyzer
from blueprintc.emitters import (
    Emitter,
    EmitterFactory,
    EmitterOutput,
    EmitterRegistry,
    should_generate,
)
from blueprintc.filesystem import FileSystem, LocalFileSystem
from blueprintc.loader import DraftDocument, parse_draft
from blueprintc.manifest import (
    EraseReport,
    Reconciliation,
    dump_manifest,
    erase,
    load_manifest,
    reconcile,
)
from blueprintc.models import (
    CompilationOptions,
    Entity,
    GenerationManifest,
    ManifestAction,
    ModelRegistry,
)
from blueprintc.templates import default_emitter_factories
from blueprintc.utils import Timer, merge_recursive
from blueprintc.validators import ValidationResult, validate_registry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.generator")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GenerationStarted:
    emitters: List[str]
    overwrite: bool = False


@dataclass(frozen=True, slots=True)
class EmitterExecuting:
    emitter: str
    categories: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class EmitterExecuted:
    emitter: str
    output: EmitterOutput = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GenerationCompleted:
    output: EmitterOutput = field(default_factory=dict)


Listener = Callable[[Any], None]


# ---------------------------------------------------------------------------
# Build report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class BuildStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class BuildReport:
    """Everything ``Blueprint.build()`` produced, with timings."""

    success: bool = False
    draft_path: str = ""
    manifest_path: str = ""

    entities: int = 0
    action_entities: int = 0
    total_elapsed_seconds: float = 0.0

    actions: Dict[str, List[str]] = field(default_factory=dict)
    stale: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    step_metrics: List[BuildStepMetric] = field(default_factory=list)

    def paths(self, action: str) -> List[str]:
        return list(self.actions.get(action, []))

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'=' * 60}")
        lines.append("  blueprintc — Build Report")
        lines.append(f"{'=' * 60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Draft:            {self.draft_path}")
        lines.append(f"  Manifest:         {self.manifest_path}")
        lines.append(f"  Models:           {self.entities}")
        lines.append(f"  Controllers:      {self.action_entities}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─' * 60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} {step.elapsed_seconds:>7.3f}s  {step.detail}"
                )

        for action in ManifestAction:
            paths: List[str] = self.paths(action.value)
            if not paths:
                continue
            lines.append(f"{'─' * 60}")
            lines.append(f"  {action.value.capitalize()} ({len(paths)}):")
            lines.extend(f"    - {path}" for path in paths)

        if self.stale:
            lines.append(f"{'─' * 60}")
            lines.append(f"  Stale ({len(self.stale)}):")
            lines.extend(f"    ⊘ {path}" for path in self.stale)

        if self.warnings:
            lines.append(f"{'─' * 60}")
            lines.append(f"  Validation Warnings ({len(self.warnings)}):")
            lines.extend(f"    ⚠ {warning}" for warning in self.warnings)

        lines.append(f"{'=' * 60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Blueprint pipeline orchestrator
# ---------------------------------------------------------------------------


class Blueprint:
    """
    Pipeline orchestrator.

    Args:
        filesystem: Where drafts, templates, output and the manifest live.
        options: Base run settings; a draft's ``settings:`` section
            overrides them, and *overrides* (CLI flags) override both.
        emitters: Category → factory table; defaults to the built-in
            reference emitters.
        overrides: Option values applied after the draft's settings.
    """

    def __init__(
        self,
        filesystem: Optional[FileSystem] = None,
        options: Optional[CompilationOptions] = None,
        *,
        emitters: Optional[EmitterRegistry] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.filesystem: FileSystem = filesystem if filesystem is not None else LocalFileSystem()
        self.options: CompilationOptions = options or CompilationOptions()
        self.overrides: Dict[str, Any] = dict(overrides or {})
        if emitters is None:
            emitters = EmitterRegistry()
            for category, factory in default_emitter_factories().items():
                emitters.register(category, factory)
        self.emitters: EmitterRegistry = emitters
        self._listeners: List[Listener] = []

        logger.debug(
            "Blueprint initialised: %d emitter factor(ies), manifest=%s.",
            len(self.emitters),
            self.options.manifest_path,
        )

    # -- Collaborators -----------------------------------------------------------

    def register_emitter(self, category: str, factory: EmitterFactory) -> None:
        self.emitters.register(category, factory)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _dispatch(self, event: Any) -> None:
        for listener in self._listeners:
            listener(event)

    def resolve_options(self, settings: Optional[Mapping[str, Any]] = None) -> CompilationOptions:
        return self.options.merged(settings).merged(self.overrides)

    # -- Stages --------------------------------------------------------------------

    def parse(
        self, content: str, *, file_path: str = "<draft>", strip_dashes: bool = True
    ) -> DraftDocument:
        return parse_draft(content, file_path=file_path, strip_dashes=strip_dashes)

    def analyze(
        self,
        document: DraftDocument | Mapping[str, Any],
        cache: Optional[Mapping[str, Any]] = None,
        options: Optional[CompilationOptions] = None,
    ) -> ModelRegistry:
        return SemanticAnalyzer(options or self.options).analyze(document, cache)

    def validate(
        self,
        registry: ModelRegistry,
        options: Optional[CompilationOptions] = None,
        *,
        models: Optional[Mapping[str, Any]] = None,
    ) -> ValidationResult:
        return validate_registry(registry, options or self.options, models=models)

    def select_emitters(
        self,
        options: CompilationOptions,
        only: Sequence[str] = (),
        skip: Sequence[str] = (),
    ) -> List[Emitter]:
        """Instantiate the emitters for a run, filtered and in execution order."""
        selected: List[Emitter] = [
            emitter
            for emitter in self.emitters.build(self.filesystem, options)
            if should_generate(emitter.categories(), only, skip)
        ]
        logger.info(
            "Selected %d emitter(s): %s",
            len(selected),
            ", ".join(e.name for e in selected) or "none",
        )
        return selected

    def generate(
        self,
        registry: ModelRegistry,
        only: Sequence[str] = (),
        skip: Sequence[str] = (),
        overwrite: bool = False,
        options: Optional[CompilationOptions] = None,
    ) -> Dict[str, List[str]]:
        """
        Run every selected emitter against *registry* and merge their output.

        Emitter exceptions propagate unchanged.
        """
        emitters: List[Emitter] = self.select_emitters(options or self.options, only, skip)
        self._dispatch(GenerationStarted([e.name for e in emitters], overwrite))

        merged: Dict[str, Any] = {}
        for emitter in emitters:
            self._dispatch(EmitterExecuting(emitter.name, list(emitter.categories())))
            output: EmitterOutput = emitter.output(registry, overwrite)
            merged = merge_recursive(merged, output)
            self._dispatch(EmitterExecuted(emitter.name, output))
            logger.debug("%s finished: %s", emitter.name, {k: len(v) for k, v in output.items()})

        self._dispatch(GenerationCompleted(merged))
        return merged

    # -- Whole runs ----------------------------------------------------------------

    def compile(
        self,
        content: str,
        previous: Optional[GenerationManifest] = None,
        only: Sequence[str] = (),
        skip: Sequence[str] = (),
        overwrite: bool = False,
        *,
        file_path: str = "<draft>",
        report: Optional[BuildReport] = None,
    ) -> GenerationManifest:
        """
        Draft text plus the previous manifest in, merged manifest out.

        Nothing is persisted here; ``build`` writes the returned manifest.
        """
        previous = previous or GenerationManifest()
        report = report if report is not None else BuildReport()

        with Timer("parse") as t_parse:
            document: DraftDocument = self.parse(content, file_path=file_path)
        options: CompilationOptions = self.resolve_options(document.settings)
        report.step_metrics.append(
            BuildStepMetric("Parse Draft", True, t_parse.elapsed, f"{len(document.models)} model(s)")
        )

        with Timer("analyze") as t_analyze:
            registry: ModelRegistry = self.analyze(document, previous.models, options)
        report.entities = len(registry.entities)
        report.action_entities = len(registry.action_entities)
        report.step_metrics.append(
            BuildStepMetric(
                "Analyze",
                True,
                t_analyze.elapsed,
                f"{len(registry.cached_entities)} cached model(s)",
            )
        )

        with Timer("validate") as t_validate:
            result: ValidationResult = self.validate(registry, options, models=document.models)
        report.warnings = [str(w) for w in result.warnings]
        report.step_metrics.append(
            BuildStepMetric("Validate", True, t_validate.elapsed, result.summary())
        )

        with Timer("generate") as t_generate:
            output: Dict[str, List[str]] = self.generate(registry, only, skip, overwrite, options)
        reconciliation: Reconciliation = reconcile(
            self.filesystem, previous, output, prune=options.prune_stale
        )
        report.actions = reconciliation.actions
        report.stale = reconciliation.stale
        report.step_metrics.append(
            BuildStepMetric(
                "Generate",
                True,
                t_generate.elapsed,
                f"{sum(len(p) for p in reconciliation.actions.values())} file action(s)",
            )
        )

        return GenerationManifest(actions=reconciliation.persisted, models=registry.snapshot())

    def build(
        self,
        draft_path: str,
        only: Sequence[str] = (),
        skip: Sequence[str] = (),
        overwrite: bool = False,
    ) -> BuildReport:
        """
        Full run: read manifest → compile draft → write manifest.

        Raises:
            FileNotFoundError: when the draft does not exist.
            BlueprintError: any parsing, validation or generation failure.
        """
        start: float = time.perf_counter()
        manifest_path: str = self.resolve_options().manifest_path
        report: BuildReport = BuildReport(draft_path=str(draft_path), manifest_path=manifest_path)

        if not self.filesystem.exists(draft_path) or self.filesystem.is_directory(draft_path):
            raise FileNotFoundError(f"Draft file not found: {draft_path}")
        content: str = self.filesystem.read(draft_path)
        logger.info("Loaded draft %s (%d bytes).", draft_path, len(content.encode("utf-8")))

        previous: GenerationManifest = load_manifest(self.filesystem, manifest_path)
        manifest: GenerationManifest = self.compile(
            content,
            previous,
            only,
            skip,
            overwrite,
            file_path=str(draft_path),
            report=report,
        )
        dump_manifest(self.filesystem, manifest_path, manifest)

        report.success = True
        report.total_elapsed_seconds = time.perf_counter() - start
        logger.info(
            "Build finished in %.3fs: %s",
            report.total_elapsed_seconds,
            ", ".join(f"{len(v)} {k}" for k, v in report.actions.items()) or "no files",
        )
        return report

    def erase(self) -> EraseReport:
        """Roll back the last build recorded in the manifest."""
        return erase(self.filesystem, self.resolve_options().manifest_path)

    def trace(self) -> Dict[str, Entity]:
        """Entities currently known from the manifest."""
        manifest: GenerationManifest = load_manifest(
            self.filesystem, self.resolve_options().manifest_path
        )
        registry: ModelRegistry = self.analyze({}, manifest.models)
        return registry.known_entities()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "GenerationStarted",
    "EmitterExecuting",
    "EmitterExecuted",
    "GenerationCompleted",
    "Listener",
    "BuildStepMetric",
    "BuildReport",
    "Blueprint",
]

logger.debug("blueprintc.generator loaded — %d public symbols.", len(__all__))
